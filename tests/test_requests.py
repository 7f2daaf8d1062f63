"""Tests for portal.core.requests — client requests and their decisions."""

import pytest

from portal.core.availability import AvailabilityGate
from portal.core.errors import (
    DateUnavailableError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from portal.core.requests import RequestService
from portal.data.models import RequestStatus, User, UserRole


@pytest.fixture
def gate(stores, bus):
    return AvailabilityGate(stores.availability, bus)


@pytest.fixture
def service(stores, gate, bus, clock):
    return RequestService(stores.requests, gate, bus, clock)


def _form(**overrides):
    data = {"title": "Campus Fair", "date": "2024-06-10", "location": "Quad"}
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# filing
# ---------------------------------------------------------------------------


class TestOpenRequestForm:
    def test_scenario_closed_date_then_open_date(self, service, gate, stores):
        gate.set_availability("2024-06-01", False)
        with pytest.raises(DateUnavailableError):
            service.open_request_form("2024-06-01")
        assert stores.requests.list() == []

        assert service.open_request_form("2024-06-02") == "2024-06-02"


class TestCreateRequest:
    def test_created_pending_and_owned(self, service, client_user):
        request = service.create_request(client_user, _form())
        assert request.status == RequestStatus.PENDING
        assert request.client_email == "Client@Example.com"
        assert request.client_name == "Client User"
        assert request.date == "2024-06-10"

    def test_round_trip(self, service, stores, client_user):
        created = service.create_request(client_user, _form(time="13:00", service_needed="Photo"))
        assert stores.requests.by_id(created.id) == created

    def test_blank_title_rejected(self, service, client_user):
        with pytest.raises(ValidationError) as exc:
            service.create_request(client_user, _form(title="  "))
        assert exc.value.field == "title"

    def test_bad_date_rejected(self, service, client_user):
        with pytest.raises(ValidationError) as exc:
            service.create_request(client_user, _form(date="soon"))
        assert exc.value.field == "date"

    def test_status_cannot_be_supplied(self, service, client_user):
        with pytest.raises(ValidationError):
            service.create_request(client_user, _form(status="approved"))

    def test_submission_not_rechecked_against_availability(self, service, gate, client_user):
        gate.set_availability("2024-06-10", False)
        assert service.create_request(client_user, _form()).status == "pending"


# ---------------------------------------------------------------------------
# client edits
# ---------------------------------------------------------------------------


class TestEditAndDelete:
    def test_owner_edits_pending(self, service, client_user):
        request = service.create_request(client_user, _form())
        updated = service.edit_request(request.id, client_user, {"location": "Gym"})
        assert updated.location == "Gym"
        assert updated.title == "Campus Fair"

    def test_other_client_refused(self, service, client_user):
        request = service.create_request(client_user, _form())
        other = User(id="u2", email="else@x.com", role=UserRole.CLIENT)
        with pytest.raises(PermissionDeniedError):
            service.edit_request(request.id, other, {"location": "Gym"})
        with pytest.raises(PermissionDeniedError):
            service.delete_request(request.id, other)

    def test_decided_request_is_frozen(self, service, client_user):
        request = service.create_request(client_user, _form())
        service.approve_request(request.id, "Editor")
        with pytest.raises(StateConflictError):
            service.edit_request(request.id, client_user, {"location": "Gym"})
        with pytest.raises(StateConflictError):
            service.delete_request(request.id, client_user)

    def test_status_not_editable(self, service, client_user):
        request = service.create_request(client_user, _form())
        with pytest.raises(ValidationError):
            service.edit_request(request.id, client_user, {"status": "approved"})

    def test_delete(self, service, stores, client_user):
        request = service.create_request(client_user, _form())
        service.delete_request(request.id, client_user)
        assert stores.requests.by_id(request.id) is None


# ---------------------------------------------------------------------------
# approval
# ---------------------------------------------------------------------------


class TestDecisions:
    def test_approve(self, service, client_user):
        request = service.create_request(client_user, _form())
        approved = service.approve_request(request.id, "Editor")
        assert approved.status == RequestStatus.APPROVED
        assert approved.approved_by == "Editor"
        assert approved.date_approved

    def test_deny_requires_reason(self, service, stores, client_user):
        request = service.create_request(client_user, _form())
        with pytest.raises(ValidationError):
            service.deny_request(request.id, "  ", "Editor")
        assert stores.requests.by_id(request.id).status == "pending"

    def test_deny(self, service, client_user):
        request = service.create_request(client_user, _form())
        denied = service.deny_request(request.id, "fully booked", "Editor")
        assert denied.status == RequestStatus.DENIED
        assert denied.reason_of_denial == "fully booked"
        assert denied.denied_by == "Editor"

    def test_cannot_decide_twice(self, service, client_user):
        request = service.create_request(client_user, _form())
        service.deny_request(request.id, "no", "Editor")
        with pytest.raises(StateConflictError):
            service.approve_request(request.id, "Editor")

    def test_missing(self, service):
        with pytest.raises(NotFoundError):
            service.approve_request("ghost")

    def test_list_by_status(self, service, client_user):
        a = service.create_request(client_user, _form(title="A"))
        b = service.create_request(client_user, _form(title="B"))
        service.approve_request(a.id)
        assert [r.id for r in service.list_by_status("approved")] == [a.id]
        assert [r.id for r in service.list_by_status(RequestStatus.PENDING)] == [b.id]
        with pytest.raises(ValidationError):
            service.list_by_status("archived")
