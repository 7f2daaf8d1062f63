"""
Scheduling Portal — Client Requests.

Clients propose a date and service; an approver approves or denies. Only
pending requests may be edited or deleted, and only by the client who filed
them. Once decided, a request is immutable (assignments may still link to it).

Availability is checked once, when the client opens the request form for a
date (open_request_form), not again at submission.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from portal.core.availability import as_iso_date
from portal.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from portal.core.identity import normalize
from portal.data.models import ClientRequest, RequestStatus, User
from portal.ports.notification_port import Topic

if TYPE_CHECKING:
    from portal.core.availability import AvailabilityGate
    from portal.ports.notification_port import ChangeBus
    from portal.ports.store_port import RequestStore

logger = logging.getLogger(__name__)


class RequestInput(BaseModel):
    """Fields a client fills in on the request form."""

    model_config = ConfigDict(extra="forbid")

    title: str
    date: str
    description: str = ""
    time: str | None = None
    location: str = ""
    person_to_contact: str = ""
    contact_info: str = ""
    service_needed: str = ""
    attached_file: str | None = None
    file_name: str | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title is required")
        return v

    @field_validator("date")
    @classmethod
    def iso_date(cls, v: str) -> str:
        try:
            return as_iso_date(v)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc


EDITABLE_FIELDS = frozenset(RequestInput.model_fields)


def _as_validation_error(exc: PydanticValidationError) -> ValidationError:
    first = exc.errors()[0]
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else None
    return ValidationError(f"{field or 'request'}: {first.get('msg', 'invalid value')}", field=field)


class RequestService:
    def __init__(
        self,
        store: RequestStore,
        gate: AvailabilityGate,
        bus: ChangeBus | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._gate = gate
        self._bus = bus
        self._clock = clock or datetime.now

    def _emit(self, payload: object) -> None:
        if self._bus is not None:
            self._bus.emit(Topic.REQUEST_CHANGED, payload)

    def _require(self, request_id: str) -> ClientRequest:
        request = self._store.by_id(request_id)
        if request is None:
            logger.warning("Request %s not found", request_id)
            raise NotFoundError("Request", request_id)
        return request

    @staticmethod
    def _require_pending(request: ClientRequest, action: str) -> None:
        if request.status != RequestStatus.PENDING:
            raise StateConflictError(
                f"Request {request.id} is {request.status.value}; cannot {action}"
            )

    @staticmethod
    def _require_owner(request: ClientRequest, client: User) -> None:
        owner = normalize(request.client_email)
        if not owner or owner != normalize(client.email):
            raise PermissionDeniedError(f"{client.email} does not own request {request.id}")

    # --- client side ------------------------------------------------------

    def open_request_form(self, day: str) -> str:
        """The single availability check, run when a client picks a date."""
        return self._gate.ensure_can_request(day)

    def create_request(self, client: User, data: RequestInput | dict) -> ClientRequest:
        try:
            parsed = data if isinstance(data, RequestInput) else RequestInput.model_validate(data)
        except PydanticValidationError as exc:
            raise _as_validation_error(exc) from exc

        request = self._store.create(
            ClientRequest(
                id="",
                status=RequestStatus.PENDING,
                client_email=client.email or None,
                client_name=client.name or None,
                **parsed.model_dump(),
            )
        )
        self._emit(request)
        return request

    def edit_request(self, request_id: str, client: User, patch: dict) -> ClientRequest:
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit {', '.join(sorted(unknown))}", field=sorted(unknown)[0])
        current = self._require(request_id)
        self._require_owner(current, client)
        self._require_pending(current, "edit")

        merged = {k: getattr(current, k) for k in EDITABLE_FIELDS} | patch
        try:
            parsed = RequestInput.model_validate(merged)
        except PydanticValidationError as exc:
            raise _as_validation_error(exc) from exc
        clean = {k: getattr(parsed, k) for k in patch}

        updated = self._store.update(request_id, clean)
        if updated is None:
            raise NotFoundError("Request", request_id)
        self._emit(updated)
        return updated

    def delete_request(self, request_id: str, client: User) -> None:
        current = self._require(request_id)
        self._require_owner(current, client)
        self._require_pending(current, "delete")
        if not self._store.delete(request_id):
            raise NotFoundError("Request", request_id)
        self._emit(current)

    # --- approver side ----------------------------------------------------

    def approve_request(self, request_id: str, approver_name: str | None = None) -> ClientRequest:
        current = self._require(request_id)
        self._require_pending(current, "approve")
        updated = self._store.update(request_id, {
            "status": RequestStatus.APPROVED,
            "approved_by": approver_name or "Admin",
            "date_approved": self._clock().isoformat(),
        })
        if updated is None:
            raise NotFoundError("Request", request_id)
        logger.info("Request %s approved by %s", request_id, updated.approved_by)
        self._emit(updated)
        return updated

    def deny_request(
        self, request_id: str, reason: str, denier_name: str | None = None,
    ) -> ClientRequest:
        if not reason or not reason.strip():
            raise ValidationError("A reason of denial is required", field="reason_of_denial")
        current = self._require(request_id)
        self._require_pending(current, "deny")
        updated = self._store.update(request_id, {
            "status": RequestStatus.DENIED,
            "denied_by": denier_name or "Admin",
            "date_denied": self._clock().isoformat(),
            "reason_of_denial": reason.strip(),
        })
        if updated is None:
            raise NotFoundError("Request", request_id)
        logger.info("Request %s denied by %s", request_id, updated.denied_by)
        self._emit(updated)
        return updated

    # --- queries ----------------------------------------------------------

    def list_by_status(self, status: RequestStatus | str) -> list[ClientRequest]:
        try:
            status = RequestStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown request status {status!r}", field="status") from exc
        return self._store.list_by_status(status)

    def get(self, request_id: str) -> ClientRequest:
        return self._require(request_id)
