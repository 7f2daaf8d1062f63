"""Tests for portal.core.availability — the per-date request gate."""

from datetime import date

import pytest

from portal.core.availability import AvailabilityGate, as_iso_date
from portal.core.errors import DateUnavailableError, ValidationError
from portal.ports.notification_port import Topic


@pytest.fixture
def gate(stores, bus):
    return AvailabilityGate(stores.availability, bus)


class TestAsIsoDate:
    def test_plain_date(self):
        assert as_iso_date("2024-06-01") == "2024-06-01"

    def test_datetime_string_truncated(self):
        assert as_iso_date("2024-06-01T14:30:00") == "2024-06-01"

    def test_date_object(self):
        assert as_iso_date(date(2024, 6, 1)) == "2024-06-01"

    @pytest.mark.parametrize("bad", ["", "   ", "June 1", "2024-13-01"])
    def test_invalid(self, bad):
        with pytest.raises(ValidationError) as exc:
            as_iso_date(bad)
        assert exc.value.field == "date"


class TestGate:
    def test_no_record_means_open(self, gate):
        assert gate.can_request("2024-06-01")

    def test_closed_date_refused(self, gate):
        gate.set_availability("2024-06-01", False)
        assert not gate.can_request("2024-06-01")
        with pytest.raises(DateUnavailableError) as exc:
            gate.ensure_can_request("2024-06-01")
        assert exc.value.date == "2024-06-01"
        assert "not available" in str(exc.value)

    def test_closed_date_refused_for_datetime_input(self, gate):
        gate.set_availability("2024-06-01", False)
        assert not gate.can_request("2024-06-01T08:00:00")

    def test_open_record(self, gate):
        gate.set_availability("2024-06-01", True)
        assert gate.ensure_can_request("2024-06-01") == "2024-06-01"

    def test_set_overwrites(self, gate, stores):
        gate.set_availability("2024-06-01", False, notes="holiday")
        gate.set_availability("2024-06-01", True)
        [record] = stores.availability.list()
        assert record.available is True
        assert record.notes is None

    def test_clear_reopens(self, gate):
        gate.set_availability("2024-06-01", False)
        assert gate.clear("2024-06-01") is True
        assert gate.can_request("2024-06-01")
        assert gate.clear("2024-06-01") is False

    def test_other_dates_unaffected(self, gate):
        gate.set_availability("2024-06-01", False)
        assert gate.can_request("2024-06-02")

    def test_records_ordered_by_date(self, gate):
        gate.set_availability("2024-06-03", False)
        gate.set_availability("2024-06-01", True)
        assert [r.date for r in gate.records()] == ["2024-06-01", "2024-06-03"]

    def test_changes_are_published(self, gate, bus):
        seen = []
        bus.subscribe(Topic.AVAILABILITY_CHANGED, lambda topic, payload: seen.append(payload))
        gate.set_availability("2024-06-01", False)
        gate.clear("2024-06-01")
        gate.clear("2024-06-01")
        assert len(seen) == 2
