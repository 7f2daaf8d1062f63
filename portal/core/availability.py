"""
Scheduling Portal — Availability Gate.

Decides whether a date accepts new client requests. A date with no record
is open. Closing a date never touches requests that already exist.
"""

from __future__ import annotations

import logging
from datetime import date as date_type
from typing import TYPE_CHECKING

from portal.core.errors import DateUnavailableError, ValidationError
from portal.data.models import ClientAvailability
from portal.ports.notification_port import Topic

if TYPE_CHECKING:
    from portal.ports.notification_port import ChangeBus
    from portal.ports.store_port import AvailabilityStore

logger = logging.getLogger(__name__)


def as_iso_date(value: str | date_type) -> str:
    """Normalize a date (or a datetime string) to YYYY-MM-DD."""
    if isinstance(value, date_type):
        return value.isoformat()[:10]
    text = (value or "").strip()
    if not text:
        raise ValidationError("A date is required", field="date")
    day = text.split("T", 1)[0]
    try:
        return date_type.fromisoformat(day).isoformat()
    except ValueError as exc:
        raise ValidationError(f"Invalid date {value!r}; expected YYYY-MM-DD", field="date") from exc


class AvailabilityGate:
    def __init__(self, store: AvailabilityStore, bus: ChangeBus | None = None) -> None:
        self._store = store
        self._bus = bus

    def can_request(self, day: str | date_type) -> bool:
        record = self._store.get(as_iso_date(day))
        if record is None:
            return True
        return record.available

    def ensure_can_request(self, day: str | date_type) -> str:
        """Return the normalized date, or raise DateUnavailableError."""
        iso = as_iso_date(day)
        if not self.can_request(iso):
            logger.info("Request refused for closed date %s", iso)
            raise DateUnavailableError(iso)
        return iso

    def set_availability(
        self, day: str | date_type, available: bool, notes: str | None = None,
    ) -> ClientAvailability:
        """Create or overwrite the record for a date (admin action)."""
        record = self._store.set(as_iso_date(day), bool(available), (notes or "").strip() or None)
        if self._bus is not None:
            self._bus.emit(Topic.AVAILABILITY_CHANGED, record)
        return record

    def clear(self, day: str | date_type) -> bool:
        """Drop the record, reopening the date. False when there was none."""
        iso = as_iso_date(day)
        removed = self._store.delete(iso)
        if removed and self._bus is not None:
            self._bus.emit(Topic.AVAILABILITY_CHANGED, iso)
        return removed

    def records(self) -> list[ClientAvailability]:
        return self._store.list()
