"""
Scheduling Portal — Engine facade.

Wires the stores, the change bus and the services together, and answers
"what may this viewer see" by reading every collection fully, then handing
the snapshot to the compositor.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from portal.core import reports
from portal.core.assignments import AssignmentManager
from portal.core.availability import AvailabilityGate, as_iso_date
from portal.core.errors import NotFoundError, StateConflictError, ValidationError
from portal.core.identity import normalize
from portal.core.requests import RequestService
from portal.core.roles import ViewerRole
from portal.core.schedule_notes import ScheduleNoteService
from portal.core.team import TeamIndex
from portal.core.visibility import (
    CalendarItem,
    CalendarSnapshot,
    RoleCalendar,
    Viewer,
    VisibleSet,
    availability_markers,
    role_calendar,
    visible_items,
)
from portal.data.models import AdminEvent, Assignment, Section, Staffer
from portal.ports.notification_port import Topic

if TYPE_CHECKING:
    from portal.adapters.store_factory import Stores
    from portal.ports.notification_port import ChangeBus

logger = logging.getLogger(__name__)


class SchedulingEngine:
    def __init__(
        self,
        stores: Stores,
        bus: ChangeBus | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.stores = stores
        self.bus = bus
        self.team = TeamIndex(stores.team, stores.staffers, bus)
        self.assignments = AssignmentManager(stores.assignments, stores.invitations, bus, clock)
        self.availability = AvailabilityGate(stores.availability, bus)
        self.requests = RequestService(stores.requests, self.availability, bus, clock)
        self.schedule_notes = ScheduleNoteService(stores.schedule_notes, bus, clock)

    def _emit(self, topic: Topic, payload: object) -> None:
        if self.bus is not None:
            self.bus.emit(topic, payload)

    # --- admin calendar and directory -------------------------------------

    def add_event(self, event: AdminEvent) -> AdminEvent:
        """Put an event on the admin calendar. No staffer_id means everyone."""
        if not (event.title or "").strip():
            raise ValidationError("An event title is required", field="title")
        as_iso_date(event.start)
        created = self.stores.events.create(event)
        self._emit(Topic.EVENT_CHANGED, created)
        return created

    def remove_event(self, event_id: str) -> None:
        if not self.stores.events.delete(event_id):
            raise NotFoundError("Event", event_id)
        logger.info("Admin event %s deleted", event_id)
        self._emit(Topic.EVENT_CHANGED, event_id)

    def register_staffer(self, staffer: Staffer) -> Staffer:
        """Add a directory entry. Emails are unique across the directory."""
        if not normalize(staffer.email):
            raise ValidationError("A staffer email is required", field="email")
        if self.stores.staffers.by_email(staffer.email) is not None:
            raise StateConflictError(f"{staffer.email} is already registered")
        created = self.stores.staffers.create(staffer)
        self._emit(Topic.STAFFER_CHANGED, created)
        return created

    # --- queries ----------------------------------------------------------

    def snapshot(self, viewer: Viewer) -> CalendarSnapshot:
        """Read everything the viewer's calendar depends on."""
        role = ViewerRole(viewer.role)
        snapshot = CalendarSnapshot(staffers=self.stores.staffers.list())
        if role == ViewerRole.CLIENT:
            snapshot.requests = self.stores.requests.list()
            return snapshot
        snapshot.events = self.stores.events.list()
        if role in (ViewerRole.EXECUTIVE, ViewerRole.SECTION_HEAD):
            snapshot.assignments = self.stores.assignments.list()
            snapshot.requests = self.stores.requests.list()
        if role == ViewerRole.EXECUTIVE and viewer.user is not None:
            snapshot.team_tokens = self.team.member_tokens(viewer.user)
        return snapshot

    def visible_items(self, viewer: Viewer) -> VisibleSet:
        visible = visible_items(viewer, self.snapshot(viewer))
        logger.debug(
            "%d item(s) visible to %s (%s)",
            len(visible), viewer.user.email if viewer.user else "anonymous", viewer.role,
        )
        return visible

    def role_calendar(self, viewer: Viewer | None = None, filter_by_user: bool = False) -> RoleCalendar:
        return role_calendar(
            self.stores.assignments.list(), viewer, filter_by_user, self.stores.staffers.list(),
        )

    def availability_markers(self) -> list[CalendarItem]:
        return availability_markers(self.stores.availability.list(), self.stores.requests.list())

    def completed(self, section_filter: list[Section | str] | None = None) -> list[Assignment]:
        return reports.completed(self.stores.assignments.list(), section_filter)

    def rejected(self, section_filter: list[Section | str] | None = None) -> list[Assignment]:
        return reports.rejected(self.stores.assignments.list(), section_filter)
