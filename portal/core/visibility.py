"""
Scheduling Portal — Visibility Compositor.

Turns admin events, assignments and client requests into the calendar items a
given viewer may see. Pure functions over a CalendarSnapshot: callers read the
collections first and pass them in.

Rules per calendar:
  client        own requests only (matched on email); no admin events.
  executive     admin events targeted at them, plus assignments whose
                recipient is the executive or anyone on their team.
  staffer       untargeted admin events plus events targeted at them.
  section head  assignments split into "Events" (no request, no title) and
                "Class Schedule" (has a title).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from portal.config import settings
from portal.core.assignments import is_admin_issued
from portal.core.identity import (
    expand_tokens,
    normalize,
    recipient_tokens,
    resolve_staffer,
    resolved_staffer_id,
    staffer_tokens,
    token_set,
)
from portal.core.roles import ViewerRole
from portal.data.models import (
    AdminEvent,
    Assignment,
    ClientAvailability,
    ClientRequest,
    Staffer,
    User,
)

logger = logging.getLogger(__name__)


class ItemKind(str, Enum):
    ADMIN_EVENT = "admin-event"
    ASSIGNMENT = "assignment"
    REQUEST = "request"
    AVAILABILITY = "availability"
    REQUEST_COUNT = "request-count"


class VisibilityMode(str, Enum):
    NORMAL = "normal"
    # Client without an email: every request is shown
    ALL_REQUESTS_FALLBACK = "all-requests-fallback"


@dataclass
class CalendarItem:
    """One rendered calendar entry, with enough provenance to reopen its source."""

    id: str
    kind: ItemKind
    source_id: str
    title: str
    start: str
    all_day: bool = True
    description: str = ""
    location: str = ""
    assignment_id: str | None = None
    request_id: str | None = None
    from_admin: bool = False
    assigned_by: str | None = None
    status: str | None = None
    is_task: bool = False
    notes: str | None = None
    request_count: int = 0


@dataclass
class Viewer:
    role: ViewerRole
    user: User | None = None
    filter_by_user: bool = False

    @property
    def email(self) -> str:
        return normalize(self.user.email) if self.user else ""


@dataclass
class CalendarSnapshot:
    """Everything the compositor reads, fetched up front."""

    events: list[AdminEvent] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)
    requests: list[ClientRequest] = field(default_factory=list)
    staffers: list[Staffer] = field(default_factory=list)
    team_tokens: frozenset[str] = frozenset()


@dataclass
class VisibleSet:
    items: list[CalendarItem]
    mode: VisibilityMode = VisibilityMode.NORMAL

    def __iter__(self) -> Iterator[CalendarItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def ids(self, kind: ItemKind | None = None) -> set[str]:
        """Source ids, optionally restricted to one kind."""
        return {i.source_id for i in self.items if kind is None or i.kind == kind}


@dataclass
class RoleCalendar:
    events: list[Assignment]
    class_schedule: list[Assignment]


# ---------------------------------------------------------------------------
# Item builders
# ---------------------------------------------------------------------------


def _join_date_time(day: str, time: str | None) -> tuple[str, bool]:
    """(start, all_day) for a date plus an optional HH:MM."""
    if time:
        parts = time.split(":")
        if len(parts) >= 2 and parts[0] and parts[1]:
            return f"{day}T{parts[0].zfill(2)}:{parts[1].zfill(2)}", False
    return day, True


def request_item(request: ClientRequest) -> CalendarItem:
    start, all_day = _join_date_time(request.date, request.time)
    return CalendarItem(
        id=f"client-request-{request.id}",
        kind=ItemKind.REQUEST,
        source_id=request.id,
        title=request.title,
        start=start,
        all_day=all_day,
        description=request.description,
        location=request.location,
        request_id=request.id,
        status=request.status.value,
    )


def admin_event_item(event: AdminEvent, from_admin: bool = False) -> CalendarItem:
    return CalendarItem(
        id=event.id,
        kind=ItemKind.ADMIN_EVENT,
        source_id=event.id,
        title=event.title,
        start=event.start,
        all_day="T" not in event.start,
        description=event.description,
        location=event.location,
        from_admin=from_admin,
        assigned_by=event.assigned_by_name or "Admin",
    )


def assignment_item(
    assignment: Assignment,
    request: ClientRequest | None = None,
    from_admin: bool = False,
    default_title: str = "Assignment",
) -> CalendarItem:
    if assignment.task_date:
        start, all_day = _join_date_time(assignment.task_date, assignment.task_time)
    elif request is not None:
        start, all_day = _join_date_time(request.date, request.time)
    else:
        start, all_day = assignment.assigned_at[:10], True
    return CalendarItem(
        id=f"assignment-{assignment.id}",
        kind=ItemKind.ASSIGNMENT,
        source_id=assignment.id,
        title=assignment.task_title or (request.title if request else None) or default_title,
        start=start,
        all_day=all_day,
        description=assignment.notes or (request.description if request else "") or "",
        location=assignment.task_location or (request.location if request else "") or "",
        assignment_id=assignment.id,
        request_id=assignment.request_id,
        from_admin=from_admin,
        assigned_by=assignment.assigned_by or "Admin",
        status=assignment.status.value,
        is_task=bool(assignment.task_title),
    )


# ---------------------------------------------------------------------------
# Per-role rules
# ---------------------------------------------------------------------------


def client_items(
    viewer: Viewer,
    requests: Iterable[ClientRequest],
    allow_fallback: bool | None = None,
) -> VisibleSet:
    """The client's own requests.

    A client with no email gets every request when the fallback is enabled
    (VisibilityMode.ALL_REQUESTS_FALLBACK), nothing otherwise.
    """
    if allow_fallback is None:
        allow_fallback = settings.CLIENT_FALLBACK_SHOW_ALL
    email = viewer.email
    if not email:
        if not allow_fallback:
            return VisibleSet([])
        logger.warning("Client without email: showing all requests (fallback mode)")
        return VisibleSet(
            [request_item(r) for r in requests], VisibilityMode.ALL_REQUESTS_FALLBACK,
        )
    return VisibleSet([request_item(r) for r in requests if normalize(r.client_email) == email])


def executive_tokens(viewer: Viewer, staffers: Iterable[Staffer]) -> frozenset[str]:
    """The executive's own identifiers, including their directory entry."""
    user = viewer.user
    if user is None:
        return frozenset()
    tokens = token_set(user.id, user.email)
    staffer = resolve_staffer(user, staffers)
    if staffer is not None:
        tokens |= staffer_tokens(staffer)
    return tokens


def executive_items(viewer: Viewer, snapshot: CalendarSnapshot) -> VisibleSet:
    user = viewer.user
    if user is None:
        return VisibleSet([])
    items: list[CalendarItem] = []

    target = token_set(resolved_staffer_id(user, snapshot.staffers))
    for event in snapshot.events:
        if event.staffer_id and not target.isdisjoint(token_set(event.staffer_id)):
            items.append(admin_event_item(event, from_admin=True))

    own = executive_tokens(viewer, snapshot.staffers)
    wanted = own | snapshot.team_tokens
    requests = {r.id: r for r in snapshot.requests}
    for assignment in snapshot.assignments:
        if recipient_tokens(assignment).isdisjoint(wanted):
            continue
        issued_by_other = bool(assignment.assigned_by_email) and (
            normalize(assignment.assigned_by_email) != viewer.email
        )
        items.append(
            assignment_item(
                assignment,
                requests.get(assignment.request_id or ""),
                from_admin=is_admin_issued(assignment) or issued_by_other,
            )
        )
    return VisibleSet(items)


def staffer_items(viewer: Viewer, snapshot: CalendarSnapshot) -> VisibleSet:
    """Read-only calendar: admin events for everyone plus those aimed at the viewer."""
    target = token_set(resolved_staffer_id(viewer.user, snapshot.staffers))
    items = [
        admin_event_item(event)
        for event in snapshot.events
        if not event.staffer_id or not target.isdisjoint(token_set(event.staffer_id))
    ]
    return VisibleSet(items)


def role_calendar(
    assignments: Iterable[Assignment],
    viewer: Viewer | None = None,
    filter_by_user: bool = False,
    staffers: Iterable[Staffer] = (),
) -> RoleCalendar:
    """Split assignments into "Events" and "Class Schedule".

    Request-derived assignments without a title fall in neither.
    """
    assignments = list(assignments)
    if filter_by_user:
        user = viewer.user if viewer else None
        mine = expand_tokens(token_set(user.id, user.email) if user else (), staffers)
        assignments = [a for a in assignments if not recipient_tokens(a).isdisjoint(mine)]
    return RoleCalendar(
        events=[a for a in assignments if not a.request_id and not a.task_title],
        class_schedule=[a for a in assignments if a.task_title],
    )


def section_head_items(viewer: Viewer, snapshot: CalendarSnapshot) -> VisibleSet:
    calendar = role_calendar(
        snapshot.assignments, viewer, viewer.filter_by_user, snapshot.staffers,
    )
    items = [assignment_item(a, default_title="Event") for a in calendar.events]
    items += [assignment_item(a) for a in calendar.class_schedule]
    return VisibleSet(items)


def visible_items(viewer: Viewer, snapshot: CalendarSnapshot) -> VisibleSet:
    """Dispatch to the rule for the viewer's calendar."""
    role = ViewerRole(viewer.role)
    if role == ViewerRole.CLIENT:
        return client_items(viewer, snapshot.requests)
    if role == ViewerRole.EXECUTIVE:
        return executive_items(viewer, snapshot)
    if role == ViewerRole.SECTION_HEAD:
        return section_head_items(viewer, snapshot)
    return staffer_items(viewer, snapshot)


# ---------------------------------------------------------------------------
# Admin availability calendar
# ---------------------------------------------------------------------------


def availability_markers(
    availability: Iterable[ClientAvailability],
    requests: Iterable[ClientRequest],
) -> list[CalendarItem]:
    """Day markers for the admin availability calendar.

    Each availability record becomes one marker carrying that date's request
    count. Dates with requests but no record get a neutral "N Client
    Request(s)" marker instead of an available/unavailable colour.
    """
    counts = Counter(r.date for r in requests)
    items: list[CalendarItem] = []
    recorded: set[str] = set()
    for record in availability:
        recorded.add(record.date)
        count = counts.get(record.date, 0)
        label = "Available" if record.available else "Not Available"
        if count:
            label += f" ({count} request{'s' if count > 1 else ''})"
        items.append(
            CalendarItem(
                id=f"availability-{record.date}",
                kind=ItemKind.AVAILABILITY,
                source_id=record.date,
                title=label,
                start=record.date,
                status="available" if record.available else "unavailable",
                notes=record.notes,
                request_count=count,
            )
        )
    for day in sorted(counts):
        if day in recorded:
            continue
        count = counts[day]
        items.append(
            CalendarItem(
                id=f"client-requests-{day}",
                kind=ItemKind.REQUEST_COUNT,
                source_id=day,
                title=f"{count} Client Request{'s' if count > 1 else ''}",
                start=day,
                request_count=count,
            )
        )
    return items
