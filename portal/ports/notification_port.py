"""Notification port — abstract interface for change notifications.

Mutating operations emit a topic after persisting so that other open views
re-run their visibility queries. Delivery is in-process only.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Protocol


class Topic(str, Enum):
    ASSIGNMENT_CHANGED = "assignment-changed"
    REQUEST_CHANGED = "request-changed"
    AVAILABILITY_CHANGED = "availability-changed"
    EVENT_CHANGED = "event-changed"
    INVITATION_CHANGED = "invitation-changed"
    TEAM_CHANGED = "team-changed"
    STAFFER_CHANGED = "staffer-changed"
    SCHEDULE_NOTE_CHANGED = "schedule-note-changed"


Handler = Callable[[Topic, Any], None]


class ChangeBus(Protocol):
    """Abstract change-notification interface used by core modules."""

    def emit(self, topic: Topic, payload: Any = None) -> None: ...

    def subscribe(self, topic: Topic, handler: Handler) -> Callable[[], None]: ...
