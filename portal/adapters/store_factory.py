"""Store factory — builds every SQLite store on one database file."""

from __future__ import annotations

from dataclasses import dataclass

from portal.data.db import (
    AssignmentDB,
    AvailabilityDB,
    EventDB,
    InvitationDB,
    RequestDB,
    ScheduleNoteDB,
    StafferDB,
    TeamDB,
    UserDB,
)


@dataclass
class Stores:
    staffers: StafferDB
    users: UserDB
    requests: RequestDB
    availability: AvailabilityDB
    assignments: AssignmentDB
    invitations: InvitationDB
    team: TeamDB
    events: EventDB
    schedule_notes: ScheduleNoteDB


def create_stores(db_path: str | None = None) -> Stores:
    """Return all stores backed by db_path (default: settings.DATABASE_PATH).

    Args:
        db_path: SQLite file. ":memory:" is not useful here because each
            store call opens its own connection.
    """
    if db_path is None:
        from portal.config import settings
        db_path = settings.DATABASE_PATH

    return Stores(
        staffers=StafferDB(db_path),
        users=UserDB(db_path),
        requests=RequestDB(db_path),
        availability=AvailabilityDB(db_path),
        assignments=AssignmentDB(db_path),
        invitations=InvitationDB(db_path),
        team=TeamDB(db_path),
        events=EventDB(db_path),
        schedule_notes=ScheduleNoteDB(db_path),
    )
