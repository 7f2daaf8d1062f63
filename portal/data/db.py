"""
Scheduling Portal — SQLite stores.

One store per collaborator contract. Each read returns fresh entities and
each write is a single statement, so callers follow "read fully, compute,
write fully"; concurrent writers are last-write-wins.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import asdict, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from portal.data.models import (
    AdminEvent,
    Assignment,
    AssignmentStatus,
    ClientAvailability,
    ClientRequest,
    Invitation,
    InvitationStatus,
    RequestStatus,
    ScheduleNote,
    Section,
    Staffer,
    TeamMember,
    User,
    UserRole,
)
from portal.ports.store_port import StoreError

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


def _now() -> str:
    return datetime.now().isoformat()


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


class _SQLiteDB:
    """Connection handling and generic CRUD shared by every store."""

    _table = ""
    _key = "id"
    _columns: dict[str, str] = {}
    _order_by = ""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from portal.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the table if it doesn't exist, and migrate schema."""
        cols = ",\n".join(f'"{name}" {ddl}' for name, ddl in self._columns.items())
        with self._connect() as conn:
            conn.execute(f"CREATE TABLE IF NOT EXISTS {self._table} (\n{cols}\n)")
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1]
                for row in conn.execute(f"PRAGMA table_info({self._table})").fetchall()
            }
            for name, ddl in self._columns.items():
                if name not in existing_cols:
                    ddl = ddl.replace("PRIMARY KEY", "").replace("UNIQUE", "")
                    conn.execute(f'ALTER TABLE {self._table} ADD COLUMN "{name}" {ddl}')
        logger.debug("%s table initialized at %s", self._table, self._db_path)

    def _row_to_entity(self, row: sqlite3.Row) -> Any:
        raise NotImplementedError

    def _run(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        try:
            with self._connect() as conn:
                return conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StoreError(f"{self._table}: {exc}") from exc

    def _select(self, where: str = "", params: tuple | list = ()) -> list:
        query = f"SELECT * FROM {self._table}"
        if where:
            query += f" WHERE {where}"
        if self._order_by:
            query += f" ORDER BY {self._order_by}"
        try:
            with self._connect() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"{self._table}: {exc}") from exc
        return [self._row_to_entity(r) for r in rows]

    def _get(self, key: str) -> Any:
        found = self._select(f'"{self._key}" = ?', (key,))
        return found[0] if found else None

    def _insert(self, entity: Any) -> None:
        values = {k: _to_db(v) for k, v in asdict(entity).items() if k in self._columns}
        names = ", ".join(f'"{k}"' for k in values)
        marks = ", ".join("?" for _ in values)
        self._run(
            f"INSERT INTO {self._table} ({names}) VALUES ({marks})",
            tuple(values.values()),
        )

    def _update(self, key: str, patch: dict) -> Any:
        unknown = set(patch) - set(self._columns) - {self._key}
        if unknown:
            raise ValueError(f"Unknown {self._table} fields: {sorted(unknown)}")
        patch = {k: v for k, v in patch.items() if k != self._key}
        if patch:
            assignments = ", ".join(f'"{k}" = ?' for k in patch)
            cursor = self._run(
                f'UPDATE {self._table} SET {assignments} WHERE "{self._key}" = ?',
                (*[_to_db(v) for v in patch.values()], key),
            )
            if cursor.rowcount == 0:
                return None
        return self._get(key)

    def _delete(self, key: str) -> bool:
        cursor = self._run(f'DELETE FROM {self._table} WHERE "{self._key}" = ?', (key,))
        return cursor.rowcount > 0


class StafferDB(_SQLiteDB):
    """SQLite-backed staff directory."""

    _table = "staffers"
    _columns = {
        "id": "TEXT PRIMARY KEY",
        "first_name": "TEXT NOT NULL",
        "last_name": "TEXT NOT NULL DEFAULT ''",
        "email": "TEXT NOT NULL",
        "position": "TEXT NOT NULL DEFAULT ''",
        "section": "TEXT NOT NULL",
        "avatar": "TEXT",
        "created_at": "TEXT NOT NULL DEFAULT ''",
        "updated_at": "TEXT",
    }
    _order_by = "last_name, first_name"

    def _row_to_entity(self, row: sqlite3.Row) -> Staffer:
        return Staffer(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            position=row["position"],
            section=Section(row["section"]),
            avatar=row["avatar"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def create(self, staffer: Staffer) -> Staffer:
        staffer = replace(
            staffer,
            id=staffer.id or new_id(),
            section=Section(staffer.section),
            created_at=staffer.created_at or _now(),
        )
        self._insert(staffer)
        logger.info("Staffer added: %s <%s> (%s)", staffer.id, staffer.email, staffer.section.value)
        return staffer

    def list(self) -> list[Staffer]:
        return self._select()

    def by_id(self, staffer_id: str) -> Staffer | None:
        return self._get(staffer_id)

    def by_email(self, email: str) -> Staffer | None:
        found = self._select("lower(email) = ?", (email.strip().lower(),))
        return found[0] if found else None

    def by_section(self, section: Section) -> list[Staffer]:
        return self._select("section = ?", (Section(section).value,))

    def update(self, staffer_id: str, patch: dict) -> Staffer | None:
        """Update directory fields. The section is fixed at registration."""
        current = self.by_id(staffer_id)
        if current is None:
            return None
        if "section" in patch and Section(patch["section"]) != current.section:
            raise ValueError(f"Staffer {staffer_id} section cannot change")
        updated = self._update(staffer_id, {**patch, "updated_at": _now()})
        logger.info("Staffer %s updated", staffer_id)
        return updated

    def delete(self, staffer_id: str) -> bool:
        deleted = self._delete(staffer_id)
        if deleted:
            logger.info("Staffer %s deleted", staffer_id)
        return deleted


class UserDB(_SQLiteDB):
    """SQLite-backed login accounts."""

    _table = "users"
    _columns = {
        "id": "TEXT PRIMARY KEY",
        "email": "TEXT NOT NULL UNIQUE",
        "role": "TEXT NOT NULL",
        "name": "TEXT NOT NULL DEFAULT ''",
        "password": "TEXT",
        "position": "TEXT",
        "avatar": "TEXT",
    }
    _order_by = "email"

    def _row_to_entity(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            role=UserRole(row["role"]),
            name=row["name"],
            password=row["password"],
            position=row["position"],
            avatar=row["avatar"],
        )

    def create(self, user: User) -> User:
        user = replace(user, id=user.id or new_id(), role=UserRole(user.role))
        self._insert(user)
        logger.info("User registered: %s <%s> as %s", user.id, user.email, user.role.value)
        return user

    def list(self) -> list[User]:
        return self._select()

    def by_id(self, user_id: str) -> User | None:
        return self._get(user_id)

    def get_by_email(self, email: str) -> User | None:
        found = self._select("lower(email) = ?", (email.strip().lower(),))
        return found[0] if found else None

    def update(self, user_id: str, patch: dict) -> User | None:
        updated = self._update(user_id, patch)
        if updated is not None:
            logger.info("User %s updated", user_id)
        return updated


class RequestDB(_SQLiteDB):
    """SQLite-backed client requests."""

    _table = "requests"
    _columns = {
        "id": "TEXT PRIMARY KEY",
        "title": "TEXT NOT NULL",
        "date": "TEXT NOT NULL",
        "description": "TEXT NOT NULL DEFAULT ''",
        "time": "TEXT",
        "location": "TEXT NOT NULL DEFAULT ''",
        "person_to_contact": "TEXT NOT NULL DEFAULT ''",
        "contact_info": "TEXT NOT NULL DEFAULT ''",
        "service_needed": "TEXT NOT NULL DEFAULT ''",
        "attached_file": "TEXT",
        "file_name": "TEXT",
        "status": "TEXT NOT NULL DEFAULT 'pending'",
        "client_email": "TEXT",
        "client_name": "TEXT",
        "approved_by": "TEXT",
        "date_approved": "TEXT",
        "denied_by": "TEXT",
        "date_denied": "TEXT",
        "reason_of_denial": "TEXT",
        "created_at": "TEXT NOT NULL DEFAULT ''",
        "updated_at": "TEXT",
    }
    _order_by = "date, created_at"

    def _row_to_entity(self, row: sqlite3.Row) -> ClientRequest:
        values = {name: row[name] for name in self._columns}
        values["status"] = RequestStatus(values["status"])
        return ClientRequest(**values)

    def create(self, request: ClientRequest) -> ClientRequest:
        now = _now()
        request = replace(
            request,
            id=request.id or new_id(),
            status=RequestStatus(request.status),
            created_at=request.created_at or now,
            updated_at=request.updated_at or now,
        )
        self._insert(request)
        logger.info("Request added: %s '%s' on %s", request.id, request.title, request.date)
        return request

    def list(self) -> list[ClientRequest]:
        return self._select()

    def by_id(self, request_id: str) -> ClientRequest | None:
        return self._get(request_id)

    def list_by_status(self, status: RequestStatus) -> list[ClientRequest]:
        return self._select("status = ?", (RequestStatus(status).value,))

    def update(self, request_id: str, patch: dict) -> ClientRequest | None:
        updated = self._update(request_id, {**patch, "updated_at": _now()})
        if updated is not None:
            logger.info("Request %s updated: %s", request_id, sorted(patch))
        return updated

    def delete(self, request_id: str) -> bool:
        deleted = self._delete(request_id)
        if deleted:
            logger.info("Request %s deleted", request_id)
        return deleted


class AvailabilityDB(_SQLiteDB):
    """SQLite-backed per-date client availability."""

    _table = "client_availability"
    _key = "date"
    _columns = {
        "date": "TEXT PRIMARY KEY",
        "available": "INTEGER NOT NULL",
        "notes": "TEXT",
    }
    _order_by = "date"

    def _row_to_entity(self, row: sqlite3.Row) -> ClientAvailability:
        return ClientAvailability(
            date=row["date"],
            available=bool(row["available"]),
            notes=row["notes"],
        )

    def list(self) -> list[ClientAvailability]:
        return self._select()

    def get(self, date: str) -> ClientAvailability | None:
        return self._get(date)

    def set(self, date: str, available: bool, notes: str | None = None) -> ClientAvailability:
        """Create or overwrite the record for a date."""
        self._run(
            """
            INSERT INTO client_availability (date, available, notes)
            VALUES (?, ?, ?)
            ON CONFLICT(date) DO UPDATE SET available = excluded.available,
                                            notes = excluded.notes
            """,
            (date, int(available), notes),
        )
        logger.info("Availability for %s set to %s", date, available)
        return ClientAvailability(date=date, available=available, notes=notes)

    def delete(self, date: str) -> bool:
        deleted = self._delete(date)
        if deleted:
            logger.info("Availability for %s cleared", date)
        return deleted


class AssignmentDB(_SQLiteDB):
    """SQLite-backed assignments. Deletion is permanent."""

    _table = "assignments"
    _columns = {
        "id": "TEXT PRIMARY KEY",
        "assigned_to": "TEXT NOT NULL",
        "section": "TEXT NOT NULL",
        "assigned_at": "TEXT NOT NULL",
        "assigned_to_id": "TEXT",
        "assigned_to_email": "TEXT",
        "assigned_to_name": "TEXT NOT NULL DEFAULT ''",
        "request_id": "TEXT",
        "assigned_by": "TEXT",
        "assigned_by_email": "TEXT",
        "task_title": "TEXT",
        "task_date": "TEXT",
        "task_time": "TEXT",
        "task_location": "TEXT",
        "notes": "TEXT",
        "status": "TEXT NOT NULL DEFAULT 'pending'",
        "accepted_by": "TEXT",
        "accepted_at": "TEXT",
        "completed_at": "TEXT",
        "rejected_by": "TEXT",
        "rejected_by_email": "TEXT",
        "rejected_at": "TEXT",
        "rejection_reason": "TEXT",
    }
    _order_by = "assigned_at"

    def _row_to_entity(self, row: sqlite3.Row) -> Assignment:
        values = {name: row[name] for name in self._columns}
        values["section"] = Section(values["section"])
        values["status"] = AssignmentStatus(values["status"])
        return Assignment(**values)

    def create(self, assignment: Assignment) -> Assignment:
        assignment = replace(assignment, id=assignment.id or new_id())
        self._insert(assignment)
        logger.info(
            "Assignment added: %s for %s (%s)",
            assignment.id, assignment.assigned_to, Section(assignment.section).value,
        )
        return assignment

    def list(self) -> list[Assignment]:
        return self._select()

    def by_id(self, assignment_id: str) -> Assignment | None:
        return self._get(assignment_id)

    def by_request(self, request_id: str) -> list[Assignment]:
        return self._select("request_id = ?", (request_id,))

    def update(self, assignment_id: str, patch: dict) -> Assignment | None:
        updated = self._update(assignment_id, patch)
        if updated is not None:
            logger.info("Assignment %s updated: %s", assignment_id, sorted(patch))
        return updated

    def delete(self, assignment_id: str) -> bool:
        deleted = self._delete(assignment_id)
        if deleted:
            logger.info("Assignment %s deleted", assignment_id)
        return deleted


class InvitationDB(_SQLiteDB):
    """SQLite-backed assignment invitations."""

    _table = "invitations"
    _columns = {
        "id": "TEXT PRIMARY KEY",
        "assignment_id": "TEXT NOT NULL",
        "invited_to": "TEXT NOT NULL",
        "invited_by": "TEXT NOT NULL",
        "request_id": "TEXT",
        "invited_to_name": "TEXT NOT NULL DEFAULT ''",
        "invited_by_name": "TEXT NOT NULL DEFAULT ''",
        "status": "TEXT NOT NULL DEFAULT 'pending'",
        "sent_at": "TEXT NOT NULL DEFAULT ''",
        "responded_at": "TEXT",
    }
    _order_by = "sent_at"

    def _row_to_entity(self, row: sqlite3.Row) -> Invitation:
        values = {name: row[name] for name in self._columns}
        values["status"] = InvitationStatus(values["status"])
        return Invitation(**values)

    def create(self, invitation: Invitation) -> Invitation:
        invitation = replace(
            invitation,
            id=invitation.id or new_id(),
            sent_at=invitation.sent_at or _now(),
        )
        self._insert(invitation)
        logger.info(
            "Invitation %s sent to %s for assignment %s",
            invitation.id, invitation.invited_to, invitation.assignment_id,
        )
        return invitation

    def list(self) -> list[Invitation]:
        return self._select()

    def by_id(self, invitation_id: str) -> Invitation | None:
        return self._get(invitation_id)

    def for_staffer(self, staffer_id: str) -> list[Invitation]:
        return self._select("invited_to = ?", (staffer_id,))

    def sent_by(self, executive: str) -> list[Invitation]:
        return self._select("invited_by = ?", (executive,))

    def update(self, invitation_id: str, patch: dict) -> Invitation | None:
        return self._update(invitation_id, patch)

    def delete(self, invitation_id: str) -> bool:
        deleted = self._delete(invitation_id)
        if deleted:
            logger.info("Invitation %s withdrawn", invitation_id)
        return deleted


class TeamDB(_SQLiteDB):
    """SQLite-backed executive rosters: (executive email, staffer id) pairs."""

    _table = "team_members"
    _columns = {
        "id": "TEXT PRIMARY KEY",
        "executive_email": "TEXT NOT NULL",
        "staffer_id": "TEXT NOT NULL",
        "staffer_name": "TEXT NOT NULL DEFAULT ''",
        "section": "TEXT",
        "added_by_name": "TEXT NOT NULL DEFAULT ''",
        "added_at": "TEXT NOT NULL DEFAULT ''",
    }
    _order_by = "added_at"

    def _row_to_entity(self, row: sqlite3.Row) -> TeamMember:
        return TeamMember(
            id=row["id"],
            executive_email=row["executive_email"],
            staffer_id=row["staffer_id"],
            staffer_name=row["staffer_name"],
            section=Section(row["section"]) if row["section"] else None,
            added_by_name=row["added_by_name"],
            added_at=row["added_at"],
        )

    def members_of(self, executive_email: str) -> list[TeamMember]:
        return self._select(
            "lower(executive_email) = ?", (executive_email.strip().lower(),)
        )

    def add(self, member: TeamMember) -> TeamMember:
        member = replace(member, id=member.id or new_id(), added_at=member.added_at or _now())
        self._insert(member)
        logger.info("Staffer %s added to team of %s", member.staffer_id, member.executive_email)
        return member

    def remove(self, member_id: str) -> bool:
        removed = self._delete(member_id)
        if removed:
            logger.info("Team member %s removed", member_id)
        return removed


class EventDB(_SQLiteDB):
    """SQLite-backed admin calendar events."""

    _table = "admin_events"
    _columns = {
        "id": "TEXT PRIMARY KEY",
        "title": "TEXT NOT NULL",
        "start": "TEXT NOT NULL",
        "description": "TEXT NOT NULL DEFAULT ''",
        "location": "TEXT NOT NULL DEFAULT ''",
        "end": "TEXT",
        "staffer_id": "TEXT",
        "assigned_by_name": "TEXT",
    }
    _order_by = "start"

    def _row_to_entity(self, row: sqlite3.Row) -> AdminEvent:
        return AdminEvent(**{name: row[name] for name in self._columns})

    def list(self) -> list[AdminEvent]:
        return self._select()

    def create(self, event: AdminEvent) -> AdminEvent:
        event = replace(event, id=event.id or new_id())
        self._insert(event)
        logger.info("Admin event added: %s '%s' on %s", event.id, event.title, event.start)
        return event

    def delete(self, event_id: str) -> bool:
        return self._delete(event_id)


class ScheduleNoteDB(_SQLiteDB):
    """SQLite-backed notes on staffers' class-schedule slots."""

    _table = "schedule_notes"
    _columns = {
        "id": "TEXT PRIMARY KEY",
        "staffer_id": "TEXT NOT NULL",
        "day": "TEXT NOT NULL",
        "time_slot": "TEXT NOT NULL",
        "notes": "TEXT NOT NULL",
        "semester": "TEXT NOT NULL",
        "added_by": "TEXT NOT NULL DEFAULT ''",
        "added_by_name": "TEXT NOT NULL DEFAULT ''",
        "added_by_position": "TEXT NOT NULL DEFAULT ''",
        "created_at": "TEXT NOT NULL DEFAULT ''",
        "updated_at": "TEXT",
    }
    _order_by = "day, time_slot"

    def _row_to_entity(self, row: sqlite3.Row) -> ScheduleNote:
        return ScheduleNote(**{name: row[name] for name in self._columns})

    def list_for(self, staffer_id: str) -> list[ScheduleNote]:
        return self._select("staffer_id = ?", (staffer_id,))

    def find_slot(
        self, staffer_id: str, day: str, time_slot: str, semester: str
    ) -> ScheduleNote | None:
        found = self._select(
            "staffer_id = ? AND day = ? AND time_slot = ? AND semester = ?",
            (staffer_id, day, time_slot, semester),
        )
        return found[0] if found else None

    def save(self, note: ScheduleNote) -> ScheduleNote:
        """Insert a note, or overwrite the one with the same id."""
        if note.id and self._get(note.id) is not None:
            patch = {k: v for k, v in asdict(note).items() if k != "id"}
            self._update(note.id, patch)
            logger.info("Schedule note %s updated", note.id)
            return note
        note = replace(note, id=note.id or new_id(), created_at=note.created_at or _now())
        self._insert(note)
        logger.info("Schedule note added: %s for staffer %s", note.id, note.staffer_id)
        return note

    def delete(self, note_id: str) -> bool:
        return self._delete(note_id)
