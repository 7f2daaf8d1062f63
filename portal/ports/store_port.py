"""Store ports — abstract interfaces for entity persistence.

Core modules depend on these protocols, never on SQLite directly.
"""

from __future__ import annotations

from typing import Protocol

from portal.data.models import (
    AdminEvent,
    Assignment,
    ClientAvailability,
    ClientRequest,
    Invitation,
    RequestStatus,
    ScheduleNote,
    Staffer,
    TeamMember,
    User,
)


class StoreError(Exception):
    """Raised when a store read or write fails unexpectedly."""


class StafferDirectory(Protocol):
    def list(self) -> list[Staffer]: ...

    def by_id(self, staffer_id: str) -> Staffer | None: ...

    def by_email(self, email: str) -> Staffer | None: ...

    def create(self, staffer: Staffer) -> Staffer: ...


class UserDirectory(Protocol):
    def get_by_email(self, email: str) -> User | None: ...

    def create(self, user: User) -> User: ...


class RequestStore(Protocol):
    def list(self) -> list[ClientRequest]: ...

    def by_id(self, request_id: str) -> ClientRequest | None: ...

    def create(self, request: ClientRequest) -> ClientRequest: ...

    def update(self, request_id: str, patch: dict) -> ClientRequest | None: ...

    def delete(self, request_id: str) -> bool: ...

    def list_by_status(self, status: RequestStatus) -> list[ClientRequest]: ...


class AvailabilityStore(Protocol):
    def list(self) -> list[ClientAvailability]: ...

    def get(self, date: str) -> ClientAvailability | None: ...

    def set(
        self, date: str, available: bool, notes: str | None = None
    ) -> ClientAvailability: ...

    def delete(self, date: str) -> bool: ...


class AssignmentStore(Protocol):
    def list(self) -> list[Assignment]: ...

    def by_id(self, assignment_id: str) -> Assignment | None: ...

    def create(self, assignment: Assignment) -> Assignment: ...

    def update(self, assignment_id: str, patch: dict) -> Assignment | None: ...

    def delete(self, assignment_id: str) -> bool: ...


class InvitationStore(Protocol):
    def create(self, invitation: Invitation) -> Invitation: ...

    def by_id(self, invitation_id: str) -> Invitation | None: ...

    def update(self, invitation_id: str, patch: dict) -> Invitation | None: ...

    def delete(self, invitation_id: str) -> bool: ...


class TeamStore(Protocol):
    def members_of(self, executive_email: str) -> list[TeamMember]: ...

    def add(self, member: TeamMember) -> TeamMember: ...

    def remove(self, member_id: str) -> bool: ...


class EventStore(Protocol):
    def list(self) -> list[AdminEvent]: ...

    def create(self, event: AdminEvent) -> AdminEvent: ...

    def delete(self, event_id: str) -> bool: ...


class ScheduleNoteStore(Protocol):
    def list_for(self, staffer_id: str) -> list[ScheduleNote]: ...

    def find_slot(
        self, staffer_id: str, day: str, time_slot: str, semester: str
    ) -> ScheduleNote | None: ...

    def save(self, note: ScheduleNote) -> ScheduleNote: ...

    def delete(self, note_id: str) -> bool: ...
