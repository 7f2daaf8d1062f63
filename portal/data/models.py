"""
Scheduling Portal — Data Models.

Plain entities shared by the stores and the engine. Field names follow the
portal's record shapes; every field must survive a store round-trip unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Section(str, Enum):
    EXECUTIVES = "executives"
    SCRIBES = "scribes"
    CREATIVES = "creatives"
    MANAGERIAL = "managerial"
    CLIENTS = "clients"


class UserRole(str, Enum):
    ADMIN = "admin"
    STAFFER = "staffer"
    CLIENT = "client"
    SECTION_HEAD = "section-head"
    REGULAR_STAFF = "regular-staff"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class Staffer:
    """A directory entry. `section` never changes after registration."""

    id: str
    first_name: str
    last_name: str
    email: str
    position: str
    section: Section
    avatar: str | None = None
    created_at: str = ""
    updated_at: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class User:
    """A login account. Linked to a Staffer only by email/id, never by key."""

    id: str
    email: str
    role: UserRole
    name: str = ""
    password: str | None = None
    position: str | None = None
    avatar: str | None = None


@dataclass
class ClientRequest:
    id: str
    title: str
    date: str                              # ISO date YYYY-MM-DD
    description: str = ""
    time: str | None = None                # HH:MM
    location: str = ""
    person_to_contact: str = ""
    contact_info: str = ""
    service_needed: str = ""
    attached_file: str | None = None
    file_name: str | None = None
    status: RequestStatus = RequestStatus.PENDING
    client_email: str | None = None
    client_name: str | None = None
    approved_by: str | None = None
    date_approved: str | None = None
    denied_by: str | None = None
    date_denied: str | None = None
    reason_of_denial: str | None = None
    created_at: str = ""
    updated_at: str | None = None


@dataclass
class ClientAvailability:
    """One record per date; no record means requests are allowed."""

    date: str
    available: bool
    notes: str | None = None


@dataclass
class Assignment:
    """A unit of work handed to a staffer.

    The recipient is identified by up to three overlapping fields
    (assigned_to, assigned_to_id, assigned_to_email); matching must consider
    all of them. No request_id means a team task rather than request work.
    """

    id: str
    assigned_to: str
    section: Section
    assigned_at: str
    assigned_to_id: str | None = None
    assigned_to_email: str | None = None
    assigned_to_name: str = ""
    request_id: str | None = None
    assigned_by: str | None = None
    assigned_by_email: str | None = None
    task_title: str | None = None
    task_date: str | None = None
    task_time: str | None = None
    task_location: str | None = None
    notes: str | None = None
    status: AssignmentStatus = AssignmentStatus.PENDING
    accepted_by: str | None = None
    accepted_at: str | None = None
    completed_at: str | None = None
    rejected_by: str | None = None
    rejected_by_email: str | None = None
    rejected_at: str | None = None
    rejection_reason: str | None = None


@dataclass
class Invitation:
    """Informational companion of a request-derived assignment."""

    id: str
    assignment_id: str
    invited_to: str
    invited_by: str
    request_id: str | None = None
    invited_to_name: str = ""
    invited_by_name: str = ""
    status: InvitationStatus = InvitationStatus.PENDING
    sent_at: str = ""
    responded_at: str | None = None


@dataclass
class TeamMember:
    """(executive email, staffer id) pair from an executive's roster."""

    id: str
    executive_email: str
    staffer_id: str
    staffer_name: str = ""
    section: Section | None = None
    added_by_name: str = ""
    added_at: str = ""


@dataclass
class AdminEvent:
    """Event authored on the admin calendar. staffer_id None means everyone."""

    id: str
    title: str
    start: str                  # ISO date or datetime
    description: str = ""
    location: str = ""
    end: str | None = None
    staffer_id: str | None = None
    assigned_by_name: str | None = None


@dataclass
class ScheduleNote:
    """Executive's note on one slot of a staffer's weekly class schedule."""

    id: str
    staffer_id: str
    day: str                    # "Monday", ...
    time_slot: str              # "07:00AM-07:30AM"
    notes: str
    semester: str               # "1st" | "2nd"
    added_by: str = ""
    added_by_name: str = ""
    added_by_position: str = ""
    created_at: str = ""
    updated_at: str | None = None
