"""
Scheduling Portal — Assignment Lifecycle Manager.

Creates assignments, drives them through their states and keeps the
companion invitations. Lifecycle:

    pending ──> accepted ──> completed
       │           │
       │           └───────> rejected
       ├──────────────────> completed
       └──────────────────> rejected

rejected and completed are terminal. A rejected request-derived assignment
is never revived; re-assigning the request creates a new assignment.

All checks run before the first write; every successful mutation emits
Topic.ASSIGNMENT_CHANGED (or INVITATION_CHANGED) after persisting.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError

from portal.config import settings
from portal.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from portal.core.identity import Identity, expand_tokens, normalize, recipient_tokens, token_set
from portal.core.roles import can_approve
from portal.data.models import (
    Assignment,
    AssignmentStatus,
    ClientRequest,
    Invitation,
    InvitationStatus,
    Section,
    Staffer,
    User,
)
from portal.ports.notification_port import Topic
from portal.ports.store_port import StoreError

if TYPE_CHECKING:
    from portal.ports.notification_port import ChangeBus
    from portal.ports.store_port import AssignmentStore, InvitationStore

logger = logging.getLogger(__name__)

TERMINAL_STATES = frozenset({AssignmentStatus.REJECTED, AssignmentStatus.COMPLETED})

ALLOWED_TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    AssignmentStatus.PENDING: frozenset(
        {AssignmentStatus.ACCEPTED, AssignmentStatus.REJECTED, AssignmentStatus.COMPLETED}
    ),
    AssignmentStatus.ACCEPTED: frozenset(
        {AssignmentStatus.REJECTED, AssignmentStatus.COMPLETED}
    ),
    AssignmentStatus.REJECTED: frozenset(),
    AssignmentStatus.COMPLETED: frozenset(),
}

RECIPIENT_FIELDS = ("assigned_to", "assigned_to_id", "assigned_to_email")

# Fields an edit may touch. Status and audit stamps only move via transitions.
EDITABLE_FIELDS = frozenset({
    "assigned_to",
    "assigned_to_id",
    "assigned_to_email",
    "assigned_to_name",
    "section",
    "task_title",
    "task_date",
    "task_time",
    "task_location",
    "notes",
})


# ---------------------------------------------------------------------------
# Input contract
# ---------------------------------------------------------------------------


class AssignmentInput(BaseModel):
    """Fields accepted when creating an assignment."""

    model_config = ConfigDict(extra="forbid")

    assigned_to: str | None = None
    assigned_to_id: str | None = None
    assigned_to_email: str | None = None
    assigned_to_name: str = ""
    section: Section
    request_id: str | None = None
    assigned_by: str | None = None
    assigned_by_email: str | None = None
    task_title: str | None = None
    task_date: str | None = None
    task_time: str | None = None
    task_location: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def require_recipient(self) -> AssignmentInput:
        if not token_set(self.assigned_to, self.assigned_to_id, self.assigned_to_email):
            raise ValueError("a recipient (assigned_to, assigned_to_id or assigned_to_email) is required")
        return self


def _as_validation_error(exc: PydanticValidationError) -> ValidationError:
    first = exc.errors()[0]
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else "assigned_to"
    return ValidationError(f"{field}: {first.get('msg', 'invalid value')}", field=field)


def _fill_recipient(values: dict) -> dict:
    """Derive missing recipient identifiers from the ones supplied.

    Supplied values are never overwritten.
    """
    assigned_to = values.get("assigned_to") or values.get("assigned_to_id") or values.get("assigned_to_email")
    values["assigned_to"] = assigned_to
    if not values.get("assigned_to_id"):
        values["assigned_to_id"] = assigned_to
    if not values.get("assigned_to_email") and assigned_to and "@" in assigned_to:
        values["assigned_to_email"] = assigned_to
    return values


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


def is_admin_issued(assignment: Assignment) -> bool:
    return (assignment.assigned_by or "") in settings.ADMIN_ASSIGNER_NAMES


def can_manage(actor: User | Identity | None, assignment: Assignment | None) -> bool:
    """Whether the actor may edit or delete the assignment.

    True when the actor created it (matched by email), or when it is a team
    task (no request) that was not issued by the admin desk. Missing emails
    never count as a match.
    """
    if actor is None or assignment is None:
        return False
    actor_email = normalize(actor.email)
    created_by_actor = bool(actor_email) and actor_email == normalize(assignment.assigned_by_email)
    is_team_task = not assignment.request_id
    return created_by_actor or (is_team_task and not is_admin_issued(assignment))


def may_respond(actor: User, assignment: Assignment) -> bool:
    """Whether the actor may accept or reject the assignment.

    The recipient answers for themselves; anyone else needs approver rights.
    """
    if not token_set(actor.id, actor.email).isdisjoint(recipient_tokens(assignment)):
        return True
    return can_approve(actor)


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class AssignmentManager:
    """Owns every write to assignments and invitations."""

    def __init__(
        self,
        assignments: AssignmentStore,
        invitations: InvitationStore,
        bus: ChangeBus | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._assignments = assignments
        self._invitations = invitations
        self._bus = bus
        self._clock = clock or datetime.now

    def _stamp(self) -> str:
        return self._clock().isoformat()

    def _emit(self, topic: Topic, payload: object) -> None:
        if self._bus is not None:
            self._bus.emit(topic, payload)

    def _require(self, assignment_id: str) -> Assignment:
        assignment = self._assignments.by_id(assignment_id)
        if assignment is None:
            logger.warning("Assignment %s not found", assignment_id)
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    # --- creation ---------------------------------------------------------

    def create_assignment(self, data: AssignmentInput | dict) -> Assignment:
        """Persist a new pending assignment.

        Request-derived work additionally needs invitations; see invite().
        """
        try:
            parsed = data if isinstance(data, AssignmentInput) else AssignmentInput.model_validate(data)
        except PydanticValidationError as exc:
            raise _as_validation_error(exc) from exc

        values = _fill_recipient(parsed.model_dump())
        assignment = Assignment(
            id="",
            assigned_at=self._stamp(),
            status=AssignmentStatus.PENDING,
            **values,
        )
        created = self._assignments.create(assignment)
        logger.info(
            "Assignment %s created for %s (request=%s)",
            created.id, created.assigned_to, created.request_id or "-",
        )
        self._emit(Topic.ASSIGNMENT_CHANGED, created)
        return created

    def invite(
        self,
        actor: User,
        staffers: Iterable[Staffer],
        *,
        request: ClientRequest | None = None,
        task_date: str | None = None,
        task_title: str | None = None,
        notes: str | None = None,
        location: str | None = None,
    ) -> list[Assignment]:
        """Hand work to one or more staffers.

        One assignment per staffer; request-derived work also gets one
        pending invitation per staffer. If a store write fails partway, the
        records already written are deleted before the error propagates.
        """
        staffers = list(staffers)
        if not staffers:
            raise ValidationError("Select at least one staffer", field="assigned_to")
        task_date = task_date or (request.date if request else None)
        if not task_date:
            raise ValidationError("A date is required", field="task_date")
        title = task_title or (request.title if request else None) or f"Task on {task_date}"

        # Validate every recipient before the first write
        try:
            inputs = [self._invite_input(actor, staffer, request, task_date, title, notes, location)
                      for staffer in staffers]
        except PydanticValidationError as exc:
            raise _as_validation_error(exc) from exc

        created: list[Assignment] = []
        invitations: list[Invitation] = []
        try:
            for staffer, data in zip(staffers, inputs):
                assignment = self.create_assignment(data)
                created.append(assignment)
                if request is not None:
                    invitation = self._invitations.create(
                        Invitation(
                            id="",
                            assignment_id=assignment.id,
                            request_id=request.id,
                            invited_to=staffer.id,
                            invited_to_name=staffer.full_name,
                            invited_by=actor.email or actor.id,
                            invited_by_name=actor.name or "Executive",
                            status=InvitationStatus.PENDING,
                        )
                    )
                    invitations.append(invitation)
                    self._emit(Topic.INVITATION_CHANGED, invitation)
        except StoreError:
            logger.error("Invite failed after %d assignment(s); rolling back", len(created))
            self._roll_back(created, invitations)
            raise
        return created

    def _roll_back(self, assignments: list[Assignment], invitations: list[Invitation]) -> None:
        for invitation in invitations:
            self._invitations.delete(invitation.id)
            self._emit(Topic.INVITATION_CHANGED, invitation)
        for assignment in assignments:
            self._assignments.delete(assignment.id)
            self._emit(Topic.ASSIGNMENT_CHANGED, assignment)

    @staticmethod
    def _invite_input(
        actor: User,
        staffer: Staffer,
        request: ClientRequest | None,
        task_date: str,
        title: str,
        notes: str | None,
        location: str | None,
    ) -> AssignmentInput:
        return AssignmentInput(
            assigned_to=staffer.id,
            assigned_to_id=staffer.id,
            assigned_to_email=staffer.email,
            assigned_to_name=staffer.full_name,
            section=staffer.section,
            request_id=request.id if request else None,
            assigned_by=actor.name or "Executive",
            assigned_by_email=actor.email,
            task_date=task_date,
            task_title=title,
            notes=notes or None,
            task_location=location or None,
        )

    # --- edits ------------------------------------------------------------

    def update_assignment(
        self, assignment_id: str, patch: dict, actor: User | None = None,
    ) -> Assignment:
        """Change recipient, schedule, title, notes or location.

        The status is left alone, including when the recipient changes.
        """
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot edit {', '.join(sorted(unknown))}", field=sorted(unknown)[0],
            )
        current = self._require(assignment_id)
        if current.status in TERMINAL_STATES:
            raise StateConflictError(
                f"Assignment {assignment_id} is {current.status.value} and can no longer be edited"
            )
        if actor is not None and not can_manage(actor, current):
            raise PermissionDeniedError(f"{actor.email} cannot edit assignment {assignment_id}")

        patch = dict(patch)
        if "section" in patch:
            try:
                patch["section"] = Section(patch["section"])
            except ValueError as exc:
                raise ValidationError(f"Unknown section {patch['section']!r}", field="section") from exc
        if any(k in patch for k in RECIPIENT_FIELDS):
            # A new recipient replaces every identifier of the old one
            recipient = {k: patch.get(k) for k in RECIPIENT_FIELDS}
            if not token_set(*recipient.values()):
                raise ValidationError("A recipient is required", field="assigned_to")
            patch.update(_fill_recipient(recipient))
            patch["assigned_to_name"] = patch.get("assigned_to_name") or ""

        updated = self._assignments.update(assignment_id, patch)
        if updated is None:
            raise NotFoundError("Assignment", assignment_id)
        logger.info("Assignment %s edited: %s", assignment_id, sorted(patch))
        self._emit(Topic.ASSIGNMENT_CHANGED, updated)
        return updated

    # --- transitions ------------------------------------------------------

    def _transition(
        self, assignment_id: str, target: AssignmentStatus, stamps: dict,
        actor: User | None = None,
    ) -> Assignment:
        current = self._require(assignment_id)
        if actor is not None and not may_respond(actor, current):
            logger.warning("%s may not answer assignment %s", actor.email, assignment_id)
            raise PermissionDeniedError(
                f"{actor.email} cannot answer assignment {assignment_id} on behalf of its recipient"
            )
        if target not in ALLOWED_TRANSITIONS[current.status]:
            logger.warning(
                "Refused %s -> %s for assignment %s",
                current.status.value, target.value, assignment_id,
            )
            raise StateConflictError(
                f"Assignment {assignment_id} is {current.status.value}; cannot become {target.value}"
            )
        updated = self._assignments.update(assignment_id, {"status": target, **stamps})
        if updated is None:
            raise NotFoundError("Assignment", assignment_id)
        logger.info("Assignment %s: %s -> %s", assignment_id, current.status.value, target.value)
        self._emit(Topic.ASSIGNMENT_CHANGED, updated)
        return updated

    def accept_assignment(
        self,
        assignment_id: str,
        accepted_by: str | None = None,
        actor: User | None = None,
    ) -> Assignment:
        return self._transition(
            assignment_id,
            AssignmentStatus.ACCEPTED,
            {"accepted_by": accepted_by, "accepted_at": self._stamp()},
            actor,
        )

    def reject_assignment(
        self,
        assignment_id: str,
        reason: str,
        rejected_by: str,
        rejected_by_email: str | None = None,
        actor: User | None = None,
    ) -> Assignment:
        """Decline an assignment. A non-blank reason is mandatory."""
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required", field="rejection_reason")
        return self._transition(
            assignment_id,
            AssignmentStatus.REJECTED,
            {
                "rejection_reason": reason.strip(),
                "rejected_by": rejected_by,
                "rejected_by_email": rejected_by_email,
                "rejected_at": self._stamp(),
            },
            actor,
        )

    def complete_assignment(self, assignment_id: str) -> Assignment:
        return self._transition(
            assignment_id, AssignmentStatus.COMPLETED, {"completed_at": self._stamp()},
        )

    def delete_assignment(self, assignment_id: str, actor: User | Identity) -> None:
        """Remove the record for good. Only a managing actor may do this."""
        current = self._require(assignment_id)
        if not can_manage(actor, current):
            logger.warning("%s may not delete assignment %s", actor.email, assignment_id)
            raise PermissionDeniedError(f"{actor.email} cannot delete assignment {assignment_id}")
        if not self._assignments.delete(assignment_id):
            raise NotFoundError("Assignment", assignment_id)
        self._emit(Topic.ASSIGNMENT_CHANGED, current)

    # --- invitations ------------------------------------------------------

    def respond_to_invitation(
        self, invitation_id: str, status: InvitationStatus | str,
    ) -> Invitation:
        """Record the invitee's answer.

        The backing assignment is not touched; its own status stays
        authoritative.
        """
        try:
            status = InvitationStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown invitation status {status!r}", field="status") from exc
        if status == InvitationStatus.PENDING:
            raise ValidationError("A response must accept or reject", field="status")

        invitation = self._invitations.by_id(invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation", invitation_id)
        if invitation.status != InvitationStatus.PENDING:
            raise StateConflictError(
                f"Invitation {invitation_id} was already {invitation.status.value}"
            )
        updated = self._invitations.update(
            invitation_id, {"status": status, "responded_at": self._stamp()},
        )
        if updated is None:
            raise NotFoundError("Invitation", invitation_id)
        self._emit(Topic.INVITATION_CHANGED, updated)
        return updated

    # --- queries ----------------------------------------------------------

    def assignments_for(
        self, staffers: Iterable[Staffer], *identifiers: str | None,
    ) -> list[Assignment]:
        """Assignments whose recipient matches any identifier given.

        Identifiers are expanded through the directory, so an id also finds
        assignments stored under that staffer's email.
        """
        wanted = expand_tokens(token_set(*identifiers), staffers)
        if not wanted:
            return []
        return [a for a in self._assignments.list() if not recipient_tokens(a).isdisjoint(wanted)]
