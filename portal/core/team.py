"""
Scheduling Portal — Team Membership Index.

An executive's team is the set of staffers stored under the executive's email
in the team store. An executive without an email has no team.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from portal.core.errors import NotFoundError, ValidationError
from portal.core.identity import Identity, matches, normalize, staffer_tokens, token_set
from portal.data.models import Staffer, TeamMember, User
from portal.ports.notification_port import Topic

if TYPE_CHECKING:
    from portal.ports.notification_port import ChangeBus
    from portal.ports.store_port import StafferDirectory, TeamStore

logger = logging.getLogger(__name__)


def _executive_email(executive: User | Identity) -> str:
    return normalize(executive.email)


class TeamIndex:
    """Lookups over executive rosters, plus roster edits."""

    def __init__(
        self,
        team_store: TeamStore,
        staffers: StafferDirectory,
        bus: ChangeBus | None = None,
    ) -> None:
        self._team = team_store
        self._staffers = staffers
        self._bus = bus

    def _members(self, executive: User | Identity) -> list[TeamMember]:
        email = _executive_email(executive)
        if not email:
            return []
        return self._team.members_of(email)

    def team_of(self, executive: User | Identity) -> list[Staffer]:
        """Staffers on the executive's team. Stale roster rows are skipped."""
        team: list[Staffer] = []
        for member in self._members(executive):
            staffer = self._staffers.by_id(member.staffer_id)
            if staffer is None:
                logger.debug("Roster row %s points at missing staffer %s", member.id, member.staffer_id)
                continue
            team.append(staffer)
        return team

    def member_tokens(self, executive: User | Identity) -> frozenset[str]:
        """Tokens of every team member: stored roster ids plus directory ids/emails."""
        tokens: set[str] = set()
        for member in self._members(executive):
            tokens |= token_set(member.staffer_id)
            staffer = self._staffers.by_id(member.staffer_id)
            if staffer is not None:
                tokens |= staffer_tokens(staffer)
        return frozenset(tokens)

    def is_team_member(self, executive: User | Identity, staffer: Staffer | Identity) -> bool:
        candidate = staffer if isinstance(staffer, Identity) else Identity.of_staffer(staffer)
        # Names are not identities; compare on id/email only
        return matches(token_set(candidate.id, candidate.email), self.member_tokens(executive))

    def add_member(self, executive: User, staffer: Staffer) -> TeamMember:
        """Put a staffer on the executive's team. Adding twice is a no-op."""
        email = _executive_email(executive)
        if not email:
            raise ValidationError("Executive has no email; cannot keep a team", field="email")
        for member in self._team.members_of(email):
            if member.staffer_id == staffer.id:
                return member

        member = self._team.add(
            TeamMember(
                id="",
                executive_email=email,
                staffer_id=staffer.id,
                staffer_name=staffer.full_name,
                section=staffer.section,
                added_by_name=executive.name or "",
            )
        )
        if self._bus is not None:
            self._bus.emit(Topic.TEAM_CHANGED, member)
        return member

    def remove_member(self, member_id: str) -> None:
        if not self._team.remove(member_id):
            raise NotFoundError("Team member", member_id)
        if self._bus is not None:
            self._bus.emit(Topic.TEAM_CHANGED, member_id)
