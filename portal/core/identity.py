"""
Scheduling Portal — Identity Resolver.

Stored records refer to people interchangeably by id, email or display name,
with inconsistent casing. Everything that compares two person references goes
through a token set built here: lower-cased, trimmed, blanks dropped. Empty
sets never match anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from portal.data.models import Assignment, Staffer, User

Token = str


def normalize(value: str | None) -> Token:
    """Lower-case and trim a raw identifier. None and blanks give ""."""
    if value is None:
        return ""
    return str(value).strip().lower()


def token_set(*values: str | None) -> frozenset[Token]:
    return frozenset(t for t in (normalize(v) for v in values) if t)


def matches(a: Iterable[Token], b: Iterable[Token]) -> bool:
    """True iff the two token sets share at least one token."""
    return not frozenset(a).isdisjoint(b)


@dataclass(frozen=True)
class Identity:
    """A person reference, canonicalized once."""

    id: str | None = None
    email: str | None = None
    name: str | None = None
    tokens: frozenset[Token] = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tokens", token_set(self.id, self.email, self.name))

    @classmethod
    def of_user(cls, user: User | None) -> Identity:
        if user is None:
            return cls()
        return cls(id=user.id, email=user.email, name=user.name)

    @classmethod
    def of_staffer(cls, staffer: Staffer) -> Identity:
        return cls(id=staffer.id, email=staffer.email, name=staffer.full_name)

    def matches(self, other: Identity | Iterable[Token]) -> bool:
        other_tokens = other.tokens if isinstance(other, Identity) else other
        return matches(self.tokens, other_tokens)


def recipient_tokens(assignment: Assignment) -> frozenset[Token]:
    """Every identifier naming the assignment's recipient.

    Display names are not identifiers.
    """
    return token_set(
        assignment.assigned_to,
        assignment.assigned_to_id,
        assignment.assigned_to_email,
    )


def staffer_tokens(staffer: Staffer) -> frozenset[Token]:
    return token_set(staffer.id, staffer.email)


def expand_tokens(tokens: Iterable[Token], staffers: Iterable[Staffer]) -> frozenset[Token]:
    """Close a token set over the staff directory.

    A token equal to a staffer's id or email pulls in that staffer's other
    identifier, so an assignment stored under an email still matches a
    viewer known only by id, and vice versa.
    """
    by_token: dict[Token, Staffer] = {}
    for staffer in staffers:
        for token in staffer_tokens(staffer):
            by_token.setdefault(token, staffer)

    result: set[Token] = set()
    pending = [t for t in tokens if t]
    while pending:
        token = pending.pop()
        if token in result:
            continue
        result.add(token)
        staffer = by_token.get(token)
        if staffer is not None:
            pending.extend(staffer_tokens(staffer) - result)
    return frozenset(result)


def resolve_staffer(user: User | None, staffers: Iterable[Staffer]) -> Staffer | None:
    """Find the directory entry for a login account (email first, then id)."""
    if user is None:
        return None
    email = normalize(user.email)
    for staffer in staffers:
        if (email and normalize(staffer.email) == email) or staffer.id == user.id:
            return staffer
    return None


def resolved_staffer_id(user: User | None, staffers: Iterable[Staffer]) -> str | None:
    """Staffer id for the account, falling back to the user id, then email."""
    if user is None:
        return None
    staffer = resolve_staffer(user, staffers)
    if staffer is not None:
        return staffer.id
    return user.id or user.email or None
