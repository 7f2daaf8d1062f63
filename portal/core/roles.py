"""Role tagging: position titles to account roles, and roles to calendars."""

from __future__ import annotations

from enum import Enum

from portal.data.models import Section, Staffer, User, UserRole

EXECUTIVE_TITLES = (
    "editor-in-chief",
    "associate editor",
    "managing editor",
    "executive secretary",
)


class ViewerRole(str, Enum):
    CLIENT = "client"
    EXECUTIVE = "executive"
    STAFFER = "staffer"
    SECTION_HEAD = "section_head"


def role_from_position(position: str | None) -> UserRole:
    """Account role implied by a free-text position title."""
    p = (position or "").lower()
    if "editor-in-chief" in p:
        return UserRole.ADMIN
    if "section head" in p:
        return UserRole.SECTION_HEAD
    if "regular staff" in p:
        return UserRole.REGULAR_STAFF
    if "client" in p:
        return UserRole.CLIENT
    return UserRole.STAFFER


def is_executive(user: User | None, staffer: Staffer | None = None) -> bool:
    if user is not None and user.position:
        p = user.position.lower()
        if any(title in p for title in EXECUTIVE_TITLES):
            return True
    return staffer is not None and staffer.section == Section.EXECUTIVES


def can_approve(user: User | None, staffer: Staffer | None = None) -> bool:
    """Admins, section heads and executives may accept/reject on behalf of others."""
    if user is None:
        return False
    if user.role in (UserRole.ADMIN, UserRole.SECTION_HEAD):
        return True
    return is_executive(user, staffer)


def viewer_role(user: User, staffer: Staffer | None = None) -> ViewerRole:
    """Which calendar an account is shown."""
    if user.role == UserRole.CLIENT:
        return ViewerRole.CLIENT
    if user.role == UserRole.SECTION_HEAD:
        return ViewerRole.SECTION_HEAD
    if user.role == UserRole.ADMIN or is_executive(user, staffer):
        return ViewerRole.EXECUTIVE
    return ViewerRole.STAFFER
