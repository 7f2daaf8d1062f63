"""Built-in accounts created on first start."""

from __future__ import annotations

import logging

from portal.data.db import UserDB
from portal.data.models import User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_USERS = (
    User(id="1", email="admin@gmail.com", role=UserRole.ADMIN, name="Admin User"),
    User(id="2", email="staffer@example.com", role=UserRole.STAFFER, name="Staffer User"),
    User(id="3", email="client@example.com", role=UserRole.CLIENT, name="Client User"),
    User(id="4", email="sectionhead@example.com", role=UserRole.SECTION_HEAD, name="Section Head User"),
)


def seed_default_users(users: UserDB) -> list[User]:
    """Create any missing default account. Returns the ones created."""
    created: list[User] = []
    for user in DEFAULT_USERS:
        if users.get_by_email(user.email) is None and users.by_id(user.id) is None:
            created.append(users.create(user))
    if created:
        logger.info("Seeded %d default user(s)", len(created))
    return created
