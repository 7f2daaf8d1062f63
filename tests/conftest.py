"""Shared test fixtures and configuration.

Sets environment variables before any portal import, and provides stores
backed by a temp SQLite file, a change bus and a wired engine.
"""

import os

# Patch env vars BEFORE any portal imports
os.environ.setdefault("DATABASE_PATH", "data/test_portal.db")
os.environ.setdefault("ADMIN_ASSIGNER_NAMES", "Admin,Admin/Executive")
os.environ.setdefault("CLIENT_FALLBACK_SHOW_ALL", "true")

from datetime import datetime, timedelta

import pytest

from portal.data.models import Section, Staffer, User, UserRole


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_portal.db")


@pytest.fixture
def stores(tmp_db_path):
    from portal.adapters.store_factory import create_stores
    return create_stores(tmp_db_path)


@pytest.fixture
def bus():
    from portal.adapters.local_bus import LocalChangeBus
    return LocalChangeBus()


@pytest.fixture
def clock():
    """A clock that advances one minute per call, so stamps are ordered."""
    state = {"now": datetime(2024, 6, 1, 9, 0)}

    def tick():
        state["now"] += timedelta(minutes=1)
        return state["now"]

    return tick


@pytest.fixture
def engine(stores, bus, clock):
    from portal.core.engine import SchedulingEngine
    return SchedulingEngine(stores, bus, clock)


@pytest.fixture
def scribe():
    return Staffer(
        id="s1", first_name="Sam", last_name="Reyes", email="s1@x.com",
        position="Writer", section=Section.SCRIBES,
    )


@pytest.fixture
def creative():
    return Staffer(
        id="s5", first_name="Cleo", last_name="Park", email="s5@x.com",
        position="Graphic Artist", section=Section.CREATIVES,
    )


@pytest.fixture
def outsider():
    return Staffer(
        id="s9", first_name="Nico", last_name="Vale", email="s9@x.com",
        position="Writer", section=Section.SCRIBES,
    )


@pytest.fixture
def executive_user():
    return User(
        id="u-exec", email="exec@x.com", role=UserRole.STAFFER,
        name="Eve Exec", position="Managing Editor",
    )


@pytest.fixture
def client_user():
    return User(id="u-client", email="Client@Example.com", role=UserRole.CLIENT, name="Client User")
