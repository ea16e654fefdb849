"""Shared test fixtures and configuration.

Sets up environment variables so src.config loads predictably, and provides
common fixtures like temp DBs, a small catalog and a RosterService.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("CATALOG_PATH", "")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("ADMIN_USER_IDS", "")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_roster.db")


@pytest.fixture
def schedule_db(tmp_db_path):
    """Return a ScheduleDB instance backed by a temp file."""
    from src.data.db import ScheduleDB
    return ScheduleDB(db_path=tmp_db_path, timeout=1.0)


@pytest.fixture
def profile_db(tmp_db_path):
    """Return a ProfileDB instance sharing the schedule's temp file."""
    from src.data.db import ProfileDB
    return ProfileDB(db_path=tmp_db_path, timeout=1.0)


@pytest.fixture
def small_catalog():
    """Two-day catalog: Monday has two categories, Tuesday one activity."""
    from src.core.catalog import CategoryInfo, Catalog
    return Catalog(
        template={
            "Monday": {
                "Morning": ["Activity-A", "Activity-B"],
                "Afternoon": ["Activity-X"],
            },
            "Tuesday": {"Morning": ["Activity-A"]},
        },
        category_map={
            "Activity-A": "c1",
            "Activity-B": "c1",
            "Activity-X": "c2",
        },
        category_info={
            "c1": CategoryInfo("c1", "Category one"),
            "c2": CategoryInfo("c2", "Category two"),
        },
    )


@pytest.fixture
def admin(profile_db):
    from src.data.models import Role
    return profile_db.add_profile("admin-1", "Dr Admin", role=Role.ADMIN)


@pytest.fixture
def resident(profile_db):
    return profile_db.add_profile("res-1", "Alice Martin")


@pytest.fixture
def other_resident(profile_db):
    return profile_db.add_profile("res-2", "Bob Durand")


@pytest.fixture
def service(schedule_db, profile_db, small_catalog):
    from src.core.roster_service import RosterService
    return RosterService(schedule_db, profile_db, small_catalog)
