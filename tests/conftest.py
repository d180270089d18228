"""Shared test fixtures and configuration.

Sets up fake environment variables before any src imports, and provides
common fixtures like temp-file stores and friend builders.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("PUSH_ENABLED", "true")
os.environ.setdefault("REMINDER_HOURS_BEFORE", "24")

from datetime import datetime, timedelta, timezone

import pytest

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_friend(**overrides):
    """Build a Friend with sensible defaults, last contacted 4 days before NOW."""
    from src.data.models import Friend

    fields = {
        "id": "f1",
        "name": "Alice",
        "category": "Friends",
        "frequency_days": 10,
        "last_contacted": NOW - timedelta(days=4),
    }
    fields.update(overrides)
    return Friend(**fields)


def make_log(log_id="l1", days_ago=1, percentage=50.0, delta=5, contact_type=None, goal=10):
    """Build a ContactLog dated ``days_ago`` days before NOW."""
    from src.data.models import ContactLog, ContactType

    return ContactLog(
        id=log_id,
        date=NOW - timedelta(days=days_ago),
        type=contact_type or ContactType.REGULAR,
        days_wait_goal=goal,
        percentage_remaining=percentage,
        score_delta=delta,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def friend_db(tmp_path):
    """Return a FriendDB instance backed by a temp file."""
    from src.data.db import FriendDB
    return FriendDB(db_path=str(tmp_path / "test_friends.db"))


@pytest.fixture
def meeting_db(tmp_path):
    """Return a MeetingDB instance backed by a temp file."""
    from src.data.db import MeetingDB
    return MeetingDB(db_path=str(tmp_path / "test_meetings.db"))


@pytest.fixture
def reminder_db(tmp_path):
    """Return a ReminderLogDB instance backed by a temp file."""
    from src.data.db import ReminderLogDB
    return ReminderLogDB(db_path=str(tmp_path / "test_reminders.db"))
