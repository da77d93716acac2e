"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like temp DBs, a fixed clock and a service.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("DAILY_RESET_HOUR", "3")

from datetime import datetime, timezone

import pytest


T0 = datetime(2024, 1, 1, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """A fixed, timezone-aware 'now': 2024-01-01 14:00 UTC."""
    return T0


@pytest.fixture
def clock():
    """A FixedClock starting at T0."""
    from src.adapters.system_clock import FixedClock
    return FixedClock(T0)


@pytest.fixture
def reminder_db(tmp_path):
    """Return a ReminderDB instance backed by a temp file."""
    from src.data.db import ReminderDB
    return ReminderDB(db_path=str(tmp_path / "test_tasks.db"), tz=timezone.utc)


@pytest.fixture
def task_db(tmp_path):
    """Return a DailyTaskDB instance backed by a temp file."""
    from src.data.db import DailyTaskDB
    return DailyTaskDB(db_path=str(tmp_path / "test_tasks.db"), tz=timezone.utc)


@pytest.fixture
def service(reminder_db, task_db, clock):
    """Return a TaskService over temp DBs and the fixed clock."""
    from src.core.action_service import TaskService
    return TaskService(reminder_db=reminder_db, task_db=task_db, clock=clock)
