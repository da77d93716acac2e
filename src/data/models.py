"""
Daily Tasks & Reminders — Data Models.

Reminders and dailies persist in SQLite across restarts. The in-memory
lists held by TaskService are authoritative while the bot runs; the
evaluation loop mutates them in place and the service writes them back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class ReminderStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"
    INACTIVE = "inactive"


class TaskStatus(str, Enum):
    INCOMPLETE = "incomplete"
    DONE = "done"


# ---------------------------------------------------------------------------
# Reminder schedule states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Inactive:
    """Never started, or the spec could not be parsed."""


@dataclass(frozen=True)
class Scheduled:
    """Counting down to target_time."""

    target_time: datetime


@dataclass(frozen=True)
class Paused:
    """Frozen with this much time left."""

    remaining: timedelta


@dataclass(frozen=True)
class Expired:
    """Fired at target_time; the user has been notified."""

    target_time: datetime


ReminderState = Inactive | Scheduled | Paused | Expired

_STATUS_BY_STATE = {
    Inactive: ReminderStatus.INACTIVE,
    Scheduled: ReminderStatus.ACTIVE,
    Paused: ReminderStatus.PAUSED,
    Expired: ReminderStatus.EXPIRED,
}


@dataclass
class Reminder:
    """A countdown or alarm.

    ``spec`` is the text the user typed ("30m", "7:30pm"); it is re-parsed
    whenever the reminder is reset or started from scratch.
    """

    id: int
    text: str                      # e.g. "Take the pizza out"
    spec: str                      # original time spec
    note: str = ""
    is_countdown: bool = False     # display only
    state: ReminderState = field(default_factory=Inactive)

    @property
    def status(self) -> ReminderStatus:
        return _STATUS_BY_STATE[type(self.state)]

    @property
    def target_time(self) -> datetime | None:
        if isinstance(self.state, (Scheduled, Expired)):
            return self.state.target_time
        return None

    @property
    def paused_remaining(self) -> timedelta:
        if isinstance(self.state, Paused):
            return self.state.remaining
        return timedelta(0)

    @property
    def notified(self) -> bool:
        return isinstance(self.state, Expired)


@dataclass
class DailyTask:
    """A recurring task that flips back to incomplete at the daily reset."""

    id: int
    task: str                               # e.g. "Water the plants"
    priority: str = ""                      # "High" | "Medium" | "Low" | ""
    category: str = ""
    status: TaskStatus = TaskStatus.INCOMPLETE
    completed_at: datetime | None = None    # None if not done this cycle
