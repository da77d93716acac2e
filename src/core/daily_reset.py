"""Daily reset calculator — pure business logic.

Dailies are "done for today" until the next reset boundary, a fixed local
wall-clock hour (03:00 by default, so late-night work still counts for the
day it belongs to).

No I/O: this module only transforms data.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta

from src.data.models import DailyTask, TaskStatus

DEFAULT_RESET_HOUR = 3


def most_recent_boundary(now: datetime, reset_hour: int = DEFAULT_RESET_HOUR) -> datetime:
    """Return the latest reset instant at or before ``now``.

    Today's ``reset_hour:00`` in now's zone, or yesterday's if ``now`` is
    still before it. The result is never after ``now`` and never more than a
    day before it.
    """
    boundary = datetime.combine(now.date(), time(hour=reset_hour), tzinfo=now.tzinfo)
    if now < boundary:
        boundary = datetime.combine(
            now.date() - timedelta(days=1), time(hour=reset_hour), tzinfo=now.tzinfo,
        )
    return boundary


def should_reset(task: DailyTask, boundary: datetime) -> bool:
    """True iff the task is done and was completed before ``boundary``."""
    if task.status is not TaskStatus.DONE:
        return False
    # done without a timestamp breaks the invariant; treat it as stale
    if task.completed_at is None:
        return True
    return task.completed_at < boundary


def apply_reset(task: DailyTask) -> bool:
    """Put the task back to incomplete. Returns False if nothing changed."""
    if task.status is TaskStatus.INCOMPLETE and task.completed_at is None:
        return False
    task.status = TaskStatus.INCOMPLETE
    task.completed_at = None
    return True


def toggle_done(task: DailyTask, now: datetime) -> TaskStatus:
    """Flip completion; completing stamps ``now``, un-completing clears it."""
    if task.status is TaskStatus.DONE:
        task.status = TaskStatus.INCOMPLETE
        task.completed_at = None
    else:
        task.status = TaskStatus.DONE
        task.completed_at = now
    return task.status
