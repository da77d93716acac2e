"""Reminder state machine — pure business logic.

Transitions for a single reminder:

    inactive --start/reset--> active --pause--> paused --start--> active
    active --tick_expire--> expired --start/reset--> active

While active the absolute target time is authoritative; while paused only the
remaining duration is kept, so pausing and resuming never loses or
double-counts elapsed time.

No I/O: callers pass ``now`` and persist the mutated reminder themselves.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from src.core.errors import InvalidTransition, SpecNotRecognized
from src.core.time_spec import parse_time_spec
from src.data.models import Expired, Inactive, Paused, Reminder, Scheduled

logger = logging.getLogger(__name__)


def _schedule_from_spec(reminder: Reminder, now: datetime) -> None:
    """Re-parse the stored spec and schedule the reminder from ``now``."""
    parsed = parse_time_spec(reminder.spec, now)
    reminder.is_countdown = parsed.is_countdown
    reminder.state = Scheduled(parsed.target_time)


def start(reminder: Reminder, now: datetime) -> None:
    """Start an inactive or expired reminder, or resume a paused one.

    Raises:
        InvalidTransition: the reminder is already active.
        SpecNotRecognized: the stored spec no longer parses (state unchanged).
    """
    state = reminder.state
    if isinstance(state, Scheduled):
        raise InvalidTransition("start", reminder.status.value)

    if isinstance(state, Paused):
        reminder.state = Scheduled(now + max(state.remaining, timedelta(0)))
        logger.info("Reminder #%d resumed, %s left", reminder.id, state.remaining)
        return

    _schedule_from_spec(reminder, now)
    logger.info("Reminder #%d started, due %s", reminder.id, reminder.target_time)


def pause(reminder: Reminder, now: datetime) -> None:
    """Freeze an active reminder, keeping only the time left.

    Raises:
        InvalidTransition: the reminder is not active.
    """
    state = reminder.state
    if not isinstance(state, Scheduled):
        raise InvalidTransition("pause", reminder.status.value)

    remaining = max(timedelta(0), state.target_time - now)
    reminder.state = Paused(remaining)
    logger.info("Reminder #%d paused with %s left", reminder.id, remaining)


def reset(reminder: Reminder, now: datetime) -> None:
    """Restart the reminder from its original spec, whatever its state.

    A countdown restarts its full duration from ``now``; an alarm resolves to
    the next occurrence of its clock time.

    Raises:
        SpecNotRecognized: the spec does not parse; the reminder is left
            inactive.
    """
    try:
        _schedule_from_spec(reminder, now)
    except SpecNotRecognized:
        reminder.state = Inactive()
        raise
    logger.info("Reminder #%d reset, due %s", reminder.id, reminder.target_time)


def tick_expire(reminder: Reminder, now: datetime) -> bool:
    """Expire an active reminder whose target time has passed.

    Returns True exactly once per activation: the first call at or after the
    target time. Every later call (and any call on a non-active reminder) is
    a no-op returning False.
    """
    state = reminder.state
    if not isinstance(state, Scheduled) or now < state.target_time:
        return False

    reminder.state = Expired(state.target_time)
    logger.info("Reminder #%d expired: %s", reminder.id, reminder.text)
    return True


def remaining(reminder: Reminder, now: datetime) -> timedelta | None:
    """Time left before the reminder fires, or None if it is not counting."""
    state = reminder.state
    if isinstance(state, Scheduled):
        return max(timedelta(0), state.target_time - now)
    if isinstance(state, Paused):
        return state.remaining
    return None
