"""Engine error types.

Both are recoverable: the service layer catches them and answers the user
with an ErrorResponse. Nothing here is allowed to escape the evaluation loop.
"""

from __future__ import annotations


class ReminderError(Exception):
    """Base class for reminder engine errors."""


class SpecNotRecognized(ReminderError, ValueError):
    """The time spec is neither a countdown nor a clock time."""

    def __init__(self, spec: str) -> None:
        super().__init__(f"Unrecognized time spec: {spec!r}")
        self.spec = spec


class InvalidTransition(ReminderError):
    """The requested action is not allowed from the reminder's current state."""

    def __init__(self, action: str, status: str) -> None:
        super().__init__(f"Cannot {action} a reminder that is {status}")
        self.action = action
        self.status = status
