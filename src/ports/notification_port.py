"""Notification port — abstract interface for alerting the user.

Core modules depend on this protocol, never on a specific delivery channel.
Implementations are best effort: the caller logs and drops any failure.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules."""

    async def notify(self, title: str, message: str) -> None: ...
