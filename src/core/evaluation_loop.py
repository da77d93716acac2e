"""
Daily Tasks & Reminders — Evaluation Loop.

The single periodic driver of time-based state change. Every tick it:

1. Recomputes the daily reset boundary and resets stale dailies.
2. Expires every active reminder whose target time has passed.

Transitions are collected as intents; the service persists them and the
notifier is told about expired reminders. Notification is fire-and-forget:
a slow or broken notifier never delays the next tick and never touches
reminder state.

This module is provider-agnostic: it depends on the ClockPort and
NotificationPort protocols, not on specific implementations.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

from src.core import reminder_machine
from src.core.daily_reset import (
    DEFAULT_RESET_HOUR,
    apply_reset,
    most_recent_boundary,
    should_reset,
)
from src.core.intents import ReminderExpired, TasksReset, TickReport

if TYPE_CHECKING:
    from datetime import datetime

    from src.data.models import DailyTask, Reminder
    from src.ports.clock_port import ClockPort
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


class TaskCollections(Protocol):
    """The application-side owner of reminders and dailies."""

    reminders: list[Reminder]
    daily_tasks: list[DailyTask]

    def persist_tick(self, report: TickReport) -> None: ...


class EvaluationLoop:
    """Evaluates every reminder and daily against the clock, once per tick."""

    def __init__(
        self,
        collections: TaskCollections,
        clock: ClockPort,
        notifier: NotificationPort | None = None,
        reset_hour: int = DEFAULT_RESET_HOUR,
    ) -> None:
        self._collections = collections
        self._clock = clock
        self._notifier = notifier
        self._reset_hour = reset_hour
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Pure pass
    # ------------------------------------------------------------------

    def tick(self, now: datetime) -> TickReport:
        """Run one full evaluation pass at ``now`` and report what changed."""
        report = TickReport()

        boundary = most_recent_boundary(now, self._reset_hour)
        reset_ids: list[int] = []
        reset_seen: set[int] = set()
        for task in self._collections.daily_tasks:
            if task.id in reset_seen:
                continue
            if should_reset(task, boundary) and apply_reset(task):
                reset_seen.add(task.id)
                reset_ids.append(task.id)
        if reset_ids:
            report.reset = TasksReset(task_ids=tuple(reset_ids))
            logger.info("Daily reset (boundary %s): %d task(s)", boundary, len(reset_ids))

        fired: set[int] = set()
        for reminder in self._collections.reminders:
            if reminder.id in fired:
                continue
            if reminder_machine.tick_expire(reminder, now):
                fired.add(reminder.id)
                report.expired.append(
                    ReminderExpired(reminder_id=reminder.id, text=reminder.text, note=reminder.note)
                )

        return report

    # ------------------------------------------------------------------
    # Scheduled entry point
    # ------------------------------------------------------------------

    async def run_once(self) -> TickReport:
        """Read the clock, tick, persist, and fan out notifications."""
        report = self.tick(self._clock.now())

        if report.changed:
            try:
                self._collections.persist_tick(report)
            except Exception as exc:
                logger.error("Failed to persist tick results: %s", exc)

        for intent in report.expired:
            self._dispatch(intent)

        return report

    async def drain(self) -> None:
        """Wait for in-flight notifications (used at shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    def _dispatch(self, intent: ReminderExpired) -> None:
        if self._notifier is None:
            return
        task = asyncio.create_task(self._notify(intent))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify(self, intent: ReminderExpired) -> None:
        try:
            await self._notifier.notify(intent.text, intent.note or "Reminder is due")
        except Exception as exc:
            logger.warning("Notification for reminder #%d failed: %s", intent.reminder_id, exc)
