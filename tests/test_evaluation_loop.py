"""Tests for src.core.evaluation_loop — tick semantics and notification fan-out."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.adapters.system_clock import FixedClock
from src.core.evaluation_loop import EvaluationLoop
from src.core.intents import ReminderExpired, TasksReset
from src.data.models import (
    DailyTask,
    Expired,
    Inactive,
    Paused,
    Reminder,
    ReminderStatus,
    Scheduled,
    TaskStatus,
)

T0 = datetime(2024, 1, 1, 14, 0, tzinfo=timezone.utc)


class _Collections:
    def __init__(self, reminders=None, daily_tasks=None):
        self.reminders = reminders or []
        self.daily_tasks = daily_tasks or []
        self.persist_tick = MagicMock()


def _reminder(rid: int, state, text: str = "Tea", note: str = "") -> Reminder:
    return Reminder(id=rid, text=text, spec="30s", note=note, state=state)


def _loop(collections, now=T0, notifier=None):
    return EvaluationLoop(collections, clock=FixedClock(now), notifier=notifier)


# ---------------------------------------------------------------------------
# tick (pure pass)
# ---------------------------------------------------------------------------


class TestTick:
    def test_expires_due_reminders_only(self):
        due = _reminder(1, Scheduled(T0 - timedelta(seconds=1)))
        later = _reminder(2, Scheduled(T0 + timedelta(seconds=1)))
        paused = _reminder(3, Paused(timedelta(0)))
        inactive = _reminder(4, Inactive())
        collections = _Collections(reminders=[due, later, paused, inactive])

        report = _loop(collections).tick(T0)

        assert report.expired == [ReminderExpired(reminder_id=1, text="Tea")]
        assert due.status is ReminderStatus.EXPIRED
        assert later.status is ReminderStatus.ACTIVE
        assert paused.status is ReminderStatus.PAUSED
        assert inactive.status is ReminderStatus.INACTIVE

    def test_second_tick_does_not_refire(self):
        reminder = _reminder(1, Scheduled(T0))
        loop = _loop(_Collections(reminders=[reminder]))
        assert len(loop.tick(T0).expired) == 1
        assert loop.tick(T0 + timedelta(seconds=1)).expired == []

    def test_expired_reminder_is_left_alone(self):
        reminder = _reminder(1, Expired(T0 - timedelta(hours=1)))
        report = _loop(_Collections(reminders=[reminder])).tick(T0)
        assert report.changed is False

    def test_duplicate_handle_fires_once_per_pass(self):
        reminder = _reminder(1, Scheduled(T0))
        report = _loop(_Collections(reminders=[reminder, reminder])).tick(T0)
        assert len(report.expired) == 1

    def test_batches_daily_resets(self):
        stale = [
            DailyTask(id=i, task=f"t{i}", status=TaskStatus.DONE, completed_at=T0 - timedelta(days=1))
            for i in (1, 2)
        ]
        fresh = DailyTask(id=3, task="t3", status=TaskStatus.DONE, completed_at=T0 - timedelta(hours=1))
        untouched = DailyTask(id=4, task="t4")
        collections = _Collections(daily_tasks=[*stale, fresh, untouched])

        report = _loop(collections).tick(T0)

        assert report.reset == TasksReset(task_ids=(1, 2))
        assert all(t.status is TaskStatus.INCOMPLETE for t in stale)
        assert fresh.status is TaskStatus.DONE

    def test_duplicate_daily_reported_once_in_order(self):
        def stale(tid):
            return DailyTask(id=tid, task=f"t{tid}", status=TaskStatus.DONE, completed_at=T0 - timedelta(days=1))

        collections = _Collections(daily_tasks=[stale(2), stale(1), stale(1)])
        report = _loop(collections).tick(T0)
        assert report.reset == TasksReset(task_ids=(2, 1))

    def test_reset_is_idempotent_across_ticks(self):
        task = DailyTask(id=1, task="t", status=TaskStatus.DONE, completed_at=T0 - timedelta(days=1))
        loop = _loop(_Collections(daily_tasks=[task]))
        assert loop.tick(T0).reset is not None
        assert loop.tick(T0 + timedelta(seconds=1)).reset is None

    def test_custom_reset_hour(self):
        task = DailyTask(id=1, task="t", status=TaskStatus.DONE, completed_at=T0 - timedelta(hours=1))
        loop = EvaluationLoop(
            _Collections(daily_tasks=[task]), clock=FixedClock(T0), reset_hour=14,
        )
        assert loop.tick(T0).reset == TasksReset(task_ids=(1,))

    def test_reads_collections_by_reference(self):
        collections = _Collections()
        loop = _loop(collections)
        assert loop.tick(T0).changed is False

        collections.reminders.append(_reminder(9, Scheduled(T0)))
        assert [e.reminder_id for e in loop.tick(T0).expired] == [9]


# ---------------------------------------------------------------------------
# run_once (clock + persistence + notifications)
# ---------------------------------------------------------------------------


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_persists_and_notifies(self):
        reminder = _reminder(1, Scheduled(T0), text="Pizza", note="Oven off")
        collections = _Collections(reminders=[reminder])
        notifier = AsyncMock()
        loop = _loop(collections, notifier=notifier)

        report = await loop.run_once()
        await loop.drain()

        collections.persist_tick.assert_called_once_with(report)
        notifier.notify.assert_awaited_once_with("Pizza", "Oven off")

    @pytest.mark.asyncio
    async def test_default_message_without_note(self):
        collections = _Collections(reminders=[_reminder(1, Scheduled(T0), text="Pizza")])
        notifier = AsyncMock()
        loop = _loop(collections, notifier=notifier)

        await loop.run_once()
        await loop.drain()

        notifier.notify.assert_awaited_once_with("Pizza", "Reminder is due")

    @pytest.mark.asyncio
    async def test_nothing_changed_skips_persist(self):
        collections = _Collections(reminders=[_reminder(1, Scheduled(T0 + timedelta(minutes=1)))])
        notifier = AsyncMock()
        loop = _loop(collections, notifier=notifier)

        await loop.run_once()
        await loop.drain()

        collections.persist_tick.assert_not_called()
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_touch_state(self):
        reminder = _reminder(1, Scheduled(T0))
        notifier = AsyncMock()
        notifier.notify.side_effect = RuntimeError("no sound backend")
        loop = _loop(_Collections(reminders=[reminder]), notifier=notifier)

        await loop.run_once()
        await loop.drain()

        assert reminder.status is ReminderStatus.EXPIRED
        assert reminder.notified is True

    @pytest.mark.asyncio
    async def test_one_failed_notification_does_not_block_others(self):
        reminders = [_reminder(1, Scheduled(T0), text="A"), _reminder(2, Scheduled(T0), text="B")]
        notifier = AsyncMock()
        notifier.notify.side_effect = [RuntimeError("boom"), None]
        loop = _loop(_Collections(reminders=reminders), notifier=notifier)

        await loop.run_once()
        await loop.drain()

        assert notifier.notify.await_count == 2

    @pytest.mark.asyncio
    async def test_persist_failure_is_logged_not_raised(self):
        collections = _Collections(reminders=[_reminder(1, Scheduled(T0))])
        collections.persist_tick.side_effect = OSError("disk full")
        notifier = AsyncMock()
        loop = _loop(collections, notifier=notifier)

        report = await loop.run_once()
        await loop.drain()

        assert len(report.expired) == 1
        notifier.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_notifier(self):
        reminder = _reminder(1, Scheduled(T0))
        loop = _loop(_Collections(reminders=[reminder]), notifier=None)
        report = await loop.run_once()
        await loop.drain()
        assert len(report.expired) == 1


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_thirty_second_countdown(self, service, clock):
        """Add "30s" at T0: still active at +29s, one notify at +31s."""
        from src.core.action_service import SuccessResponse

        assert isinstance(service.add_reminder("Tea", "30s"), SuccessResponse)
        notifier = AsyncMock()
        loop = EvaluationLoop(service, clock=clock, notifier=notifier)

        clock.set(clock.now() + timedelta(seconds=29))
        report = await loop.run_once()
        assert report.expired == []
        assert service.reminders[0].status is ReminderStatus.ACTIVE

        clock.set(clock.now() + timedelta(seconds=2))
        report = await loop.run_once()
        await loop.drain()
        assert [e.reminder_id for e in report.expired] == [service.reminders[0].id]
        assert service.reminders[0].status is ReminderStatus.EXPIRED

        clock.set(clock.now() + timedelta(seconds=1))
        await loop.run_once()
        await loop.drain()
        notifier.notify.assert_awaited_once()
