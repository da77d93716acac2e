"""
Daily Tasks & Reminders — UI-Agnostic Action Service.

Owns the authoritative in-memory lists of reminders and dailies, applies user
actions to them through the temporal engine, persists the result and returns
structured response objects.

Each UI adapter (Telegram today) calls this service and renders the response
objects in its own way. The evaluation loop reads the same lists by reference.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from src.core import reminder_machine
from src.core.daily_reset import toggle_done
from src.core.errors import InvalidTransition, SpecNotRecognized
from src.core.intents import ParseFailed, TickReport
from src.core.time_spec import parse_time_spec
from src.data.models import Reminder, ReminderStatus, Scheduled, TaskStatus

if TYPE_CHECKING:
    from src.data.db import DailyTaskDB, ReminderDB
    from src.data.models import DailyTask
    from src.ports.clock_port import ClockPort

logger = logging.getLogger(__name__)

SPEC_HELP = (
    "Use a countdown like 30s, 10m, 2h, 1d, 1w "
    "or a clock time like 7:30pm or 19:30."
)


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    LIST = "list"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


@dataclass
class SuccessResponse(ServiceResponse):
    pass


@dataclass
class ErrorResponse(ServiceResponse):
    intent: ParseFailed | None = None


@dataclass
class ListResponse(ServiceResponse):
    lines: list[str] = field(default_factory=list)


def _ok(message: str) -> SuccessResponse:
    return SuccessResponse(kind=ResponseKind.SUCCESS, message=message)


def _error(message: str, intent: ParseFailed | None = None) -> ErrorResponse:
    return ErrorResponse(kind=ResponseKind.ERROR, message=message, intent=intent)


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def format_remaining(delta: timedelta) -> str:
    """Format a duration as "1d 2h 05m", "12m 03s" or "45s"."""
    total = max(0, int(delta.total_seconds()))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)

    if days:
        return f"{days}d {hours}h {minutes:02d}m"
    if hours:
        return f"{hours}h {minutes:02d}m {seconds:02d}s"
    if minutes:
        return f"{minutes}m {seconds:02d}s"
    return f"{seconds}s"


def describe_reminder(reminder: Reminder, now: datetime) -> str:
    """One-line summary of a reminder's state for listings."""
    status = reminder.status
    if status is ReminderStatus.ACTIVE:
        if reminder.is_countdown:
            when = f"{format_remaining(reminder_machine.remaining(reminder, now))} left"
        else:
            target = reminder.target_time
            day = "" if target.date() == now.date() else " tomorrow"
            when = f"at {target:%H:%M}{day}"
    elif status is ReminderStatus.PAUSED:
        when = f"{format_remaining(reminder.paused_remaining)} left"
    elif status is ReminderStatus.EXPIRED:
        when = f"fired at {reminder.target_time:%H:%M}"
    else:
        when = f"not started ({reminder.spec or 'no time'})"

    line = f"#{reminder.id} {reminder.text} [{status.value}] {when}"
    if reminder.note:
        line += f" — {reminder.note}"
    return line


def describe_daily(task: DailyTask) -> str:
    mark = "✅" if task.status is TaskStatus.DONE else "⬜"
    extras = [x for x in (task.priority, task.category) if x]
    suffix = f" ({', '.join(extras)})" if extras else ""
    return f"{mark} #{task.id} {task.task}{suffix}"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TaskService:
    """Owns reminders and dailies; every mutation goes through here or the loop."""

    def __init__(
        self,
        reminder_db: ReminderDB,
        task_db: DailyTaskDB,
        clock: ClockPort,
    ) -> None:
        self._reminder_db = reminder_db
        self._task_db = task_db
        self.clock = clock
        self.reminders: list[Reminder] = []
        self.daily_tasks: list[DailyTask] = []

    # ------------------------------------------------------------------
    # Startup / persistence
    # ------------------------------------------------------------------

    def load(self) -> list[ParseFailed]:
        """Load everything from disk and re-arm reminders that lost their target.

        A reminder with a spec but no target time (and not paused) is
        re-parsed against the load-time clock exactly like a reset.
        Returns a ParseFailed intent for every spec that no longer parses.
        """
        now = self.clock.now()
        self.reminders = self._reminder_db.list_all()
        self.daily_tasks = self._task_db.list_all()

        failures: list[ParseFailed] = []
        for reminder in self.reminders:
            if (
                reminder.target_time is not None
                or reminder.status is ReminderStatus.PAUSED
                or not reminder.spec.strip()
            ):
                continue
            try:
                reminder_machine.reset(reminder, now)
            except SpecNotRecognized:
                failures.append(ParseFailed(spec=reminder.spec))
            self._reminder_db.save_reminder(reminder)

        logger.info(
            "Loaded %d reminder(s) and %d daily task(s), %d unparseable",
            len(self.reminders), len(self.daily_tasks), len(failures),
        )
        return failures

    def persist_tick(self, report: TickReport) -> None:
        """Write back everything an evaluation pass changed."""
        expired_ids = {intent.reminder_id for intent in report.expired}
        for reminder in self.reminders:
            if reminder.id in expired_ids:
                self._reminder_db.save_reminder(reminder)

        if report.reset is not None:
            reset_ids = set(report.reset.task_ids)
            for task in self.daily_tasks:
                if task.id in reset_ids:
                    self._task_db.save_task(task)

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def _find_reminder(self, reminder_id: int) -> Reminder | None:
        return next((r for r in self.reminders if r.id == reminder_id), None)

    def add_reminder(self, text: str, spec: str, note: str = "") -> ServiceResponse:
        """Create a reminder and activate it right away if the spec parses.

        An unparseable spec still creates the reminder, left inactive, so the
        user can fix it with /respec.
        """
        now = self.clock.now()
        try:
            parsed = parse_time_spec(spec, now)
        except SpecNotRecognized:
            reminder = self._reminder_db.add_reminder(text=text, spec=spec, note=note)
            self.reminders.append(reminder)
            return _error(
                f"Saved #{reminder.id} '{text}', but I couldn't understand '{spec}'. {SPEC_HELP}",
                intent=ParseFailed(spec=spec),
            )

        reminder = self._reminder_db.add_reminder(
            text=text,
            spec=spec,
            note=note,
            is_countdown=parsed.is_countdown,
            state=Scheduled(parsed.target_time),
        )
        self.reminders.append(reminder)
        return _ok(f"Reminder set: {describe_reminder(reminder, now)}")

    def edit_reminder_spec(self, reminder_id: int, spec: str) -> ServiceResponse:
        """Replace a reminder's time spec and restart it from now."""
        reminder = self._find_reminder(reminder_id)
        if reminder is None:
            return _error(f"No reminder #{reminder_id}.")
        reminder.spec = spec
        return self._apply(reminder, reminder_machine.reset, "updated")

    def start_reminder(self, reminder_id: int) -> ServiceResponse:
        reminder = self._find_reminder(reminder_id)
        if reminder is None:
            return _error(f"No reminder #{reminder_id}.")
        return self._apply(reminder, reminder_machine.start, "started")

    def pause_reminder(self, reminder_id: int) -> ServiceResponse:
        reminder = self._find_reminder(reminder_id)
        if reminder is None:
            return _error(f"No reminder #{reminder_id}.")
        return self._apply(reminder, reminder_machine.pause, "paused")

    def reset_reminder(self, reminder_id: int) -> ServiceResponse:
        reminder = self._find_reminder(reminder_id)
        if reminder is None:
            return _error(f"No reminder #{reminder_id}.")
        return self._apply(reminder, reminder_machine.reset, "reset")

    def _apply(self, reminder: Reminder, transition, verb: str) -> ServiceResponse:
        """Run one state-machine transition and persist the outcome."""
        now = self.clock.now()
        try:
            transition(reminder, now)
        except InvalidTransition as exc:
            logger.info("Rejected on reminder #%d: %s", reminder.id, exc)
            if exc.action == "start":
                return _error(f"Reminder #{reminder.id} is already active.")
            return _error(f"Can't {exc.action} reminder #{reminder.id}: it is {exc.status}.")
        except SpecNotRecognized as exc:
            # reset leaves the reminder inactive, which must hit the disk too
            self._reminder_db.save_reminder(reminder)
            return _error(
                f"I couldn't understand '{exc.spec}' for #{reminder.id}. {SPEC_HELP}",
                intent=ParseFailed(spec=exc.spec),
            )

        self._reminder_db.save_reminder(reminder)
        return _ok(f"Reminder {verb}: {describe_reminder(reminder, now)}")

    def delete_reminder(self, reminder_id: int) -> ServiceResponse:
        reminder = self._find_reminder(reminder_id)
        if reminder is None:
            return _error(f"No reminder #{reminder_id}.")
        self._reminder_db.delete_reminder(reminder_id)
        self.reminders.remove(reminder)
        return _ok(f"Deleted reminder #{reminder_id} '{reminder.text}'.")

    def list_reminders(self) -> ServiceResponse:
        if not self.reminders:
            return ListResponse(kind=ResponseKind.LIST, message="No reminders.")
        now = self.clock.now()
        lines = [describe_reminder(r, now) for r in self.reminders]
        return ListResponse(kind=ResponseKind.LIST, message="\n".join(lines), lines=lines)

    # ------------------------------------------------------------------
    # Dailies
    # ------------------------------------------------------------------

    def _find_daily(self, task_id: int) -> DailyTask | None:
        return next((t for t in self.daily_tasks if t.id == task_id), None)

    def add_daily(self, task: str, priority: str = "", category: str = "") -> ServiceResponse:
        daily = self._task_db.add_task(task=task, priority=priority, category=category)
        self.daily_tasks.append(daily)
        return _ok(f"Daily added: {describe_daily(daily)}")

    def toggle_daily(self, task_id: int) -> ServiceResponse:
        """Mark a daily done (stamped now) or back to incomplete."""
        daily = self._find_daily(task_id)
        if daily is None:
            return _error(f"No daily #{task_id}.")
        status = toggle_done(daily, self.clock.now())
        self._task_db.save_task(daily)
        logger.info("Daily #%d is now %s", task_id, status.value)
        return _ok(describe_daily(daily))

    def delete_daily(self, task_id: int) -> ServiceResponse:
        daily = self._find_daily(task_id)
        if daily is None:
            return _error(f"No daily #{task_id}.")
        self._task_db.delete_task(task_id)
        self.daily_tasks.remove(daily)
        return _ok(f"Deleted daily #{task_id} '{daily.task}'.")

    def list_dailies(self) -> ServiceResponse:
        if not self.daily_tasks:
            return ListResponse(kind=ResponseKind.LIST, message="No dailies.")
        lines = [describe_daily(t) for t in self.daily_tasks]
        return ListResponse(kind=ResponseKind.LIST, message="\n".join(lines), lines=lines)
