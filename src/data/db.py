"""
Daily Tasks & Reminders — SQLite storage.

Reminders and dailies persist in SQLite so countdowns, pauses and completed
dailies survive a bot restart. Timestamps are stored as ISO-8601 strings
with their UTC offset; durations as seconds.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, tzinfo
from pathlib import Path

from src.data.models import (
    DailyTask,
    Expired,
    Inactive,
    Paused,
    Reminder,
    ReminderState,
    ReminderStatus,
    Scheduled,
    TaskStatus,
)

logger = logging.getLogger(__name__)


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None, tz: tzinfo | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if tz is not None and parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz)
    return parsed


class _SQLiteStore(ABC):
    """Connection handling shared by the stores below."""

    def __init__(self, db_path: str | None = None, tz: tzinfo | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        self._tz = tz
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @abstractmethod
    def _init_db(self) -> None:
        """Create this store's tables if they don't exist."""


class ReminderDB(_SQLiteStore):
    """SQLite-backed storage for countdowns and alarms."""

    def _init_db(self) -> None:
        """Create the reminders table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminders (
                    id                INTEGER PRIMARY KEY AUTOINCREMENT,
                    text              TEXT    NOT NULL,
                    note              TEXT    NOT NULL DEFAULT '',
                    spec              TEXT    NOT NULL DEFAULT '',
                    status            TEXT    NOT NULL DEFAULT 'inactive',
                    target_time       TEXT,
                    is_countdown      INTEGER NOT NULL DEFAULT 0,
                    notified          INTEGER NOT NULL DEFAULT 0,
                    paused_remaining  REAL    NOT NULL DEFAULT 0
                )
            """)
        logger.debug("Reminders table initialized at %s", self._db_path)

    def _row_to_state(self, row: sqlite3.Row) -> ReminderState:
        target = _from_iso(row["target_time"], self._tz)
        status = row["status"]

        if status == ReminderStatus.PAUSED.value:
            return Paused(timedelta(seconds=row["paused_remaining"] or 0))
        if target is None:
            return Inactive()
        # an active row that already fired is expired
        if status == ReminderStatus.EXPIRED.value or (
            status == ReminderStatus.ACTIVE.value and row["notified"]
        ):
            return Expired(target)
        if status == ReminderStatus.ACTIVE.value:
            return Scheduled(target)
        return Inactive()

    def _row_to_reminder(self, row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            text=row["text"],
            spec=row["spec"],
            note=row["note"],
            is_countdown=bool(row["is_countdown"]),
            state=self._row_to_state(row),
        )

    @staticmethod
    def _state_columns(reminder: Reminder) -> tuple:
        return (
            reminder.status.value,
            _to_iso(reminder.target_time),
            int(reminder.is_countdown),
            int(reminder.notified),
            reminder.paused_remaining.total_seconds(),
        )

    def add_reminder(
        self,
        text: str,
        spec: str,
        note: str = "",
        is_countdown: bool = False,
        state: ReminderState | None = None,
    ) -> Reminder:
        """Insert a new reminder and return it with its assigned ID."""
        reminder = Reminder(
            id=0, text=text, spec=spec, note=note,
            is_countdown=is_countdown, state=state or Inactive(),
        )
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO reminders
                    (text, note, spec, status, target_time,
                     is_countdown, notified, paused_remaining)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (text, note, spec, *self._state_columns(reminder)),
            )
            reminder.id = cursor.lastrowid

        logger.info("Reminder added: #%d '%s' (%s)", reminder.id, text, spec)
        return reminder

    def save_reminder(self, reminder: Reminder) -> None:
        """Write every field of an existing reminder back to disk."""
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE reminders SET
                    text = ?, note = ?, spec = ?, status = ?, target_time = ?,
                    is_countdown = ?, notified = ?, paused_remaining = ?
                WHERE id = ?
                """,
                (
                    reminder.text, reminder.note, reminder.spec,
                    *self._state_columns(reminder), reminder.id,
                ),
            )

    def get_reminder(self, reminder_id: int) -> Reminder | None:
        """Fetch a single reminder by ID."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM reminders WHERE id = ?", (reminder_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_reminder(row)

    def list_all(self) -> list[Reminder]:
        """Return every reminder in creation order."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM reminders ORDER BY id").fetchall()
        return [self._row_to_reminder(r) for r in rows]

    def delete_reminder(self, reminder_id: int) -> bool:
        """Permanently delete a reminder by ID."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Reminder #%d deleted", reminder_id)
        return deleted


class DailyTaskDB(_SQLiteStore):
    """SQLite-backed storage for dailies (recurring tasks)."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS daily_tasks (
                    id            INTEGER PRIMARY KEY AUTOINCREMENT,
                    task          TEXT NOT NULL,
                    priority      TEXT NOT NULL DEFAULT '',
                    category      TEXT NOT NULL DEFAULT '',
                    status        TEXT NOT NULL DEFAULT 'incomplete',
                    completed_at  TEXT
                )
            """)
        logger.debug("Daily tasks table initialized at %s", self._db_path)

    def _row_to_task(self, row: sqlite3.Row) -> DailyTask:
        return DailyTask(
            id=row["id"],
            task=row["task"],
            priority=row["priority"],
            category=row["category"],
            status=TaskStatus(row["status"]),
            completed_at=_from_iso(row["completed_at"], self._tz),
        )

    def add_task(self, task: str, priority: str = "", category: str = "") -> DailyTask:
        """Insert a new daily. New dailies always start incomplete."""
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO daily_tasks (task, priority, category, status) VALUES (?, ?, ?, ?)",
                (task, priority, category, TaskStatus.INCOMPLETE.value),
            )
            task_id = cursor.lastrowid

        logger.info("Daily added: #%d '%s'", task_id, task)
        return DailyTask(id=task_id, task=task, priority=priority, category=category)

    def save_task(self, task: DailyTask) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE daily_tasks SET
                    task = ?, priority = ?, category = ?, status = ?, completed_at = ?
                WHERE id = ?
                """,
                (
                    task.task, task.priority, task.category,
                    task.status.value, _to_iso(task.completed_at), task.id,
                ),
            )

    def list_all(self) -> list[DailyTask]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM daily_tasks ORDER BY id").fetchall()
        return [self._row_to_task(r) for r in rows]

    def delete_task(self, task_id: int) -> bool:
        """Permanently delete a daily by ID."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM daily_tasks WHERE id = ?", (task_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Daily #%d deleted", task_id)
        return deleted
