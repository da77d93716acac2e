"""Side-effect intents reported by the engine.

The engine never persists or notifies on its own. It hands these upward and
the application decides what to do with them.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReminderExpired:
    reminder_id: int
    text: str
    note: str = ""


@dataclass(frozen=True)
class TasksReset:
    task_ids: tuple[int, ...]


@dataclass(frozen=True)
class ParseFailed:
    spec: str


@dataclass
class TickReport:
    """Everything one evaluation pass changed."""

    expired: list[ReminderExpired] = field(default_factory=list)
    reset: TasksReset | None = None

    @property
    def changed(self) -> bool:
        return bool(self.expired) or self.reset is not None
