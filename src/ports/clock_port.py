"""Clock port — the single source of "now" for the temporal engine.

Every engine function takes ``now`` explicitly; only the evaluation loop and
the service layer ask a clock for it, so tests can swap in a fixed clock.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    """Returns the current timezone-aware local time."""

    def now(self) -> datetime: ...
