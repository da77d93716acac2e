"""Desktop notification adapter — implements NotificationPort via notify-send."""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class DesktopNotifier:
    """Pops a libnotify bubble on the machine running the bot."""

    def __init__(self, urgency: str = "critical", timeout: float = 5.0) -> None:
        self._urgency = urgency if urgency in ("low", "normal", "critical") else "normal"
        self._timeout = timeout

    async def notify(self, title: str, message: str) -> None:
        cmd = ["notify-send", f"--urgency={self._urgency}", title]
        if message:
            cmd.append(message)
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("notify-send did not exit within %.1fs; killing it", self._timeout)
            proc.kill()
            await proc.wait()
            raise
        if returncode != 0:
            raise RuntimeError(f"notify-send exited with {returncode}")
