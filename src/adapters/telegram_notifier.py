"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance and sends every notification to each
allowed user.
"""

from __future__ import annotations

import logging

from telegram import Bot

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot, chat_ids: list[int]) -> None:
        self._bot = bot
        self._chat_ids = list(chat_ids)

    async def notify(self, title: str, message: str) -> None:
        """Send to every chat; one failed chat does not skip the rest.

        The first failure is re-raised after all chats were tried.
        """
        text = f"⏰ {title}\n{message}" if message else f"⏰ {title}"
        first_error: Exception | None = None
        for chat_id in self._chat_ids:
            try:
                await self._bot.send_message(chat_id=chat_id, text=text)
            except Exception as exc:
                logger.error("Failed to notify chat %s: %s", chat_id, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
