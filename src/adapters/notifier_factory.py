"""Notifier factory — builds the notification adapters enabled in config."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.config import settings

if TYPE_CHECKING:
    from telegram import Bot

    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


class MultiNotifier:
    """Fans one notification out to several adapters.

    Each adapter fails on its own: a broken desktop backend does not stop the
    Telegram message. The first failure is re-raised once all have run so
    the caller can log it.
    """

    def __init__(self, notifiers: list[NotificationPort]) -> None:
        self._notifiers = list(notifiers)

    async def notify(self, title: str, message: str) -> None:
        first_error: Exception | None = None
        for notifier in self._notifiers:
            try:
                await notifier.notify(title, message)
            except Exception as exc:
                logger.debug("%s failed: %s", type(notifier).__name__, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error


def create_notifier(bot: Bot) -> NotificationPort:
    """Return the notifier matching the current settings.

    Args:
        bot: Telegram bot used to message ALLOWED_USER_IDS.
    """
    from src.adapters.telegram_notifier import TelegramNotifier

    notifiers: list[NotificationPort] = [TelegramNotifier(bot, settings.ALLOWED_USER_IDS)]

    if settings.DESKTOP_NOTIFICATIONS:
        from src.adapters.desktop_notifier import DesktopNotifier

        notifiers.append(DesktopNotifier())

    if len(notifiers) == 1:
        return notifiers[0]
    return MultiNotifier(notifiers)
