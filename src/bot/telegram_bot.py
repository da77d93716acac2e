"""
Daily Tasks & Reminders — Telegram Bot.

Telegram is the user interface: reminders and dailies are created, paused,
reset and ticked off through bot commands, and expired reminders come back
as Telegram messages.

The same asyncio loop runs the command handlers and the repeating
evaluation job, so every mutation of reminder state is serialized.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
)

from src.config import settings

if TYPE_CHECKING:
    from src.core.action_service import ServiceResponse, TaskService
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

_AMPM_TOKENS = {"am", "pm", "a.m.", "p.m."}
_UNIT_TOKENS = {"w", "d", "m", "min", "h", "hr", "s", "sec"}

HELP_TEXT = (
    "*Reminders*\n"
    "/remind <time> <text> [| note] — e.g. /remind 25m Tea | green\n"
    "/reminders — list reminders\n"
    "/pause <id> · /resume <id> · /reset <id>\n"
    "/respec <id> <time> — change the time and restart\n"
    "/delreminder <id>\n\n"
    "*Dailies* (reset every day at {hour:02d}:00)\n"
    "/daily <task> [| priority | category]\n"
    "/dailies — list dailies\n"
    "/done <id> — toggle done\n"
    "/deldaily <id>\n\n"
    "Times: 30s, 10m, 2h, 1d, 1w, 7:30pm, 19:30"
)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _split_remind_args(args: list[str]) -> tuple[str, str, str] | None:
    """Split /remind arguments into (spec, text, note).

    The spec is the first token, or the first two when the second is an
    AM/PM marker or a unit ("7:30 pm", "5 min"). Everything after a "|"
    is the note.
    """
    if len(args) < 2:
        return None

    spec_len = 1
    if args[1].lower() in _AMPM_TOKENS or (args[0].isdigit() and args[1].lower() in _UNIT_TOKENS):
        spec_len = 2
    spec = " ".join(args[:spec_len])

    rest = " ".join(args[spec_len:])
    text, _, note = rest.partition("|")
    text, note = text.strip(), note.strip()
    if not text:
        return None
    return spec, text, note


def _parse_id(args: list[str] | None) -> int | None:
    if not args:
        return None
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        return None


def _service(context: ContextTypes.DEFAULT_TYPE) -> TaskService:
    return context.bot_data["service"]


async def _reply(update: Update, response: ServiceResponse) -> None:
    if getattr(response, "intent", None) is not None:
        logger.warning("Parse failed for spec %r", response.intent.spec)
    await update.message.reply_text(response.message)


# ---------------------------------------------------------------------------
# General commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — greet and show help."""
    await update.message.reply_text(
        "Hi! I keep your reminders and dailies.\n\n"
        + HELP_TEXT.format(hour=settings.DAILY_RESET_HOUR),
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help."""
    await update.message.reply_text(
        HELP_TEXT.format(hour=settings.DAILY_RESET_HOUR), parse_mode="Markdown",
    )


# ---------------------------------------------------------------------------
# Reminder commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_remind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /remind <time> <text> [| note]."""
    parsed = _split_remind_args(context.args or [])
    if parsed is None:
        await update.message.reply_text("Usage: /remind <time> <text> [| note]\nExample: /remind 10m Stretch")
        return

    spec, text, note = parsed
    try:
        response = _service(context).add_reminder(text=text, spec=spec, note=note)
    except Exception as exc:
        logger.error("/remind error: %s", exc)
        await update.message.reply_text("Couldn't save the reminder. Please try again.")
        return
    await _reply(update, response)


@authorized_only
async def cmd_reminders(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reminders — list all reminders with their live state."""
    await _reply(update, _service(context).list_reminders())


def _reminder_action(name: str, method: str):
    """Build a handler for a "/<name> <id>" reminder command."""

    @authorized_only
    async def handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        reminder_id = _parse_id(context.args)
        if reminder_id is None:
            await update.message.reply_text(f"Usage: /{name} <reminder_id>\nUse /reminders to see IDs.")
            return
        try:
            response = getattr(_service(context), method)(reminder_id)
        except Exception as exc:
            logger.error("/%s error: %s", name, exc)
            await update.message.reply_text(f"Couldn't {name} reminder {reminder_id}. Please try again.")
            return
        await _reply(update, response)

    handler.__name__ = f"cmd_{name}"
    return handler


cmd_pause = _reminder_action("pause", "pause_reminder")
cmd_resume = _reminder_action("resume", "start_reminder")
cmd_reset = _reminder_action("reset", "reset_reminder")
cmd_delreminder = _reminder_action("delreminder", "delete_reminder")


@authorized_only
async def cmd_respec(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /respec <id> <time> — change a reminder's time and restart it."""
    args = context.args or []
    reminder_id = _parse_id(args)
    if reminder_id is None or len(args) < 2:
        await update.message.reply_text("Usage: /respec <reminder_id> <time>")
        return

    spec = " ".join(args[1:])
    try:
        response = _service(context).edit_reminder_spec(reminder_id, spec)
    except Exception as exc:
        logger.error("/respec error: %s", exc)
        await update.message.reply_text(f"Couldn't update reminder {reminder_id}. Please try again.")
        return
    await _reply(update, response)


# ---------------------------------------------------------------------------
# Daily commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_daily(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /daily <task> [| priority | category]."""
    raw = " ".join(context.args or [])
    parts = [p.strip() for p in raw.split("|")]
    if not parts[0]:
        await update.message.reply_text("Usage: /daily <task> [| priority | category]")
        return

    task = parts[0]
    priority = parts[1] if len(parts) > 1 else ""
    category = parts[2] if len(parts) > 2 else ""
    try:
        response = _service(context).add_daily(task, priority=priority, category=category)
    except Exception as exc:
        logger.error("/daily error: %s", exc)
        await update.message.reply_text("Couldn't save the daily. Please try again.")
        return
    await _reply(update, response)


@authorized_only
async def cmd_dailies(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /dailies — list dailies and today's progress."""
    await _reply(update, _service(context).list_dailies())


def _daily_action(name: str, method: str):
    """Build a handler for a "/<name> <id>" daily command."""

    @authorized_only
    async def handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        task_id = _parse_id(context.args)
        if task_id is None:
            await update.message.reply_text(f"Usage: /{name} <daily_id>\nUse /dailies to see IDs.")
            return
        try:
            response = getattr(_service(context), method)(task_id)
        except Exception as exc:
            logger.error("/%s error: %s", name, exc)
            await update.message.reply_text(f"Couldn't update daily {task_id}. Please try again.")
            return
        await _reply(update, response)

    handler.__name__ = f"cmd_{name}"
    return handler


cmd_done = _daily_action("done", "toggle_daily")
cmd_deldaily = _daily_action("deldaily", "delete_daily")


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def _default_service() -> TaskService:
    from zoneinfo import ZoneInfo

    from src.adapters.system_clock import SystemClock
    from src.core.action_service import TaskService
    from src.data.db import DailyTaskDB, ReminderDB

    tz = ZoneInfo(settings.TIMEZONE)
    return TaskService(
        reminder_db=ReminderDB(tz=tz),
        task_db=DailyTaskDB(tz=tz),
        clock=SystemClock(settings.TIMEZONE),
    )


def build_app(
    service: TaskService | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        service: Task service owning reminders and dailies. Defaults to one
                 backed by DATABASE_PATH and the system clock.
        notifier: Notification port implementation. Defaults to whatever
                  notifier_factory builds from settings.
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    # Wire default adapters if not provided
    if service is None:
        service = _default_service()

    if notifier is None:
        from src.adapters.notifier_factory import create_notifier
        notifier = create_notifier(app.bot)

    for failure in service.load():
        logger.warning("Reminder spec %r no longer parses; left inactive", failure.spec)

    app.bot_data["service"] = service
    app.bot_data["notifier"] = notifier

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("remind", cmd_remind))
    app.add_handler(CommandHandler("reminders", cmd_reminders))
    app.add_handler(CommandHandler("pause", cmd_pause))
    app.add_handler(CommandHandler("resume", cmd_resume))
    app.add_handler(CommandHandler("reset", cmd_reset))
    app.add_handler(CommandHandler("respec", cmd_respec))
    app.add_handler(CommandHandler("delreminder", cmd_delreminder))
    app.add_handler(CommandHandler("daily", cmd_daily))
    app.add_handler(CommandHandler("dailies", cmd_dailies))
    app.add_handler(CommandHandler("done", cmd_done))
    app.add_handler(CommandHandler("deldaily", cmd_deldaily))

    _setup_evaluation_loop(app, service, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_evaluation_loop(
    app: Application,
    service: TaskService,
    notifier: NotificationPort,
) -> None:
    """Register the repeating job that expires reminders and resets dailies.

    The loop reads the same clock as the service so user actions and ticks
    agree on "now".
    """
    from src.core.evaluation_loop import EvaluationLoop

    loop = EvaluationLoop(
        service,
        clock=service.clock,
        notifier=notifier,
        reset_hour=settings.DAILY_RESET_HOUR,
    )
    app.bot_data["evaluation_loop"] = loop

    async def _tick_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await loop.run_once()

    app.job_queue.run_repeating(
        _tick_callback,
        interval=settings.TICK_INTERVAL_SECONDS,
        first=0,
        name="evaluation_loop",
    )

    logger.info(
        "Evaluation loop every %.1fs, daily reset at %02d:00 %s",
        settings.TICK_INTERVAL_SECONDS,
        settings.DAILY_RESET_HOUR,
        settings.TIMEZONE,
    )


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Daily Tasks & Reminders bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
