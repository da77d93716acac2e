"""
Daily Tasks & Reminders — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Security + notification recipients
    ALLOWED_USER_IDS: list[int] = []

    # SQLite
    DATABASE_PATH: str = "data/tasks.db"

    # Local wall clock used for alarms and the daily reset
    TIMEZONE: str = "UTC"

    # Dailies flip back to incomplete at this hour every day
    DAILY_RESET_HOUR: int = 3

    # Evaluation loop period
    TICK_INTERVAL_SECONDS: float = 1.0

    # Also pop a notify-send bubble on the host running the bot
    DESKTOP_NOTIFICATIONS: bool = False

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("DAILY_RESET_HOUR", mode="before")
    @classmethod
    def parse_hour(cls, v: str | int) -> int:
        hour = int(v)
        if not 0 <= hour <= 23:
            raise ValueError(f"DAILY_RESET_HOUR out of range: {hour}")
        return hour

    @field_validator("TICK_INTERVAL_SECONDS", mode="before")
    @classmethod
    def parse_interval(cls, v: str | float) -> float:
        interval = float(v)
        if interval <= 0:
            raise ValueError(f"TICK_INTERVAL_SECONDS must be positive: {interval}")
        return interval

    @field_validator("DESKTOP_NOTIFICATIONS", mode="before")
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in {"1", "true", "yes", "on"}


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/tasks.db"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
        DAILY_RESET_HOUR=os.getenv("DAILY_RESET_HOUR", "3"),
        TICK_INTERVAL_SECONDS=os.getenv("TICK_INTERVAL_SECONDS", "1"),
        DESKTOP_NOTIFICATIONS=os.getenv("DESKTOP_NOTIFICATIONS", "false"),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
