"""Configuration constants for DojoPoints, read from the environment."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()

WEEKDAY_NAMES: Dict[str, int] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def parse_timezone(value: str) -> ZoneInfo:
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown timezone {value!r}.") from exc


def parse_week_start(value: str) -> int:
    """Return the ``datetime.weekday()`` index for a weekday name."""

    try:
        return WEEKDAY_NAMES[value.strip().lower()]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown week start day {value!r}.") from exc


def parse_seconds(value: str) -> int:
    try:
        seconds = int(value)
    except ValueError as exc:
        raise ConfigurationError(f"Undo window must be a whole number of seconds, got {value!r}.") from exc
    if seconds < 0:
        raise ConfigurationError("Undo window must not be negative.")
    return seconds


SQLITE_FILE_NAME = os.environ.get("DOJOPOINTS_SQLITE", "dojopoints.db")
DATABASE_URL = f"sqlite:///{SQLITE_FILE_NAME}"
TIMEZONE = parse_timezone(os.environ.get("DOJOPOINTS_TIMEZONE", "UTC"))
WEEK_START = parse_week_start(os.environ.get("DOJOPOINTS_WEEK_START", "sunday"))
UNDO_WINDOW_SECONDS = parse_seconds(os.environ.get("DOJOPOINTS_UNDO_SECONDS", "15"))
_log_path = os.environ.get("DOJOPOINTS_LOG_PATH", "")
LOG_PATH: Optional[Path] = Path(_log_path) if _log_path else None

DEFAULT_FAMILY_GOAL_POINTS = 100
DEFAULT_FAMILY_GOAL_REWARD = "Family Movie Night! 🎬"

__all__ = [
    "DATABASE_URL",
    "DEFAULT_FAMILY_GOAL_POINTS",
    "DEFAULT_FAMILY_GOAL_REWARD",
    "LOG_PATH",
    "SQLITE_FILE_NAME",
    "TIMEZONE",
    "UNDO_WINDOW_SECONDS",
    "WEEKDAY_NAMES",
    "WEEK_START",
    "parse_seconds",
    "parse_timezone",
    "parse_week_start",
]
