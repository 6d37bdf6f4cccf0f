"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads environment variables (after loading the project `.env`) and validates
the numeric and timezone options before anything touches MongoDB.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_TIMEZONE = "America/Sao_Paulo"
DEFAULT_MAX_WORKERS = 8
DEFAULT_EXPIRY_WINDOW_DAYS = 30
DEFAULT_MONGO_URI = "mongodb://localhost:27017,localhost:27018,localhost:27019/?replicaSet=rs0"


@dataclass(frozen=True)
class Settings:
    """Container for dashboard configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI.
        mongo_db: Target MongoDB database name.
        mongo_tls: Whether to connect with TLS (Atlas requires it).
        max_workers: Upper bound of concurrent per-company sub-queries.
        expiry_window_days: Days ahead a certificate counts as expiring.
        timezone: Office timezone used for "today" and the current period.
        log_level: Numeric logging level.
    """
    mongo_uri: str
    mongo_db: str
    mongo_tls: bool
    max_workers: int
    expiry_window_days: int
    timezone: ZoneInfo
    log_level: int


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.") from None
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {value}.")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise RuntimeError(f"{name} must be a boolean (true/false), got {raw!r}.")


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if a numeric option is malformed or out of range, the
            timezone is unknown, or `LOG_LEVEL` is not a logging level name.
    """
    tz_name = os.getenv("CONTAFLOW_TZ", DEFAULT_TIMEZONE).strip()
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise RuntimeError(
            f"CONTAFLOW_TZ={tz_name!r} is not a known timezone "
            "(example: 'America/Sao_Paulo')."
        ) from None

    level_name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise RuntimeError(f"LOG_LEVEL={level_name!r} is not a logging level.")

    return Settings(
        mongo_uri=os.getenv("MONGO_URI", DEFAULT_MONGO_URI),
        mongo_db=os.getenv("MONGO_DB", "contaflow"),
        mongo_tls=_env_bool("MONGO_TLS", True),
        max_workers=_env_int("CONTAFLOW_MAX_WORKERS", DEFAULT_MAX_WORKERS, minimum=1),
        expiry_window_days=_env_int("CONTAFLOW_EXPIRY_WINDOW_DAYS", DEFAULT_EXPIRY_WINDOW_DAYS, minimum=0),
        timezone=tz,
        log_level=level,
    )
