"""
Pal Plant — Centralized configuration.

Loads all settings from .env and validates them.
The scoring engine never reads settings; only the stores, the service layer,
the reminder dispatcher and the CLI do.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (one level up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "data/palplant.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Reminders
    PUSH_ENABLED: bool = True
    REMINDER_HOURS_BEFORE: int = 24

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        level = str(v).strip().upper() or "INFO"
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return level

    @field_validator("PUSH_ENABLED", mode="before")
    @classmethod
    def parse_bool(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() not in {"0", "false", "no", "off", ""}

    @field_validator("REMINDER_HOURS_BEFORE", mode="before")
    @classmethod
    def parse_hours(cls, v: str | int) -> int:
        hours = int(v)
        if hours < 1:
            raise ValueError("must be at least 1 hour")
        return hours


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    try:
        return Settings(
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/palplant.db"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            PUSH_ENABLED=os.getenv("PUSH_ENABLED", "true"),
            REMINDER_HOURS_BEFORE=os.getenv("REMINDER_HOURS_BEFORE", "24"),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid configuration in .env:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton — imported by other modules as:
#   from src.config import settings
settings = _load_settings()
