"""
RosterPlan — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite: schedule entries and profiles share one file
    DATABASE_PATH: str = "data/roster.db"
    STORE_TIMEOUT_SECONDS: float = 5.0

    # Activity catalog (empty means the built-in weekly template)
    CATALOG_PATH: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"

    # Profiles promoted to admin at startup
    ADMIN_USER_IDS: list[str] = []

    @field_validator("ADMIN_USER_IDS", mode="before")
    @classmethod
    def parse_admin_ids(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [uid.strip() for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        level = str(v).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @field_validator("STORE_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def parse_timeout(cls, v: str | float) -> float:
        return float(v)

    @property
    def log_level(self) -> int:
        return getattr(logging, self.LOG_LEVEL)


def _load_settings() -> Settings:
    """Load settings from environment, validating them."""
    log_level = os.getenv("LOG_LEVEL", "INFO")
    if log_level.strip().upper() not in _LOG_LEVELS:
        print(f"ERROR: LOG_LEVEL {log_level!r} is not a valid log level", file=sys.stderr)
        sys.exit(1)

    catalog_path = os.getenv("CATALOG_PATH", "")
    if catalog_path and not Path(catalog_path).is_file():
        print(f"ERROR: CATALOG_PATH {catalog_path!r} does not exist", file=sys.stderr)
        sys.exit(1)

    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/roster.db"),
        STORE_TIMEOUT_SECONDS=os.getenv("STORE_TIMEOUT_SECONDS", "5.0"),
        CATALOG_PATH=catalog_path,
        LOG_LEVEL=log_level,
        ADMIN_USER_IDS=os.getenv("ADMIN_USER_IDS", ""),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
