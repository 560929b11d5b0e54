"""
LunchBot — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from lunchbot/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Leading word that addresses the bot, e.g. "lb list groups"
    COMMAND_PREFIX: str = "lb"

    # Snapshot (crash recovery); empty path disables it
    SNAPSHOT_PATH: str = "data/lunchbot.json"
    SNAPSHOT_INTERVAL_SECONDS: int = 300

    # Proposal expiry: None → at the end of the proposal's day
    PROPOSAL_GRACE_MINUTES: int | None = None

    TIMEZONE: str = "Europe/Prague"

    @field_validator("SNAPSHOT_INTERVAL_SECONDS", mode="before")
    @classmethod
    def parse_interval(cls, v: str | int) -> int:
        interval = int(v)
        if interval <= 0:
            raise ValueError("SNAPSHOT_INTERVAL_SECONDS must be positive")
        return interval

    @field_validator("PROPOSAL_GRACE_MINUTES", mode="before")
    @classmethod
    def parse_grace(cls, v: str | int | None) -> int | None:
        if v is None:
            return None
        if isinstance(v, str):
            if not v.strip():
                return None
            v = int(v.strip())
        if v < 0:
            raise ValueError("PROPOSAL_GRACE_MINUTES must not be negative")
        return v

    @property
    def proposal_grace(self) -> timedelta | None:
        if self.PROPOSAL_GRACE_MINUTES is None:
            return None
        return timedelta(minutes=self.PROPOSAL_GRACE_MINUTES)


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        COMMAND_PREFIX=os.getenv("COMMAND_PREFIX", "lb"),
        SNAPSHOT_PATH=os.getenv("SNAPSHOT_PATH", "data/lunchbot.json"),
        SNAPSHOT_INTERVAL_SECONDS=os.getenv("SNAPSHOT_INTERVAL_SECONDS", "300"),
        PROPOSAL_GRACE_MINUTES=os.getenv("PROPOSAL_GRACE_MINUTES", ""),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Prague"),
    )


# Singleton, imported as:
#   from lunchbot.config import settings
settings = _load_settings()
