"""
FriendSocial Session Sync — Centralized configuration.

Loads all settings from .env and validates them.
Every module that talks to the data service reads its defaults from here.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Remote data service
    API_BASE_URL: str = "http://localhost:8080"
    HTTP_TIMEOUT_SECONDS: float | None = 10.0   # 0 → no timeout

    # User cache
    USER_CACHE_TTL_SECONDS: float = 600.0

    # Caller's IANA time zone for new schedules and day views
    TIMEZONE: str = "UTC"

    LOG_LEVEL: str = "INFO"

    # User loaded by main.py when no CLI argument is given
    SESSION_USER_ID: int = 0

    @field_validator("API_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("HTTP_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def parse_timeout(cls, v: str | float | None) -> float | None:
        if v is None or v == "":
            return None
        value = float(v)
        return value if value > 0 else None

    @field_validator("TIMEZONE")
    @classmethod
    def validate_time_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown IANA time zone: {v!r}") from exc
        return v

    @field_validator("SESSION_USER_ID", mode="before")
    @classmethod
    def parse_user_id(cls, v: str | int) -> int:
        if isinstance(v, str) and not v.strip():
            return 0
        return int(v)


def _load_settings() -> Settings:
    """Load settings from environment, validating the base URL and time zone."""
    base_url = os.getenv("API_BASE_URL", "http://localhost:8080")

    if not base_url.startswith(("http://", "https://")):
        print(
            f"ERROR: API_BASE_URL must be an http(s) URL, got {base_url!r}",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        return Settings(
            API_BASE_URL=base_url,
            HTTP_TIMEOUT_SECONDS=os.getenv("HTTP_TIMEOUT_SECONDS", "10"),
            USER_CACHE_TTL_SECONDS=os.getenv("USER_CACHE_TTL_SECONDS", "600"),
            TIMEZONE=os.getenv("TIMEZONE", "UTC"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            SESSION_USER_ID=os.getenv("SESSION_USER_ID", "0"),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)


# Singleton, imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
