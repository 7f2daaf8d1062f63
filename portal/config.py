"""
Scheduling Portal — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from portal/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "data/portal.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    # `assignedBy` values that mark work as issued by the admin desk
    ADMIN_ASSIGNER_NAMES: list[str] = ["Admin", "Admin/Executive"]

    # Client without an email sees every request (degraded mode)
    CLIENT_FALLBACK_SHOW_ALL: bool = True

    # Seed the built-in accounts on first start
    SEED_DEFAULT_USERS: bool = True

    @field_validator("ADMIN_ASSIGNER_NAMES", mode="before")
    @classmethod
    def parse_names(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [name.strip() for name in v.split(",") if name.strip()]
        return []

    @field_validator("CLIENT_FALLBACK_SHOW_ALL", "SEED_DEFAULT_USERS", mode="before")
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in {"1", "true", "yes", "on"}

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_level(cls, v: str) -> str:
        return str(v).strip().upper() or "INFO"


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/portal.db"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        ADMIN_ASSIGNER_NAMES=os.getenv("ADMIN_ASSIGNER_NAMES", "Admin,Admin/Executive"),
        CLIENT_FALLBACK_SHOW_ALL=os.getenv("CLIENT_FALLBACK_SHOW_ALL", "true"),
        SEED_DEFAULT_USERS=os.getenv("SEED_DEFAULT_USERS", "true"),
    )


# Singleton — imported by all other modules as:
#   from portal.config import settings
settings = _load_settings()
