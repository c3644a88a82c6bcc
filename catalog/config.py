"""
Catalog configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")
    DB_POOL_MIN_SIZE: int = int(os.environ.get("DB_POOL_MIN_SIZE", "2"))
    DB_POOL_MAX_SIZE: int = int(os.environ.get("DB_POOL_MAX_SIZE", "20"))
    DB_COMMAND_TIMEOUT: float = float(os.environ.get("DB_COMMAND_TIMEOUT", "60"))

    # Auth (admin claim lives in app_metadata.role of the session JWT)
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = os.environ.get("JWT_ALGORITHM", "HS256")
    ADMIN_ROLE: str = "admin"

    # Environment sync (source is read-only, destination is truncated)
    SYNC_SOURCE_DATABASE_URL: str = os.environ.get("SYNC_SOURCE_DATABASE_URL", "").strip()
    SYNC_DEST_DATABASE_URL: str = os.environ.get("SYNC_DEST_DATABASE_URL", "").strip()

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()


# Singleton instance
settings = Settings()


def require(*names: str) -> None:
    """
    Fail fast when a required setting is empty.

    Entry points call this with the settings they depend on, so the API
    server and the sync CLI can each start without the other's secrets.
    Skipped in test mode.
    """
    if os.environ.get("TESTING", "").lower() == "true":
        return
    for name in names:
        if not getattr(settings, name):
            raise RuntimeError(f"{name} environment variable is required")
