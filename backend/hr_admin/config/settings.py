"""
Runtime settings loaded from environment variables.

All configuration is read here so that the rest of the codebase never
touches os.environ directly. Settings are resolved once and cached;
tests call reset_settings() after patching the environment.

Usage:
    from hr_admin.config.settings import get_settings

    settings = get_settings()
    ttl = settings.permission_cache_ttl
"""

import os
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "development-secret-change-in-prod"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            "Invalid integer environment variable, using default",
            extra={"variable": name, "value": raw, "default": default},
        )
        return default


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of the process configuration."""

    env: str = "development"
    database_url: Optional[str] = None
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_expires_days: int = 7
    jwt_refresh_expires_days: int = 30
    max_failed_login_attempts: int = 5
    account_lock_minutes: int = 30
    permission_cache_ttl: int = 30
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        database_url = os.getenv("DATABASE_URL") or None
        # SQLAlchemy requires the postgresql:// scheme
        if database_url and database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)

        cors_origins = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]

        return cls(
            env=os.getenv("ENV", "development"),
            database_url=database_url,
            jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
            jwt_access_expires_days=_int_env("JWT_ACCESS_EXPIRES_DAYS", 7),
            jwt_refresh_expires_days=_int_env("JWT_REFRESH_EXPIRES_DAYS", 30),
            max_failed_login_attempts=_int_env("MAX_FAILED_LOGIN_ATTEMPTS", 5),
            account_lock_minutes=_int_env("ACCOUNT_LOCK_MINUTES", 30),
            permission_cache_ttl=_int_env("PERMISSION_CACHE_TTL", 30),
            cors_origins=cors_origins,
            port=_int_env("PORT", 8000),
        )


_settings: Optional[Settings] = None
_settings_lock = Lock()


def get_settings() -> Settings:
    """Get or create the settings singleton."""
    global _settings
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = Settings.from_env()
                if _settings.is_production and _settings.jwt_secret == DEFAULT_JWT_SECRET:
                    logger.error("JWT_SECRET is not set in production; tokens use the development secret")
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    with _settings_lock:
        _settings = None
