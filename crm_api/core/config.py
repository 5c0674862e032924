"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_database_settings() -> "DatabaseSettings":
    """Build database/auth service settings from environment.

    Pydantic Settings populates values from environment variables; the
    factory keeps static type checkers from treating fields as required
    constructor arguments.
    """

    return DatabaseSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class DatabaseSettings(BaseSettings):
    """Managed database/auth service configuration.

    ``provider`` selects the backend: ``supabase`` talks to the hosted REST
    API, ``memory`` keeps everything in-process (local development, tests).
    """

    provider: str = Field(
        "memory",
        description="Data/identity backend name (supabase or memory)",
    )
    url: str | None = Field(
        None,
        description="Base URL of the managed service (e.g. https://xyz.supabase.co)",
    )
    anon_key: str | None = Field(
        None,
        description="Public anon key used to verify user bearer tokens",
    )
    service_role_key: str | None = Field(
        None,
        description="Service-role key for privileged server-side access",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Outbound request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    cors_allowed_origins: list[str] = Field(
        default_factory=list,
        description="Origins allowed to call the API from a browser",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-tier rate limiting",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on successful responses",
    )
    rate_limit_cache_max_entries: int = Field(
        10000,
        description="Maximum number of rate limit records kept in memory",
        ge=1,
    )
    rate_limit_cache_ttl_seconds: int = Field(
        3600,
        description="Time-to-live of a rate limit record in the cache",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate file after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    db: DatabaseSettings = Field(default_factory=_build_database_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
