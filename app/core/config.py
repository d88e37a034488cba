"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_database_settings() -> "DatabaseSettings":
    return DatabaseSettings()  # type: ignore[call-arg]


def _build_media_settings() -> "MediaSettings":
    return MediaSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class DatabaseSettings(BaseSettings):
    """Relational store configuration (SQLAlchemy async URL)."""

    url: str = Field(
        "sqlite+aiosqlite:///./spot_vigilante.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(
        False,
        description="Log every SQL statement emitted by the engine",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
    )


class MediaSettings(BaseSettings):
    """Media hosting provider configuration.

    Validation of provider-specific requirements happens in the factory.
    """

    provider: str = Field(
        "cloudinary",
        description="Media hosting provider name (currently: cloudinary)",
    )
    cloud_name: str | None = Field(
        None,
        description="Cloudinary cloud name",
    )
    api_key: str | None = Field(
        None,
        description="Cloudinary API key",
    )
    api_secret: str | None = Field(
        None,
        description="Cloudinary API secret used to sign uploads",
    )
    upload_prefix: str | None = Field(
        None,
        description="Upload API host override; the SDK default is used when unset",
    )
    image_folder: str = Field(
        "spot-vigilante/images",
        description="Destination folder for uploaded photos",
    )
    video_folder: str = Field(
        "spot-vigilante/videos",
        description="Destination folder for uploaded videos",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Upload request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="json for machine-friendly logs, plain for local reading",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log records are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (default logs/app.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate request correlation ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_auth_required: bool = Field(
        True,
        description="Whether admin endpoints require the shared admin password",
    )
    admin_password: str | None = Field(
        None,
        description="Shared secret expected in the X-Admin-Password header",
    )
    trust_proxy_headers: bool = Field(
        False,
        description="Derive the client identity from X-Forwarded-For when present",
    )

    max_image_size_mb: int = Field(
        10,
        description="Maximum size of a single uploaded photo in megabytes",
        ge=1,
    )
    max_images: int = Field(
        10,
        description="Maximum number of photos attached to one submission",
        ge=1,
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable the per-identity submission rate limit",
    )
    rate_limit_backend: Literal["database", "memory"] = Field(
        "database",
        description="Window store backend: database (shared) or memory (per-process)",
    )
    rate_limit_strategy: Literal["two_step", "atomic"] = Field(
        "two_step",
        description="two_step reads then writes; atomic uses a conditional increment",
    )
    rate_limit_submission_max_requests: int = Field(
        10,
        description="Maximum submissions allowed per window (per identity)",
        ge=1,
    )
    rate_limit_submission_window_seconds: int = Field(
        24 * 60 * 60,
        description="Submission rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    db: DatabaseSettings = Field(default_factory=_build_database_settings)
    media: MediaSettings = Field(default_factory=_build_media_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
