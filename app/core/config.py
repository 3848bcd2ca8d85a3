"""Gateway configuration built on pydantic-settings.

Values come from the process environment, optionally seeded from a
``.env.<APP_ENV>`` file at the project root (``APP_ENV`` defaults to
``development``). Each concern reads its own prefix: ``CHECKO_`` for the
registry, ``APP_`` for quota and HTTP behavior, ``LOG_`` for logging.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

KNOWN_ENVIRONMENTS = ("development", "testing", "staging", "production")


def resolve_env_file(app_env: str, root: Path = PROJECT_ROOT) -> Path | None:
    """Return the dotenv file for ``app_env``, or None when it does not exist.

    Unknown environment names fall back to the development file.
    """
    name = app_env if app_env in KNOWN_ENVIRONMENTS else "development"
    candidate = root / f".env.{name}"
    return candidate if candidate.is_file() else None


# Nested BaseSettings groups do not share an env_file, so the file is pushed
# into os.environ once, before any group is instantiated.
_env_file = resolve_env_file(APP_ENV)
if _env_file is not None:
    load_dotenv(_env_file, override=True)


class UpstreamSettings(BaseSettings):
    """Checko registry API configuration.

    The caller supplies the API key on every request, so no credential is
    configured here.
    """

    base_url: str = Field(
        "https://api.checko.ru/v2",
        description="Base URL of the Checko v2 API",
    )
    company_path: str = Field(
        "/company",
        description="Path of the company profile endpoint",
    )
    finances_path: str = Field(
        "/finances",
        description="Path of the financial statements endpoint",
    )
    timeout_seconds: float = Field(
        15.0,
        description="Per-request timeout in seconds (connect + read)",
        gt=0,
    )
    reference_inn: str = Field(
        "7735560386",
        description="Known-valid INN used by check-connection to validate a key",
    )

    model_config = SettingsConfigDict(
        env_prefix="CHECKO_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    quota_timezone: str = Field(
        "UTC",
        description="IANA time zone whose calendar day resets the daily quota",
    )
    batch_concurrency: int = Field(
        1,
        description="Maximum number of batch entities looked up concurrently",
        ge=1,
    )
    cors_allow_origins: str = Field(
        "*",
        description="Comma-separated list of allowed CORS origins",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (default logs/app.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file at this size; 0 disables rotation",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """All gateway settings, grouped by concern.

    A malformed value fails at import with a pydantic ValidationError.
    """

    app_env: str = APP_ENV
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Read once at import; tests set the environment before importing app modules.
settings = Settings()
