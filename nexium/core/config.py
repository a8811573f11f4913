"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
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


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


# Paths under /api that belong to the built-in routes
RESERVED_API_NAMES = frozenset({"id", "test", "users"})

_DESTINATION_NAME = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Static type checkers treat required fields as constructor arguments,
    which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_server_settings() -> "ServerSettings":
    return ServerSettings()  # type: ignore[call-arg]


def _build_store_settings() -> "StoreSettings":
    return StoreSettings()  # type: ignore[call-arg]


def _build_profile_settings() -> "ProfileSettings":
    return ProfileSettings()  # type: ignore[call-arg]


def _build_relay_settings() -> "RelaySettings":
    return RelaySettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed by the CORS middleware (JSON list)",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable global rate limiting per client address",
    )
    rate_limit_requests: int = Field(
        100,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_trust_forwarded_for: bool = Field(
        False,
        description="Key clients by the first X-Forwarded-For entry (behind a proxy)",
    )
    rate_limit_max_keys: int = Field(
        10000,
        description="Maximum number of client windows kept in memory (LRU eviction)",
        ge=1,
    )
    rate_limit_sweep_interval_seconds: int = Field(
        60,
        description="How often expired client windows are swept",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class ServerSettings(BaseSettings):
    """Listening address for the HTTP server."""

    host: str = Field(
        "0.0.0.0",
        validation_alias=AliasChoices("SERVER_HOST", "HOST"),
        description="Interface the server binds to",
    )
    port: int = Field(
        3000,
        validation_alias=AliasChoices("PORT", "SERVER_PORT"),
        description="TCP port the server listens on",
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """User directory storage configuration.

    The file backend keeps two JSON documents under ``data_dir``. The database
    backend needs ``database_url``; ``database_password`` is injected into the
    URL so the credential can live in its own secret.
    """

    backend: Literal["file", "database"] = Field(
        "file",
        description="Directory backend: 'file' (JSON documents) or 'database'",
    )
    data_dir: Path = Field(
        Path("data"),
        description="Directory holding the JSON documents (file backend)",
    )
    ids_file: str = Field(
        "users.json",
        description="File name of the active ID list (file backend)",
    )
    records_file: str = Field(
        "allusers.json",
        description="File name of the detailed user records (file backend)",
    )
    database_url: str | None = Field(
        None,
        description="SQLAlchemy async URL, e.g. postgresql+asyncpg://user@host/db",
    )
    database_password: str | None = Field(
        None,
        description="Database credential, injected into database_url",
    )
    seed_ids: list[str] = Field(
        default_factory=list,
        description="IDs tracked when the directory starts empty (JSON list)",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )

    @field_validator("seed_ids")
    @classmethod
    def _seed_ids_are_numeric(cls, value: list[str]) -> list[str]:
        for item in value:
            if not item.isdigit():
                raise ValueError(f"seed id {item!r} is not numeric")
        return value


class ProfileSettings(BaseSettings):
    """Third-party profile API configuration."""

    base_url: str = Field(
        "https://users.roblox.com/v1/users",
        description="Base URL; the user id is appended as the last path segment",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Request timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="PROFILE_",
        case_sensitive=False,
    )


class RelaySettings(BaseSettings):
    """Webhook relay destinations.

    Each destination name becomes a route ``POST /api/<name>``.
    """

    destinations: dict[str, str] = Field(
        default_factory=dict,
        description="Mapping of destination name to webhook URL (JSON object)",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Request timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        case_sensitive=False,
    )

    @field_validator("destinations")
    @classmethod
    def _validate_destination_names(cls, value: dict[str, str]) -> dict[str, str]:
        for name in value:
            if not _DESTINATION_NAME.match(name):
                raise ValueError(f"invalid relay destination name {name!r}")
            if name in RESERVED_API_NAMES:
                raise ValueError(f"relay destination {name!r} collides with a built-in route")
        return value


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(
        "INFO",
        description="Root log level",
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    server: ServerSettings = Field(default_factory=_build_server_settings)
    store: StoreSettings = Field(default_factory=_build_store_settings)
    profile: ProfileSettings = Field(default_factory=_build_profile_settings)
    relay: RelaySettings = Field(default_factory=_build_relay_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
