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


class AppSettings(BaseSettings):
    """Application-wide configuration, including action cooldowns."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client cooldowns on community actions",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include Retry-After and X-RateLimit-Wait-Ms headers when throttling",
    )
    client_id_header: str = Field(
        "X-Client-ID",
        description="Header identifying the caller for cooldown bookkeeping",
    )

    cooldown_increment_usage_ms: int = Field(5000, ge=0)
    cooldown_toggle_favorite_ms: int = Field(2000, ge=0)
    cooldown_publish_recipe_ms: int = Field(30000, ge=0)
    cooldown_set_username_ms: int = Field(60000, ge=0)
    cooldown_upload_image_ms: int = Field(10000, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Community listing cache configuration."""

    freshness_window_ms: int = Field(
        5 * 60 * 1000,
        description="Maximum envelope age served without a synchronous refetch",
        ge=0,
    )
    refresh_policy: Literal["always", "stale_only"] = Field(
        "always",
        description="Whether fresh hits also schedule a background refresh",
    )
    listing_key: str = Field(
        "community_listing_v1",
        description="Store key holding the community listing envelope",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class HistorySettings(BaseSettings):
    """Local generation history configuration."""

    key: str = Field("history_v1", description="Store key holding the history list")
    max_items: int = Field(20, ge=1)
    quota_retry_items: int = Field(
        5,
        description="Records kept when retrying a write rejected for quota",
        ge=1,
    )
    artifact_max_width: int = Field(800, ge=1)
    artifact_quality: float = Field(0.7, gt=0, le=1)
    preview_max_width: int = Field(200, ge=1)
    preview_quality: float = Field(0.5, gt=0, le=1)

    model_config = SettingsConfigDict(
        env_prefix="HISTORY_",
        case_sensitive=False,
    )


class StorageSettings(BaseSettings):
    """Persistent key-value store configuration."""

    backend: Literal["memory", "file"] = Field("file")
    path: str = Field("data/local_store.json")
    max_bytes: int | None = Field(
        5 * 1024 * 1024,
        description="Serialized size limit for the whole store (None for unlimited)",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )


class CommunitySettings(BaseSettings):
    """Community recipe backend configuration."""

    base_url: str = Field(
        ...,
        description="Base URL of the community recipe backend",
    )
    api_key: str | None = Field(
        None,
        description="Optional bearer token for the community backend",
    )
    timeout_seconds: float = Field(
        15.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="COMMUNITY_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO")
    format: Literal["json", "plain"] = Field("json")
    output: Literal["stdout", "file"] = Field("stdout")
    file_path: str | None = Field(None)
    max_bytes: int | None = Field(10 * 1024 * 1024)
    backup_count: int = Field(5, ge=0)
    request_id_header: str = Field("X-Request-ID")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_community_settings() -> "CommunitySettings":
    """Build community settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return CommunitySettings()  # type: ignore[call-arg]


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
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    community: CommunitySettings = Field(default_factory=_build_community_settings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
