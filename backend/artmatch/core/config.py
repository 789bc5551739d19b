"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-level settings for the scoring engine.

    Settings are loaded from (lowest to highest priority):
    1. .env file
    2. Environment variables
    3. Init settings (values passed to Settings())

    All settings are prefixed with ARTMATCH_ (e.g., ARTMATCH_ENV=production).
    Similarity tuning lives in its own settings classes, see
    artmatch.core.similarity.config.

    See: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ARTMATCH_",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Application
    env: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Application environment (development, production, testing)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    log_dir: Path | None = Field(
        default=None,
        description="Directory for JSON log files (stdout only when unset)",
    )

    @property
    def is_debug(self) -> bool:
        """Check if running in debug/development mode."""
        return self.env == "development" or self.log_level == "DEBUG"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.env == "testing"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings, loaded on first call."""
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and load them again from .env and the environment."""
    get_settings.cache_clear()
    return get_settings()
