"""statesmin configuration using pydantic-settings.

This module defines the StatesminSettings class that reads configuration
from environment variables with the STATESMIN_ prefix. Every field has a
default, so the engine works without any environment set.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StatesminSettings(BaseSettings):
    """Engine configuration from environment variables.

    All environment variables are prefixed with STATESMIN_ (e.g.,
    STATESMIN_LOG_LEVEL).
    """

    model_config = SettingsConfigDict(
        env_prefix="STATESMIN_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------
    # Minimum level for statesmin log events
    log_level: str = "INFO"

    # Render log events as JSON (True) or for the console (False)
    log_json: bool = True

    # -------------------------------------------------------------------------
    # Conflict Retry Configuration
    # -------------------------------------------------------------------------
    # Additional attempts retry_conflicts() makes when none are given
    default_max_retries: int = Field(default=1, ge=0)

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log level is a standard logging level name."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"log_level must be a logging level name, got {v!r}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> StatesminSettings:
    """Return the process-wide settings, read once from the environment."""
    return StatesminSettings()
