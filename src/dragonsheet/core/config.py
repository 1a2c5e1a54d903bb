"""Configuration management for dragonsheet.

Centralized configuration using pydantic-settings, supporting environment
variables, .env files, and runtime overrides.

Example:
    >>> from dragonsheet.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.game.max_skill_level
    18

Environment Variables:
    DRAGONSHEET_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DRAGONSHEET_GAME_STATUS_MESSAGE_SECONDS: Default lifetime of status messages
    DRAGONSHEET_STORAGE_DATABASE_PATH: Path to the SQLite database file
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dragonsheet.core.constants import MAX_SKILL_LEVEL
from dragonsheet.core.exceptions import ConfigurationError


class GameSettings(BaseSettings):
    """Configuration for rules-engine behavior.

    Attributes:
        max_skill_level: Ceiling for any skill level.
        initiative_sides: Size of the initiative card draw (1..N).
        status_message_seconds: Default lifetime of a status message.
        encounter_message_seconds: Lifetime of initiative messages.
        stretch_refusal_seconds: Lifetime of the "dying" stretch-rest refusal.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGONSHEET_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_skill_level: int = Field(
        default=MAX_SKILL_LEVEL,
        ge=1,
        le=MAX_SKILL_LEVEL,
        description="Ceiling for any skill level",
    )
    initiative_sides: int = Field(
        default=10,
        ge=2,
        le=10,
        description="Initiative draws are uniform in 1..initiative_sides",
    )
    status_message_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Default lifetime of a status message",
    )
    encounter_message_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Lifetime of initiative status messages",
    )
    stretch_refusal_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Lifetime of the stretch-rest refusal message",
    )


class StorageSettings(BaseSettings):
    """Configuration for the SQLite persistence gateway.

    Attributes:
        database_path: Path to the SQLite database file.
        retry_attempts: Attempts for a gateway call on transient lock errors.
        retry_max_wait_seconds: Upper bound of the exponential backoff.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGONSHEET_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/dragonsheet.db"),
        description="Path to SQLite database",
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per gateway call on transient errors",
    )
    retry_max_wait_seconds: float = Field(
        default=2.0,
        gt=0,
        le=60,
        description="Maximum backoff between attempts",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        debug: Enable debug mode.
        log_level: Application logging level.
        log_json: Render logs as JSON.
        game: Rules-engine settings.
        storage: Persistence settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGONSHEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="dragonsheet", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(default=False, description="Render logs as JSON")

    game: GameSettings = Field(default_factory=GameSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @model_validator(mode="after")
    def validate_message_lifetimes(self) -> "Settings":
        """Ensure the stretch refusal does not outlive ordinary messages.

        Raises:
            ConfigurationError: If the refusal lifetime exceeds the default.
        """
        if self.game.stretch_refusal_seconds > self.game.status_message_seconds:
            raise ConfigurationError(
                "stretch_refusal_seconds must not exceed status_message_seconds",
                config_key="game.stretch_refusal_seconds",
            )
        return self

    @property
    def is_production(self) -> bool:
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "GameSettings",
    "StorageSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
