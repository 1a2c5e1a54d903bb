"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DragonsheetError: Base exception for all application errors.
        CharacterNotFoundError: Character missing or not visible.
        RemoteError: Backing store failure.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        configure_from_settings: Set up logging from Settings.
        bind_context: Add context to log entries.
        log_context: Bind context for a block.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from dragonsheet.core.config import (
    GameSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from dragonsheet.core.exceptions import (
    CharacterNotFoundError,
    CombatError,
    ConfigurationError,
    DiceRollError,
    DragonsheetError,
    GameEngineError,
    InvalidGameStateError,
    PersistenceError,
    RemoteError,
    ValidationError,
)
from dragonsheet.core.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    log_context,
)


__all__ = [
    # Base exception
    "DragonsheetError",
    # Game engine exceptions
    "GameEngineError",
    "InvalidGameStateError",
    "CombatError",
    "DiceRollError",
    # Persistence exceptions
    "PersistenceError",
    "CharacterNotFoundError",
    "RemoteError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Configuration
    "Settings",
    "GameSettings",
    "StorageSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
    "log_context",
]
