"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        QuestlogError: Base exception for all application errors.
        InvalidInputError, NotFoundError, StorageError: Caller-facing failures.
        GameEngineError, DiceRollError, NarrativeError: Engine failures.
        ConfigurationError: Configuration-related errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the cached settings.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        log_context: Tag log entries inside a block.
"""

from __future__ import annotations

from questlog.core.config import (
    GameSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from questlog.core.exceptions import (
    ConfigurationError,
    DiceRollError,
    GameEngineError,
    InvalidInputError,
    NarrativeError,
    NotFoundError,
    QuestlogError,
    StorageError,
)
from questlog.core.logging import (
    configure_logging,
    get_logger,
    log_context,
)


__all__ = [
    # Exceptions
    "QuestlogError",
    "InvalidInputError",
    "NotFoundError",
    "StorageError",
    "GameEngineError",
    "DiceRollError",
    "NarrativeError",
    "ConfigurationError",
    # Configuration
    "Settings",
    "StorageSettings",
    "GameSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
]
