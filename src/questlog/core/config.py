"""Configuration management for questlog.

Settings are loaded with pydantic-settings from environment variables and
an optional .env file. They are read once, at composition time, and passed
into storage and engine constructors.

Example:
    >>> from questlog.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.game.level_up_policy
    'per_level'

Environment Variables:
    QUESTLOG_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    QUESTLOG_JSON_LOGS: Emit JSON log lines instead of console output
    QUESTLOG_STORAGE_BACKEND: 'memory' or 'sqlite'
    QUESTLOG_STORAGE_DATABASE_PATH: Path to the SQLite database file
    QUESTLOG_GAME_LEVEL_UP_POLICY: 'per_level' or 'single'
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from questlog.core.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Configuration for the persistence backend.

    Attributes:
        backend: Which storage implementation to build.
        database_path: Path to the SQLite database file.
        busy_timeout_seconds: How long SQLite waits on a locked database.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUESTLOG_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Storage backend",
    )
    database_path: Path = Field(
        default=Path("data/questlog.db"),
        description="Path to SQLite database",
    )
    busy_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="SQLite lock wait timeout",
    )


class GameSettings(BaseSettings):
    """Configuration for progression and session behaviour.

    Attributes:
        level_up_policy: How a single award crossing several thresholds is recorded.
        recent_history_limit: XP gains shown in a progression summary.
        recent_level_up_limit: Level-ups shown in a progression summary.
        message_history_limit: Messages returned for a session by default.
        dice_history_limit: Dice rolls returned for a session by default.
        narrative_context_messages: Recent messages passed to the narrator.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUESTLOG_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level_up_policy: Literal["per_level", "single"] = Field(
        default="per_level",
        description="Level-up recording policy for multi-level awards",
    )
    recent_history_limit: int = Field(default=5, ge=1, le=50)
    recent_level_up_limit: int = Field(default=3, ge=1, le=20)
    message_history_limit: int = Field(default=50, ge=1, le=200)
    dice_history_limit: int = Field(default=20, ge=1, le=200)
    narrative_context_messages: int = Field(default=10, ge=1, le=50)


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        json_logs: Render logs as JSON.
        storage: Storage settings.
        game: Game settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUESTLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="Questlog", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    storage: StorageSettings = Field(default_factory=StorageSettings)
    game: GameSettings = Field(default_factory=GameSettings)

    @property
    def is_production(self) -> bool:
        """True if not in debug mode."""
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached application settings.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "StorageSettings",
    "GameSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
