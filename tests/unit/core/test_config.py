"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from questlog.core.config import (
    GameSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from questlog.core.exceptions import ConfigurationError


class TestStorageSettings:
    """Tests for StorageSettings configuration."""

    def test_default_values(self) -> None:
        """Test default storage settings."""
        settings = StorageSettings()

        assert settings.backend == "memory"
        assert settings.database_path == Path("data/questlog.db")
        assert settings.busy_timeout_seconds == 5.0

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test backend and path come from the environment."""
        monkeypatch.setenv("QUESTLOG_STORAGE_BACKEND", "sqlite")
        monkeypatch.setenv("QUESTLOG_STORAGE_DATABASE_PATH", str(tmp_path / "x.db"))

        settings = StorageSettings()

        assert settings.backend == "sqlite"
        assert settings.database_path == tmp_path / "x.db"

    def test_rejects_unknown_backend(self) -> None:
        """Test only memory and sqlite are accepted."""
        with pytest.raises(ValueError):
            StorageSettings(backend="postgres")


class TestGameSettings:
    """Tests for GameSettings configuration."""

    def test_default_values(self) -> None:
        """Test default game settings."""
        settings = GameSettings()

        assert settings.level_up_policy == "per_level"
        assert settings.recent_history_limit == 5
        assert settings.recent_level_up_limit == 3
        assert settings.message_history_limit == 50
        assert settings.dice_history_limit == 20
        assert settings.narrative_context_messages == 10

    def test_policy_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the level-up policy can be switched."""
        monkeypatch.setenv("QUESTLOG_GAME_LEVEL_UP_POLICY", "single")

        assert GameSettings().level_up_policy == "single"

    def test_limits_are_bounded(self) -> None:
        """Test history limits must be positive."""
        with pytest.raises(ValueError):
            GameSettings(recent_history_limit=0)


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self) -> None:
        """Test default settings initialization."""
        settings = Settings()

        assert settings.app_name == "Questlog"
        assert settings.app_version == "0.1.0"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.json_logs is False

    def test_debug_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test debug mode setting."""
        monkeypatch.setenv("QUESTLOG_DEBUG", "true")

        settings = Settings()

        assert settings.debug is True
        assert settings.is_production is False

    def test_nested_settings(self, mock_env_vars: dict[str, str]) -> None:
        """Test nested settings read their own prefixes."""
        settings = Settings()

        assert settings.log_level == "DEBUG"
        assert settings.storage.backend == "sqlite"
        assert settings.game.level_up_policy == "single"


class TestGetSettings:
    """Tests for get_settings cached accessor."""

    def test_returns_settings_instance(self) -> None:
        """Test get_settings returns Settings."""
        assert isinstance(get_settings(), Settings)

    def test_caches_instance(self) -> None:
        """Test repeated calls return the same object."""
        assert get_settings() is get_settings()

    def test_clear_cache_reloads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test clearing the cache picks up new environment values."""
        first = get_settings()
        monkeypatch.setenv("QUESTLOG_DEBUG", "true")
        clear_settings_cache()

        second = get_settings()

        assert second is not first
        assert second.debug is True

    def test_invalid_env_raises_configuration_error(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test invalid configuration is wrapped in ConfigurationError."""
        monkeypatch.setenv("QUESTLOG_LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError):
            get_settings()
