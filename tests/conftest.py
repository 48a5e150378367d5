"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the questlog test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
import structlog

from questlog.core.config import clear_settings_cache
from questlog.engine.progression import ProgressionEngine
from questlog.models import Character, LevelUpPolicy, create_character
from questlog.storage import Database, MemoryStorage, seed_class_features


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "QUESTLOG_DEBUG": "true",
        "QUESTLOG_LOG_LEVEL": "DEBUG",
        "QUESTLOG_STORAGE_BACKEND": "sqlite",
        "QUESTLOG_GAME_LEVEL_UP_POLICY": "single",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def sqlite_storage(tmp_path: Path) -> Database:
    """A fresh SQLite database with the default class features."""
    db = Database(tmp_path / "questlog.db")
    seed_class_features(db.class_features)
    return db


@pytest.fixture(params=["memory", "sqlite"])
def storage(request: pytest.FixtureRequest, tmp_path: Path) -> MemoryStorage | Database:
    """Each storage backend in turn, seeded with class features."""
    if request.param == "sqlite":
        backend: MemoryStorage | Database = Database(tmp_path / "questlog.db")
    else:
        backend = MemoryStorage()
    seed_class_features(backend.class_features)
    return backend


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def sample_character_stats() -> dict[str, int]:
    """Provide sample character ability scores.

    Returns:
        Dictionary of ability scores.
    """
    return {
        "strength": 16,
        "dexterity": 12,
        "constitution": 14,
        "intelligence": 10,
        "wisdom": 12,
        "charisma": 8,
    }


@pytest.fixture
def fighter(storage: MemoryStorage | Database, sample_character_stats: dict[str, int]) -> Character:
    """A stored level-1 Fighter with Constitution 14 (12 HP)."""
    return storage.characters.create(
        create_character("Thorin", "Fighter", **sample_character_stats)
    )


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def engine(storage: MemoryStorage | Database) -> ProgressionEngine:
    """Engine using the per-level policy."""
    return ProgressionEngine(
        storage.characters,
        storage.class_features,
        storage.progression,
        storage.level_ups,
        transaction=storage.transaction,
        level_up_policy=LevelUpPolicy.PER_LEVEL,
    )


@pytest.fixture
def single_engine(storage: MemoryStorage | Database) -> ProgressionEngine:
    """Engine using the single-record policy."""
    return ProgressionEngine(
        storage.characters,
        storage.class_features,
        storage.progression,
        storage.level_ups,
        transaction=storage.transaction,
        level_up_policy=LevelUpPolicy.SINGLE,
    )


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def captured_logs() -> Generator[list[dict[str, Any]], None, None]:
    """Collect structlog events, including bound context, as dicts."""
    capture = structlog.testing.LogCapture()
    structlog.configure(processors=[structlog.contextvars.merge_contextvars, capture])
    yield capture.entries
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
