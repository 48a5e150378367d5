"""Integration tests for progression on the SQLite backend.

Tests durability across reopen, schema setup and storage error mapping.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from questlog.core.config import Settings, StorageSettings
from questlog.core.exceptions import StorageError
from questlog.engine.progression import ProgressionEngine
from questlog.models import create_character
from questlog.storage import Database, MemoryStorage, create_storage, seed_class_features


class TestSqliteDurability:
    """Progression survives closing and reopening the database."""

    def test_award_persists_across_reopen(self, tmp_path: Path) -> None:
        """Test a level-up is visible through a fresh handle."""
        path = tmp_path / "campaign.db"
        db = Database(path)
        seed_class_features(db.class_features)
        hero = db.characters.create(create_character("Thorin", "Fighter", constitution=14))

        engine = ProgressionEngine.from_storage(db, Settings())
        engine.award_experience(hero.id, 900, "quest_completion", session_id="s-1")

        reopened = Database(path)
        character = reopened.characters.get(hero.id)
        assert character.level == 3
        assert character.experience == 900
        assert character.max_health == 12 + 2 * 8

        level_ups = reopened.level_ups.list_by_character(hero.id)
        assert [(e.previous_level, e.new_level) for e in level_ups] == [(2, 3), (1, 2)]
        assert level_ups[0].features_gained == ["Martial Archetype"]
        assert all(e.session_id == "s-1" for e in level_ups)

    def test_schema_version_recorded(self, tmp_path: Path) -> None:
        """Test the schema version table is populated."""
        db = Database(tmp_path / "schema.db")

        with sqlite3.connect(db.db_path) as conn:
            (version,) = conn.execute("SELECT version FROM schema_version").fetchone()
            tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}

        assert version == Database.SCHEMA_VERSION
        assert {"characters", "character_progression", "level_ups", "class_features"} <= tables


class TestSqliteErrors:
    """Driver errors surface as StorageError."""

    def test_duplicate_character_not_retryable(self, sqlite_storage: Database) -> None:
        """Test a primary-key clash is a permanent StorageError."""
        hero = sqlite_storage.characters.create(create_character("Thorin", "Fighter"))

        with pytest.raises(StorageError) as exc_info:
            sqlite_storage.characters.create(hero)

        assert exc_info.value.retryable is False
        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)

    def test_integer_overflow_not_retryable(self, sqlite_storage: Database) -> None:
        """Test binding an int past 64 bits is a permanent StorageError."""
        with pytest.raises(StorageError) as exc_info:
            with sqlite_storage.transaction() as conn:
                conn.execute("SELECT ?", (2**63,))

        assert exc_info.value.retryable is False
        assert isinstance(exc_info.value.__cause__, OverflowError)

    def test_unreachable_database(self, tmp_path: Path) -> None:
        """Test a database whose directory vanished raises StorageError."""
        db = Database(tmp_path / "gone" / "questlog.db")
        (tmp_path / "gone" / "questlog.db").unlink()
        (tmp_path / "gone").rmdir()

        with pytest.raises(StorageError):
            db.characters.list()


class TestCreateStorage:
    """Tests for picking a backend from settings."""

    def test_memory_backend(self) -> None:
        """Test memory is the default backend."""
        assert isinstance(create_storage(Settings()), MemoryStorage)

    def test_sqlite_backend(self, tmp_path: Path) -> None:
        """Test sqlite settings build a Database at the configured path."""
        settings = Settings(
            storage=StorageSettings(backend="sqlite", database_path=tmp_path / "db" / "q.db"),
        )

        storage = create_storage(settings)

        assert isinstance(storage, Database)
        assert storage.db_path == tmp_path / "db" / "q.db"
        assert storage.db_path.exists()
