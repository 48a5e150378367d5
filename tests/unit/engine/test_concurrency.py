"""Concurrent awards must not lose updates."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from questlog.core.exceptions import NotFoundError
from questlog.engine.progression import CharacterLocks, ProgressionEngine
from questlog.models import Character, create_character
from questlog.storage import Database, MemoryStorage


AWARDS = 40
AMOUNT = 25


class TestCharacterLocks:
    """Tests for the per-character lock registry."""

    def test_entry_dropped_after_release(self) -> None:
        """Test the registry only holds characters currently locked."""
        locks = CharacterLocks()

        with locks.hold("a"), locks.hold("b"):
            assert len(locks) == 2

        assert len(locks) == 0

    def test_same_character_waits(self) -> None:
        """Test a second holder of the same id blocks until release."""
        locks = CharacterLocks()
        entered = threading.Event()

        def second_holder() -> None:
            with locks.hold("a"):
                entered.set()

        with locks.hold("a"):
            worker = threading.Thread(target=second_holder)
            worker.start()
            assert not entered.wait(0.1)
        worker.join(timeout=5)

        assert entered.is_set()
        assert len(locks) == 0

    def test_missing_characters_leave_no_entries(
        self,
        storage: MemoryStorage | Database,
    ) -> None:
        """Test awards to unknown ids do not grow the registry."""
        locks = CharacterLocks()
        engine = ProgressionEngine.from_storage(storage, locks=locks)

        for i in range(200):
            with pytest.raises(NotFoundError):
                engine.award_experience(f"ghost-{i}", 10, "combat")

        assert len(locks) == 0


class TestConcurrentAwards:
    """Parallel awards against one character."""

    def test_no_lost_updates(
        self,
        storage: MemoryStorage | Database,
        fighter: Character,
    ) -> None:
        """Test final experience is initial + N * amount."""
        locks = CharacterLocks()
        engine = ProgressionEngine.from_storage(storage, locks=locks)

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [
                pool.submit(engine.award_experience, fighter.id, AMOUNT, "combat")
                for _ in range(AWARDS)
            ]
            results = [f.result() for f in futures]

        character = storage.characters.get(fighter.id)
        assert character.experience == AWARDS * AMOUNT
        assert len(storage.progression.list_by_character(fighter.id)) == AWARDS

        # 1000 XP is level 3: exactly two level-ups across all awards
        assert character.level == 3
        assert sum(len(r.level_ups) for r in results) == 2
        assert character.max_health == fighter.max_health + 2 * 8
        assert len(locks) == 0

    def test_different_characters_in_parallel(
        self,
        engine: ProgressionEngine,
        storage: MemoryStorage | Database,
    ) -> None:
        """Test awards to several characters all land."""
        heroes = [
            storage.characters.create(create_character(f"Hero {i}", "Rogue")) for i in range(4)
        ]

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [
                pool.submit(engine.award_experience, hero.id, 10, "exploration")
                for hero in heroes
                for _ in range(10)
            ]
            for future in futures:
                future.result()

        for hero in heroes:
            assert storage.characters.get(hero.id).experience == 100


class TestSqliteWriterSerialization:
    """Two independent Database handles on the same file."""

    def test_separate_handles_do_not_lose_updates(self, tmp_path: Path) -> None:
        """Test BEGIN IMMEDIATE serializes writers that share no lock."""
        path = tmp_path / "shared.db"
        first = Database(path)
        second = Database(path)
        hero = first.characters.create(create_character("Shared", "Cleric"))

        engines = [
            ProgressionEngine(
                db.characters,
                db.class_features,
                db.progression,
                db.level_ups,
                transaction=db.transaction,
                locks=CharacterLocks(),
            )
            for db in (first, second)
        ]

        with ThreadPoolExecutor(max_workers=6) as pool:
            futures = [
                pool.submit(engines[i % 2].award_experience, hero.id, AMOUNT, "social")
                for i in range(AWARDS)
            ]
            for future in futures:
                future.result()

        assert second.characters.get(hero.id).experience == AWARDS * AMOUNT
        assert len(first.progression.list_by_character(hero.id)) == AWARDS
