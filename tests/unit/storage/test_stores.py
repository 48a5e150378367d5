"""Tests for the store adapters, run against both backends."""

from __future__ import annotations

import pytest

from questlog.core.exceptions import InvalidInputError, NotFoundError
from questlog.models import (
    Character,
    ClassFeature,
    ContextType,
    DiceRoll,
    DMTurnMetadata,
    GameSession,
    InventoryItem,
    LevelUpEvent,
    Message,
    ProgressionEvent,
    SessionContextEntry,
    create_character,
)
from questlog.storage import Database, MemoryStorage


class TestCharacterStore:
    """Tests for character persistence."""

    def test_create_and_get(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test a stored character round-trips."""
        loaded = storage.characters.get(fighter.id)

        assert loaded is not None
        assert loaded.name == "Thorin"
        assert loaded.character_class == fighter.character_class
        assert loaded.max_health == 12

    def test_get_missing(self, storage: MemoryStorage | Database) -> None:
        """Test unknown ids return None."""
        assert storage.characters.get("missing") is None

    def test_update_merges_fields(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test update changes only the given fields."""
        updated = storage.characters.update(fighter.id, {"name": "Thorin II", "health": 5})

        assert updated is not None
        assert updated.name == "Thorin II"
        assert updated.health == 5
        assert updated.strength == fighter.strength
        assert storage.characters.get(fighter.id) == updated

    def test_update_accepts_class_alias(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test the 'class' alias is accepted in updates."""
        updated = storage.characters.update(fighter.id, {"class": "Paladin"})
        assert updated is not None
        assert updated.character_class == "Paladin"

    def test_update_missing(self, storage: MemoryStorage | Database) -> None:
        """Test updating an unknown id returns None."""
        assert storage.characters.update("missing", {"name": "x"}) is None

    def test_update_rejects_overheal(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test health above max_health is refused and nothing changes."""
        with pytest.raises(InvalidInputError):
            storage.characters.update(fighter.id, {"health": fighter.max_health + 1})

        assert storage.characters.get(fighter.id).health == fighter.health

    @pytest.mark.parametrize("field", ["id", "created_at"])
    def test_update_rejects_protected_fields(
        self,
        storage: MemoryStorage | Database,
        fighter: Character,
        field: str,
    ) -> None:
        """Test identity fields cannot be overwritten."""
        with pytest.raises(InvalidInputError):
            storage.characters.update(fighter.id, {field: "x"})

    def test_update_rejects_unknown_field(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test unknown fields are refused."""
        with pytest.raises(InvalidInputError):
            storage.characters.update(fighter.id, {"mana": 3})

    def test_list(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test listing returns stored characters."""
        storage.characters.create(create_character("Mira", "Wizard"))
        assert {c.name for c in storage.characters.list()} == {"Thorin", "Mira"}


class TestClassFeatureCatalog:
    """Tests for catalog lookup and insertion."""

    def test_features_in_catalog_order(self, storage: MemoryStorage | Database) -> None:
        """Test features come back in insertion order."""
        names = [f.feature_name for f in storage.class_features.features_for("Fighter", 1)]
        assert names == ["Fighting Style", "Second Wind"]

    def test_no_features_at_level(self, storage: MemoryStorage | Database) -> None:
        """Test an empty level returns an empty list."""
        assert storage.class_features.features_for("Wizard", 3) == []

    def test_unknown_class(self, storage: MemoryStorage | Database) -> None:
        """Test unknown classes raise NotFoundError."""
        with pytest.raises(NotFoundError):
            storage.class_features.features_for("Artificer", 1)

    def test_duplicate_ignored(self, storage: MemoryStorage | Database) -> None:
        """Test (class, level, name) is unique."""
        feature = ClassFeature(class_name="Fighter", level=2, feature_name="Action Surge")

        assert storage.class_features.add(feature) is False
        assert len(storage.class_features.features_for("Fighter", 2)) == 1


class TestHistoryStores:
    """Tests for the append-only history stores."""

    def test_progression_newest_first(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test history is returned newest first."""
        for amount in (10, 20, 30):
            storage.progression.append(
                ProgressionEvent(character_id=fighter.id, experience_gained=amount, experience_source="combat")
            )

        history = storage.progression.list_by_character(fighter.id)

        assert [e.experience_gained for e in history] == [30, 20, 10]

    def test_progression_filtered_by_character(
        self,
        storage: MemoryStorage | Database,
        fighter: Character,
    ) -> None:
        """Test other characters' events are excluded."""
        other = storage.characters.create(create_character("Mira", "Wizard"))
        storage.progression.append(
            ProgressionEvent(character_id=other.id, experience_gained=5, experience_source="puzzle")
        )

        assert storage.progression.list_by_character(fighter.id) == []

    def test_level_ups_keep_features(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test feature lists survive storage."""
        storage.level_ups.append(
            LevelUpEvent(
                character_id=fighter.id,
                previous_level=1,
                new_level=2,
                hit_points_gained=8,
                features_gained=["Action Surge"],
            )
        )

        (event,) = storage.level_ups.list_by_character(fighter.id)

        assert event.features_gained == ["Action Surge"]
        assert event.hit_points_gained == 8


class TestSessionStores:
    """Tests for sessions, messages, dice rolls, inventory and context."""

    @pytest.fixture
    def session(self, storage: MemoryStorage | Database, fighter: Character) -> GameSession:
        return storage.sessions.create(GameSession(character_id=fighter.id, title="The Lost Mine"))

    def test_session_update_bumps_timestamp(
        self,
        storage: MemoryStorage | Database,
        session: GameSession,
    ) -> None:
        """Test updates change updated_at."""
        updated = storage.sessions.update(session.id, {"current_scene": "A dark cave"})

        assert updated is not None
        assert updated.current_scene == "A dark cave"
        assert updated.updated_at >= session.updated_at

    def test_active_for_character(
        self,
        storage: MemoryStorage | Database,
        fighter: Character,
        session: GameSession,
    ) -> None:
        """Test the active session is found."""
        active = storage.sessions.active_for_character(fighter.id)
        assert active is not None
        assert active.id == session.id

        storage.sessions.update(session.id, {"is_active": False})
        assert storage.sessions.active_for_character(fighter.id) is None

    def test_messages_last_n_oldest_first(
        self,
        storage: MemoryStorage | Database,
        session: GameSession,
    ) -> None:
        """Test the message window keeps the newest messages in order."""
        for i in range(5):
            storage.messages.create(Message(session_id=session.id, sender="player", content=f"m{i}"))

        messages = storage.messages.list_for_session(session.id, limit=3)

        assert [m.content for m in messages] == ["m2", "m3", "m4"]

    def test_message_metadata_survives(
        self,
        storage: MemoryStorage | Database,
        session: GameSession,
    ) -> None:
        """Test tagged metadata is restored."""
        storage.messages.create(
            Message(
                session_id=session.id,
                sender="dm",
                content="Roll!",
                metadata=DMTurnMetadata(requires_dice_roll=True, dice_type="d20"),
            )
        )

        (message,) = storage.messages.list_for_session(session.id)

        assert isinstance(message.metadata, DMTurnMetadata)
        assert message.metadata.requires_dice_roll is True

    def test_dice_rolls_newest_first(
        self,
        storage: MemoryStorage | Database,
        fighter: Character,
        session: GameSession,
    ) -> None:
        """Test dice history is newest first and limited."""
        for result in (3, 9, 17):
            storage.dice_rolls.create(
                DiceRoll(session_id=session.id, character_id=fighter.id, dice_type="d20", result=result)
            )

        rolls = storage.dice_rolls.list_for_session(session.id, limit=2)

        assert [r.result for r in rolls] == [17, 9]

    def test_inventory_lifecycle(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test create, update and delete of an item."""
        item = storage.inventory.create(
            InventoryItem(
                character_id=fighter.id,
                item_name="Longsword",
                item_type="weapon",
                properties={"damage": "1d8", "magical": False},
            )
        )

        updated = storage.inventory.update(item.id, {"quantity": 2})
        assert updated is not None
        assert updated.quantity == 2
        assert storage.inventory.list_for_character(fighter.id)[0].properties["damage"] == "1d8"

        assert storage.inventory.delete(item.id) is True
        assert storage.inventory.delete(item.id) is False
        assert storage.inventory.list_for_character(fighter.id) == []

    def test_context_upsert_replaces_value(
        self,
        storage: MemoryStorage | Database,
        session: GameSession,
    ) -> None:
        """Test upsert keys on (session, type, key) and orders by importance."""
        first = storage.session_context.upsert(
            SessionContextEntry(
                session_id=session.id,
                context_type=ContextType.RELATIONSHIPS,
                context_key="Gundren",
                context_value="friendly",
                importance=3,
            )
        )
        storage.session_context.upsert(
            SessionContextEntry(
                session_id=session.id,
                context_type=ContextType.PLOT_THREADS,
                context_key="mine",
                context_value="find Wave Echo Cave",
                importance=9,
            )
        )
        replaced = storage.session_context.upsert(
            SessionContextEntry(
                session_id=session.id,
                context_type=ContextType.RELATIONSHIPS,
                context_key="Gundren",
                context_value="captured",
                importance=5,
            )
        )

        entries = storage.session_context.list_for_session(session.id)

        assert replaced.id == first.id
        assert [e.context_key for e in entries] == ["mine", "Gundren"]
        assert entries[1].context_value == "captured"


class TestTransactions:
    """Tests for the storage transaction boundary."""

    def test_rollback_on_error(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test all writes in a failed transaction are undone."""
        with pytest.raises(RuntimeError):
            with storage.transaction():
                storage.progression.append(
                    ProgressionEvent(character_id=fighter.id, experience_gained=100, experience_source="combat")
                )
                storage.characters.update(fighter.id, {"experience": 100})
                raise RuntimeError("boom")

        assert storage.progression.list_by_character(fighter.id) == []
        assert storage.characters.get(fighter.id).experience == 0

    def test_commit_on_success(self, storage: MemoryStorage | Database, fighter: Character) -> None:
        """Test writes are kept when the block completes."""
        with storage.transaction():
            storage.characters.update(fighter.id, {"experience": 50})
            with storage.transaction():
                storage.characters.update(fighter.id, {"name": "Nested"})

        loaded = storage.characters.get(fighter.id)
        assert loaded.experience == 50
        assert loaded.name == "Nested"
