"""Repository interfaces the engine and services depend on.

Each protocol is deliberately narrow so that any persistence technology
can satisfy it. ``Storage`` bundles one of each together with a
transaction boundary.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol

from questlog.models import (
    Character,
    ClassFeature,
    DiceRoll,
    GameSession,
    InventoryItem,
    LevelUpEvent,
    Message,
    ProgressionEvent,
    SessionContextEntry,
)


class CharacterStore(Protocol):
    def get(self, character_id: str) -> Character | None: ...

    def create(self, character: Character) -> Character: ...

    def update(self, character_id: str, fields: dict[str, Any]) -> Character | None:
        """Merge ``fields`` into the stored character atomically.

        Returns:
            The updated character, or None if it does not exist.
        """
        ...

    def list(self) -> list[Character]: ...


class ClassFeatureCatalog(Protocol):
    def features_for(self, class_name: str, level: int) -> list[ClassFeature]:
        """Features a class unlocks at exactly ``level``, in catalog order.

        Raises:
            NotFoundError: If ``class_name`` is not a known class.
        """
        ...

    def add(self, feature: ClassFeature) -> bool:
        """Insert a feature; return False if (class, level, name) already exists."""
        ...


class ProgressionHistoryStore(Protocol):
    def append(self, event: ProgressionEvent) -> ProgressionEvent: ...

    def list_by_character(self, character_id: str) -> list[ProgressionEvent]:
        """Events for a character, newest first."""
        ...


class LevelUpHistoryStore(Protocol):
    def append(self, event: LevelUpEvent) -> LevelUpEvent: ...

    def list_by_character(self, character_id: str) -> list[LevelUpEvent]:
        """Level-ups for a character, newest first."""
        ...


class SessionStore(Protocol):
    def get(self, session_id: str) -> GameSession | None: ...

    def create(self, session: GameSession) -> GameSession: ...

    def update(self, session_id: str, fields: dict[str, Any]) -> GameSession | None: ...

    def active_for_character(self, character_id: str) -> GameSession | None: ...


class MessageStore(Protocol):
    def create(self, message: Message) -> Message: ...

    def list_for_session(self, session_id: str, limit: int = 50) -> list[Message]:
        """The last ``limit`` messages of a session, oldest first."""
        ...


class InventoryStore(Protocol):
    def list_for_character(self, character_id: str) -> list[InventoryItem]: ...

    def create(self, item: InventoryItem) -> InventoryItem: ...

    def update(self, item_id: str, fields: dict[str, Any]) -> InventoryItem | None: ...

    def delete(self, item_id: str) -> bool: ...


class DiceRollStore(Protocol):
    def create(self, roll: DiceRoll) -> DiceRoll: ...

    def list_for_session(self, session_id: str, limit: int = 20) -> list[DiceRoll]:
        """The most recent ``limit`` rolls of a session, newest first."""
        ...


class SessionContextStore(Protocol):
    def upsert(self, entry: SessionContextEntry) -> SessionContextEntry:
        """Insert or replace by (session_id, context_type, context_key)."""
        ...

    def list_for_session(self, session_id: str) -> list[SessionContextEntry]:
        """Entries of a session, most important first."""
        ...


class Storage(Protocol):
    """A complete persistence backend."""

    characters: CharacterStore
    class_features: ClassFeatureCatalog
    progression: ProgressionHistoryStore
    level_ups: LevelUpHistoryStore
    sessions: SessionStore
    messages: MessageStore
    inventory: InventoryStore
    dice_rolls: DiceRollStore
    session_context: SessionContextStore

    def transaction(self) -> AbstractContextManager[Any]:
        """All writes made inside the block commit together or not at all."""
        ...


__all__ = [
    "CharacterStore",
    "ClassFeatureCatalog",
    "ProgressionHistoryStore",
    "LevelUpHistoryStore",
    "SessionStore",
    "MessageStore",
    "InventoryStore",
    "DiceRollStore",
    "SessionContextStore",
    "Storage",
]
