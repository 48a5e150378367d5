"""In-memory storage backend.

Dict- and list-backed stores sharing one re-entrant lock. Useful for tests
and single-process deployments. ``MemoryStorage.transaction`` snapshots
every collection when the outermost transaction opens and restores the
snapshot if the block raises.

Mutable records (characters, sessions, inventory) are copied on the way in
and out so callers can never change stored state behind the lock.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator

from questlog.core.exceptions import NotFoundError
from questlog.core.logging import get_logger
from questlog.models import (
    Character,
    CharacterClass,
    ClassFeature,
    DiceRoll,
    GameSession,
    InventoryItem,
    LevelUpEvent,
    Message,
    ProgressionEvent,
    SessionContextEntry,
)
from questlog.storage.merge import merge_fields


logger = get_logger(__name__)


def check_class_name(class_name: str) -> CharacterClass:
    """Resolve a class name for catalog lookups.

    Raises:
        NotFoundError: If the class is not one of the playable classes.
    """
    try:
        return CharacterClass(class_name)
    except ValueError as exc:
        raise NotFoundError(
            f"Unknown character class: {class_name}",
            resource="character_class",
            identifier=str(class_name),
        ) from exc


class _MemoryCollection:
    """Base for stores holding one collection behind the shared lock."""

    def __init__(self, lock: threading.RLock, items: Any) -> None:
        self._lock = lock
        self._items = items

    def _snapshot(self) -> Any:
        return self._items.copy()

    def _restore(self, snapshot: Any) -> None:
        self._items = snapshot


# =============================================================================
# Progression Stores
# =============================================================================


class MemoryCharacterStore(_MemoryCollection):
    def __init__(self, lock: threading.RLock) -> None:
        super().__init__(lock, {})

    def get(self, character_id: str) -> Character | None:
        with self._lock:
            character = self._items.get(character_id)
            return character.model_copy() if character else None

    def create(self, character: Character) -> Character:
        with self._lock:
            self._items[character.id] = character.model_copy()
        logger.info("character_created", character_id=character.id, name=character.name)
        return character

    def update(self, character_id: str, fields: dict[str, Any]) -> Character | None:
        with self._lock:
            current = self._items.get(character_id)
            if current is None:
                return None
            updated = merge_fields(current, fields, resource="character")
            self._items[character_id] = updated
            return updated.model_copy()

    def list(self) -> list[Character]:
        with self._lock:
            return [c.model_copy() for c in self._items.values()]


class MemoryClassFeatureCatalog(_MemoryCollection):
    def __init__(self, lock: threading.RLock) -> None:
        super().__init__(lock, [])

    def features_for(self, class_name: str, level: int) -> list[ClassFeature]:
        resolved = check_class_name(class_name)
        with self._lock:
            return [f for f in self._items if f.class_name == resolved and f.level == level]

    def add(self, feature: ClassFeature) -> bool:
        with self._lock:
            for existing in self._items:
                if (
                    existing.class_name == feature.class_name
                    and existing.level == feature.level
                    and existing.feature_name == feature.feature_name
                ):
                    return False
            self._items.append(feature)
            return True


class _MemoryHistory(_MemoryCollection):
    """Append-only list read back newest first."""

    def __init__(self, lock: threading.RLock) -> None:
        super().__init__(lock, [])

    def append(self, event: Any) -> Any:
        with self._lock:
            self._items.append(event)
        return event

    def list_by_character(self, character_id: str) -> list[Any]:
        with self._lock:
            return [e for e in reversed(self._items) if e.character_id == character_id]


class MemoryProgressionHistory(_MemoryHistory):
    def append(self, event: ProgressionEvent) -> ProgressionEvent:
        return super().append(event)

    def list_by_character(self, character_id: str) -> list[ProgressionEvent]:
        return super().list_by_character(character_id)


class MemoryLevelUpHistory(_MemoryHistory):
    def append(self, event: LevelUpEvent) -> LevelUpEvent:
        return super().append(event)

    def list_by_character(self, character_id: str) -> list[LevelUpEvent]:
        return super().list_by_character(character_id)


# =============================================================================
# Session Stores
# =============================================================================


class MemorySessionStore(_MemoryCollection):
    def __init__(self, lock: threading.RLock) -> None:
        super().__init__(lock, {})

    def get(self, session_id: str) -> GameSession | None:
        with self._lock:
            session = self._items.get(session_id)
            return session.model_copy() if session else None

    def create(self, session: GameSession) -> GameSession:
        with self._lock:
            self._items[session.id] = session.model_copy()
        return session

    def update(self, session_id: str, fields: dict[str, Any]) -> GameSession | None:
        with self._lock:
            current = self._items.get(session_id)
            if current is None:
                return None
            updated = merge_fields(
                current, {**fields, "updated_at": datetime.now()}, resource="session"
            )
            self._items[session_id] = updated
            return updated.model_copy()

    def active_for_character(self, character_id: str) -> GameSession | None:
        with self._lock:
            for session in self._items.values():
                if session.character_id == character_id and session.is_active:
                    return session.model_copy()
        return None


class MemoryMessageStore(_MemoryCollection):
    def __init__(self, lock: threading.RLock) -> None:
        super().__init__(lock, [])

    def create(self, message: Message) -> Message:
        with self._lock:
            self._items.append(message)
        return message

    def list_for_session(self, session_id: str, limit: int = 50) -> list[Message]:
        with self._lock:
            messages = [m for m in self._items if m.session_id == session_id]
        return messages[-limit:] if limit > 0 else []


class MemoryInventoryStore(_MemoryCollection):
    def __init__(self, lock: threading.RLock) -> None:
        super().__init__(lock, {})

    def list_for_character(self, character_id: str) -> list[InventoryItem]:
        with self._lock:
            return [i.model_copy() for i in self._items.values() if i.character_id == character_id]

    def create(self, item: InventoryItem) -> InventoryItem:
        with self._lock:
            self._items[item.id] = item.model_copy()
        return item

    def update(self, item_id: str, fields: dict[str, Any]) -> InventoryItem | None:
        with self._lock:
            current = self._items.get(item_id)
            if current is None:
                return None
            updated = merge_fields(current, fields, resource="inventory item")
            self._items[item_id] = updated
            return updated.model_copy()

    def delete(self, item_id: str) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None


class MemoryDiceRollStore(_MemoryCollection):
    def __init__(self, lock: threading.RLock) -> None:
        super().__init__(lock, [])

    def create(self, roll: DiceRoll) -> DiceRoll:
        with self._lock:
            self._items.append(roll)
        return roll

    def list_for_session(self, session_id: str, limit: int = 20) -> list[DiceRoll]:
        with self._lock:
            rolls = [r for r in reversed(self._items) if r.session_id == session_id]
        return rolls[:limit]


class MemorySessionContextStore(_MemoryCollection):
    def __init__(self, lock: threading.RLock) -> None:
        super().__init__(lock, {})

    def upsert(self, entry: SessionContextEntry) -> SessionContextEntry:
        key = (entry.session_id, entry.context_type, entry.context_key)
        with self._lock:
            existing = self._items.get(key)
            if existing is not None:
                entry = entry.model_copy(
                    update={"id": existing.id, "created_at": existing.created_at}
                )
            self._items[key] = entry
        return entry

    def list_for_session(self, session_id: str) -> list[SessionContextEntry]:
        with self._lock:
            entries = [e for e in self._items.values() if e.session_id == session_id]
        return sorted(entries, key=lambda e: e.importance, reverse=True)


# =============================================================================
# Storage Bundle
# =============================================================================


class MemoryStorage:
    """All stores in one process, with snapshot-based transactions."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0

        self.characters = MemoryCharacterStore(self._lock)
        self.class_features = MemoryClassFeatureCatalog(self._lock)
        self.progression = MemoryProgressionHistory(self._lock)
        self.level_ups = MemoryLevelUpHistory(self._lock)
        self.sessions = MemorySessionStore(self._lock)
        self.messages = MemoryMessageStore(self._lock)
        self.inventory = MemoryInventoryStore(self._lock)
        self.dice_rolls = MemoryDiceRollStore(self._lock)
        self.session_context = MemorySessionContextStore(self._lock)

        self._collections: list[_MemoryCollection] = [
            self.characters,
            self.class_features,
            self.progression,
            self.level_ups,
            self.sessions,
            self.messages,
            self.inventory,
            self.dice_rolls,
            self.session_context,
        ]

    @contextmanager
    def transaction(self) -> Generator[MemoryStorage, None, None]:
        """Hold the storage lock and roll back every collection on error.

        Nested transactions join the outermost one.
        """
        with self._lock:
            outermost = self._depth == 0
            snapshots = [c._snapshot() for c in self._collections] if outermost else []
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    for collection, snapshot in zip(self._collections, snapshots):
                        collection._restore(snapshot)
                    logger.warning("memory_transaction_rolled_back")
                raise
            finally:
                self._depth -= 1


__all__ = [
    "MemoryStorage",
    "MemoryCharacterStore",
    "MemoryClassFeatureCatalog",
    "MemoryProgressionHistory",
    "MemoryLevelUpHistory",
    "MemorySessionStore",
    "MemoryMessageStore",
    "MemoryInventoryStore",
    "MemoryDiceRollStore",
    "MemorySessionContextStore",
    "check_class_name",
]
