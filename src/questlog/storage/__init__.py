"""Storage module for questlog persistence.

Provides two interchangeable backends behind the repository protocols:
- MemoryStorage: in-process collections, for tests and single-process use
- Database: SQLite, durable across restarts
"""

from __future__ import annotations

from questlog.core.config import Settings, get_settings
from questlog.core.logging import get_logger
from questlog.storage.database import Database
from questlog.storage.memory import MemoryStorage
from questlog.storage.repositories import (
    CharacterStore,
    ClassFeatureCatalog,
    DiceRollStore,
    InventoryStore,
    LevelUpHistoryStore,
    MessageStore,
    ProgressionHistoryStore,
    SessionContextStore,
    SessionStore,
    Storage,
)
from questlog.storage.seed import DEFAULT_CLASS_FEATURES, seed_class_features


logger = get_logger(__name__)


def create_storage(settings: Settings | None = None) -> Storage:
    """Build the storage backend selected in settings.

    Args:
        settings: Application settings. Defaults to ``get_settings()``.

    Returns:
        A MemoryStorage or a Database.
    """
    settings = settings or get_settings()
    storage_settings = settings.storage

    if storage_settings.backend == "sqlite":
        return Database(
            storage_settings.database_path,
            busy_timeout=storage_settings.busy_timeout_seconds,
        )

    logger.debug("using_memory_storage")
    return MemoryStorage()


__all__ = [
    "CharacterStore",
    "ClassFeatureCatalog",
    "DiceRollStore",
    "InventoryStore",
    "LevelUpHistoryStore",
    "MessageStore",
    "ProgressionHistoryStore",
    "SessionContextStore",
    "SessionStore",
    "Storage",
    "Database",
    "MemoryStorage",
    "create_storage",
    "DEFAULT_CLASS_FEATURES",
    "seed_class_features",
]
