"""questlog - character progression for AI-narrated adventures.

Python owns the rules: experience, levels, hit points and class features
are computed and persisted here. The narrative generator only proposes
awards; it never writes character state itself.

Example:
    >>> from questlog import MemoryStorage, ProgressionEngine, create_character
    >>>
    >>> storage = MemoryStorage()
    >>> seed_class_features(storage.class_features)
    >>> hero = storage.characters.create(create_character("Thorin", "Fighter", constitution=14))
    >>>
    >>> engine = ProgressionEngine.from_storage(storage)
    >>> result = engine.award_experience(hero.id, 300, "combat")
    >>> result.level_ups[0].hit_points_gained
    8

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 records and progression rules.
    storage: Repository protocols, in-memory and SQLite backends.
    engine: Progression engine, dice, and adventure turns.
"""

from __future__ import annotations

# Core
from questlog.core.config import Settings, get_settings
from questlog.core.exceptions import QuestlogError
from questlog.core.logging import configure_logging, get_logger

# Models
from questlog.models import (
    Character,
    CharacterClass,
    ExperienceSource,
    LevelUpEvent,
    LevelUpPolicy,
    ProgressionEvent,
    create_character,
)

# Storage
from questlog.storage import (
    Database,
    MemoryStorage,
    create_storage,
    seed_class_features,
)

# Engine
from questlog.engine import (
    AdventureService,
    AwardResult,
    DiceRoller,
    DiceService,
    ProgressionEngine,
)


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "QuestlogError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "Character",
    "CharacterClass",
    "ExperienceSource",
    "LevelUpEvent",
    "LevelUpPolicy",
    "ProgressionEvent",
    "create_character",
    # Storage
    "Database",
    "MemoryStorage",
    "create_storage",
    "seed_class_features",
    # Engine
    "AdventureService",
    "AwardResult",
    "DiceRoller",
    "DiceService",
    "ProgressionEngine",
]
