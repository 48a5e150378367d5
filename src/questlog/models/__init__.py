"""Pydantic V2 data model and progression rules for questlog.

Submodules:
    enums: Fixed vocabularies (CharacterClass, ExperienceSource, DiceType, ...).
    entities: Records (Character, ProgressionEvent, LevelUpEvent, GameSession, ...).
    progression: XP thresholds, proficiency and hit-point rules.

Example:
    >>> from questlog.models import create_character, level_from_experience
    >>> hero = create_character("Thorin", "Fighter", constitution=14)
    >>> level_from_experience(hero.experience + 300)
    2
"""

from __future__ import annotations

from questlog.models.entities import (
    Character,
    ClassFeature,
    DiceRoll,
    DiceRollMetadata,
    DMTurnMetadata,
    GameSession,
    InventoryItem,
    LevelUpEvent,
    Message,
    MessageMetadata,
    ProgressionEvent,
    SessionContextEntry,
    create_character,
    new_id,
)
from questlog.models.enums import (
    CharacterClass,
    ContextType,
    DiceType,
    ExperienceSource,
    FeatureType,
    LevelUpPolicy,
    MessageSender,
    MessageType,
)
from questlog.models.progression import (
    CLASS_HIT_DIE,
    EXPERIENCE_THRESHOLDS,
    MAX_EXPERIENCE,
    MAX_LEVEL,
    ability_modifier,
    experience_for_level,
    experience_progress,
    experience_to_next_level,
    hit_die_for_class,
    hit_point_gain,
    level_from_experience,
    proficiency_bonus_from_level,
    starting_hit_points,
)


__all__ = [
    # Enums
    "CharacterClass",
    "ContextType",
    "DiceType",
    "ExperienceSource",
    "FeatureType",
    "LevelUpPolicy",
    "MessageSender",
    "MessageType",
    # Records
    "Character",
    "ClassFeature",
    "DiceRoll",
    "DiceRollMetadata",
    "DMTurnMetadata",
    "GameSession",
    "InventoryItem",
    "LevelUpEvent",
    "Message",
    "MessageMetadata",
    "ProgressionEvent",
    "SessionContextEntry",
    "create_character",
    "new_id",
    # Rules
    "CLASS_HIT_DIE",
    "EXPERIENCE_THRESHOLDS",
    "MAX_EXPERIENCE",
    "MAX_LEVEL",
    "ability_modifier",
    "experience_for_level",
    "experience_progress",
    "experience_to_next_level",
    "hit_die_for_class",
    "hit_point_gain",
    "level_from_experience",
    "proficiency_bonus_from_level",
    "starting_hit_points",
]
