"""Enumeration types for questlog.

These enums are the fixed vocabularies the rest of the data model refers
to: character classes, experience sources, dice, message kinds, and the
level-up recording policy.
"""

from __future__ import annotations

from enum import StrEnum


class CharacterClass(StrEnum):
    """Playable character classes."""

    BARBARIAN = "Barbarian"
    BARD = "Bard"
    CLERIC = "Cleric"
    DRUID = "Druid"
    FIGHTER = "Fighter"
    MONK = "Monk"
    PALADIN = "Paladin"
    RANGER = "Ranger"
    ROGUE = "Rogue"
    SORCERER = "Sorcerer"
    WARLOCK = "Warlock"
    WIZARD = "Wizard"


class ExperienceSource(StrEnum):
    """Category of play that earned an experience award."""

    COMBAT = "combat"
    ROLEPLAY = "roleplay"
    QUEST_COMPLETION = "quest_completion"
    DISCOVERY = "discovery"
    PUZZLE = "puzzle"
    SOCIAL = "social"
    EXPLORATION = "exploration"
    MILESTONE = "milestone"


class FeatureType(StrEnum):
    """Kind of class feature."""

    ABILITY = "ability"
    SPELL = "spell"
    PROFICIENCY = "proficiency"
    IMPROVEMENT = "improvement"
    OTHER = "other"


class MessageSender(StrEnum):
    """Author of a chat message."""

    PLAYER = "player"
    DM = "dm"
    SYSTEM = "system"


class MessageType(StrEnum):
    """Kind of chat message."""

    TEXT = "text"
    DICE_ROLL = "dice_roll"
    COMBAT = "combat"


class DiceType(StrEnum):
    """Supported single-die types."""

    D4 = "d4"
    D6 = "d6"
    D8 = "d8"
    D10 = "d10"
    D12 = "d12"
    D20 = "d20"

    @property
    def sides(self) -> int:
        """Number of faces on the die."""
        return int(self.value[1:])


class ContextType(StrEnum):
    """Kind of session context remembered for the narrator."""

    CHARACTER_MEMORY = "character_memory"
    WORLD_STATE = "world_state"
    PLOT_THREADS = "plot_threads"
    RELATIONSHIPS = "relationships"


class LevelUpPolicy(StrEnum):
    """How an award that crosses several level thresholds is recorded."""

    PER_LEVEL = "per_level"
    """One level-up record per threshold crossed, HP gains compounded."""

    SINGLE = "single"
    """One level-up record from the old level straight to the new one."""


__all__ = [
    "CharacterClass",
    "ExperienceSource",
    "FeatureType",
    "MessageSender",
    "MessageType",
    "DiceType",
    "ContextType",
    "LevelUpPolicy",
]
