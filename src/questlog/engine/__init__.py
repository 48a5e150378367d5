"""Game engine module for questlog.

Submodules:
    progression: Experience awards, level-ups and progression summaries
    dice: Single-die rolls (d20 library) and roll recording
    turns: Adventure sessions and Dungeon Master turns

Example:
    >>> from questlog.engine import ProgressionEngine
    >>> engine = ProgressionEngine.from_storage(storage)
    >>> result = engine.award_experience(hero.id, 6500, "quest_completion")
    >>> [(e.previous_level, e.new_level) for e in result.level_ups]
    [(1, 2), (2, 3), (3, 4), (4, 5)]
"""

from __future__ import annotations

# =============================================================================
# Progression
# =============================================================================
from questlog.engine.progression import (
    AwardResult,
    CharacterLocks,
    ProgressionEngine,
    ProgressionSummary,
    summarize_progression,
)

# =============================================================================
# Dice Rolling
# =============================================================================
from questlog.engine.dice import (
    DiceRoller,
    DiceService,
    RollOutcome,
)

# =============================================================================
# Adventures
# =============================================================================
from questlog.engine.turns import (
    AdventureService,
    ContextUpdate,
    DMResponse,
    GameStateView,
    NarrativeContext,
    NarrativeGenerator,
    OpeningScene,
    TurnResult,
)


__all__ = [
    # Progression
    "AwardResult",
    "CharacterLocks",
    "ProgressionEngine",
    "ProgressionSummary",
    "summarize_progression",
    # Dice
    "DiceRoller",
    "DiceService",
    "RollOutcome",
    # Adventures
    "AdventureService",
    "ContextUpdate",
    "DMResponse",
    "GameStateView",
    "NarrativeContext",
    "NarrativeGenerator",
    "OpeningScene",
    "TurnResult",
]
