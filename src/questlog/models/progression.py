"""Level progression rules.

Static tables and pure functions for turning experience into level,
proficiency bonus and hit points:

- XP thresholds for each level
- Proficiency bonus by level tier
- Hit dice by class and the hit-point gain on level-up

This module holds no state. The tables are process-wide constants.
"""

from __future__ import annotations

from questlog.core.exceptions import InvalidInputError


MAX_LEVEL = 20

# Largest value a SQLite INTEGER column holds.
MAX_EXPERIENCE = 2**63 - 1

# =============================================================================
# XP Thresholds (PHB p.15)
# =============================================================================

# Index i is the minimum cumulative XP to be level i + 1.
EXPERIENCE_THRESHOLDS: tuple[int, ...] = (
    0,
    300,
    900,
    2700,
    6500,
    14000,
    23000,
    34000,
    48000,
    64000,
    85000,
    100000,
    120000,
    140000,
    165000,
    195000,
    225000,
    265000,
    305000,
    355000,
)


def _check_experience(experience: int) -> None:
    if experience < 0:
        raise InvalidInputError(
            "Experience cannot be negative",
            field_name="experience",
            invalid_value=experience,
        )
    if experience > MAX_EXPERIENCE:
        raise InvalidInputError(
            f"Experience cannot exceed {MAX_EXPERIENCE}",
            field_name="experience",
            invalid_value=experience,
        )


def _check_level(level: int) -> None:
    if not 1 <= level <= MAX_LEVEL:
        raise InvalidInputError(
            f"Level must be between 1 and {MAX_LEVEL}",
            field_name="level",
            invalid_value=level,
        )


def level_from_experience(experience: int) -> int:
    """Return the highest level whose threshold ``experience`` has reached.

    Args:
        experience: Cumulative experience points (>= 0).

    Returns:
        Level between 1 and 20.

    Raises:
        InvalidInputError: If experience is negative.

    Example:
        >>> level_from_experience(299)
        1
        >>> level_from_experience(300)
        2
    """
    _check_experience(experience)
    for level in range(MAX_LEVEL, 0, -1):
        if experience >= EXPERIENCE_THRESHOLDS[level - 1]:
            return level
    return 1


def experience_for_level(level: int) -> int:
    """Get the minimum cumulative XP for a level."""
    _check_level(level)
    return EXPERIENCE_THRESHOLDS[level - 1]


def experience_to_next_level(experience: int) -> int:
    """XP still needed to reach the next level, or 0 at level 20."""
    level = level_from_experience(experience)
    if level >= MAX_LEVEL:
        return 0
    return EXPERIENCE_THRESHOLDS[level] - experience


def experience_progress(experience: int) -> tuple[int, int]:
    """Get (xp_gained_in_level, xp_span_of_level) for progress display.

    Returns:
        (0, 0) at level 20.
    """
    level = level_from_experience(experience)
    if level >= MAX_LEVEL:
        return (0, 0)

    floor = EXPERIENCE_THRESHOLDS[level - 1]
    ceiling = EXPERIENCE_THRESHOLDS[level]
    return (experience - floor, ceiling - floor)


# =============================================================================
# Proficiency Bonus by Level (PHB p.15)
# =============================================================================


def proficiency_bonus_from_level(level: int) -> int:
    """Get proficiency bonus for a level: +2 at 1-4 rising by one every 4 levels."""
    _check_level(level)
    return 2 + (level - 1) // 4


# =============================================================================
# Hit Dice by Class
# =============================================================================

DEFAULT_HIT_DIE = 8

CLASS_HIT_DIE: dict[str, int] = {
    "Barbarian": 12,
    "Fighter": 10,
    "Paladin": 10,
    "Ranger": 10,
    "Bard": 8,
    "Cleric": 8,
    "Druid": 8,
    "Monk": 8,
    "Rogue": 8,
    "Warlock": 8,
    "Sorcerer": 6,
    "Wizard": 6,
}


def hit_die_for_class(class_name: str) -> int:
    """Get hit die size for a class, 8 for anything not in the table."""
    return CLASS_HIT_DIE.get(str(class_name), DEFAULT_HIT_DIE)


def ability_modifier(score: int) -> int:
    """Ability modifier: (score - 10) // 2."""
    return (score - 10) // 2


def hit_point_gain(class_name: str, constitution: int) -> int:
    """Hit points gained for one level.

    Uses the fixed average (half the hit die plus one) plus the
    Constitution modifier. A very low Constitution can push the raw sum
    to zero or below, so the result is floored at 1.

    Example:
        >>> hit_point_gain("Fighter", 14)
        8
        >>> hit_point_gain("Wizard", 1)
        1
    """
    hit_die = hit_die_for_class(class_name)
    return max(1, hit_die // 2 + 1 + ability_modifier(constitution))


def starting_hit_points(class_name: str, constitution: int) -> int:
    """Level-1 maximum hit points: full hit die plus Constitution modifier, at least 1."""
    return max(1, hit_die_for_class(class_name) + ability_modifier(constitution))


__all__ = [
    "MAX_EXPERIENCE",
    "MAX_LEVEL",
    "EXPERIENCE_THRESHOLDS",
    "DEFAULT_HIT_DIE",
    "CLASS_HIT_DIE",
    "level_from_experience",
    "experience_for_level",
    "experience_to_next_level",
    "experience_progress",
    "proficiency_bonus_from_level",
    "hit_die_for_class",
    "ability_modifier",
    "hit_point_gain",
    "starting_hit_points",
]
