"""Pydantic V2 records for questlog.

The Character aggregate plus everything that hangs off it: progression
and level-up history, the class feature catalog, game sessions, chat
messages, inventory, dice rolls and session context.

History records (ProgressionEvent, LevelUpEvent) and catalog entries are
frozen. Characters and sessions are replaced through their stores, never
mutated in place.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Self
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from questlog.core.exceptions import InvalidInputError
from questlog.models.enums import (
    CharacterClass,
    ContextType,
    DiceType,
    ExperienceSource,
    FeatureType,
    MessageSender,
    MessageType,
)
from questlog.models.progression import (
    MAX_EXPERIENCE,
    MAX_LEVEL,
    ability_modifier,
    proficiency_bonus_from_level,
    starting_hit_points,
)


# =============================================================================
# Type Definitions
# =============================================================================


AbilityScore = Annotated[int, Field(ge=1, le=30, description="Ability score (1-30)")]
Level = Annotated[int, Field(ge=1, le=MAX_LEVEL, description="Character level (1-20)")]


def new_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid4())


# =============================================================================
# Character
# =============================================================================


class Character(BaseModel):
    """A player's persona.

    ``level`` and ``proficiency_bonus`` are derived from ``experience`` and
    are only changed by the progression engine.

    Attributes:
        id: Opaque identifier.
        name: Display name.
        character_class: Class, serialized as ``class``.
        level: Current level (1-20).
        health: Current hit points.
        max_health: Maximum hit points.
        experience: Cumulative experience, never decreases.
        proficiency_bonus: Bonus derived from level.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra="forbid",
    )

    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1, max_length=100)
    character_class: CharacterClass = Field(alias="class")
    level: Level = 1
    health: int = Field(default=10, ge=0)
    max_health: int = Field(default=10, ge=0)

    strength: AbilityScore = 10
    dexterity: AbilityScore = 10
    constitution: AbilityScore = 10
    intelligence: AbilityScore = 10
    wisdom: AbilityScore = 10
    charisma: AbilityScore = 10

    experience: int = Field(default=0, ge=0, le=MAX_EXPERIENCE)
    proficiency_bonus: int = Field(default=2, ge=2, le=6)
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def validate_health(self) -> Self:
        """Current health may never exceed maximum health."""
        if self.health > self.max_health:
            msg = f"health ({self.health}) cannot exceed max_health ({self.max_health})"
            raise ValueError(msg)
        return self

    @property
    def constitution_modifier(self) -> int:
        return ability_modifier(self.constitution)


def create_character(
    name: str,
    character_class: CharacterClass | str,
    *,
    max_health: int | None = None,
    **abilities: int,
) -> Character:
    """Create a new level-1 character with no experience.

    Args:
        name: Character name.
        character_class: Class name or enum member.
        max_health: Starting maximum HP. Defaults to the class hit die plus
            the Constitution modifier.
        **abilities: Ability scores (strength, dexterity, ...).

    Returns:
        A Character at full health.

    Example:
        >>> hero = create_character("Thorin", "Fighter", constitution=14)
        >>> hero.max_health
        12
    """
    try:
        character_class = CharacterClass(character_class)
    except ValueError as exc:
        raise InvalidInputError(
            f"Unknown character class: {character_class}",
            field_name="character_class",
            invalid_value=character_class,
        ) from exc
    constitution = abilities.get("constitution", 10)
    if max_health is None:
        max_health = starting_hit_points(character_class, constitution)

    return Character(
        name=name,
        character_class=character_class,
        level=1,
        experience=0,
        proficiency_bonus=proficiency_bonus_from_level(1),
        health=max_health,
        max_health=max_health,
        **abilities,
    )


# =============================================================================
# Progression History
# =============================================================================


class ProgressionEvent(BaseModel):
    """Append-only record of a single experience award."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=new_id)
    character_id: str
    experience_gained: int = Field(gt=0, le=MAX_EXPERIENCE)
    experience_source: ExperienceSource
    description: str | None = None
    session_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class LevelUpEvent(BaseModel):
    """Append-only record of a level transition and what it granted."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=new_id)
    character_id: str
    previous_level: Level
    new_level: Level
    hit_points_gained: int = Field(ge=0)
    features_gained: list[str] = Field(default_factory=list)
    session_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_levels(self) -> Self:
        if self.new_level <= self.previous_level:
            msg = "new_level must be greater than previous_level"
            raise ValueError(msg)
        return self


class ClassFeature(BaseModel):
    """Catalog entry: a feature a class unlocks at a level."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    class_name: CharacterClass
    level: Level
    feature_name: str = Field(min_length=1)
    description: str = ""
    feature_type: FeatureType = FeatureType.ABILITY


# =============================================================================
# Sessions & Messages
# =============================================================================


class GameSession(BaseModel):
    """An adventure session owned by one character."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(default_factory=new_id)
    character_id: str
    title: str
    description: str | None = None
    current_scene: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class DiceRollMetadata(BaseModel):
    """Metadata attached to a dice-roll message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["dice_roll"] = "dice_roll"
    dice_type: DiceType
    result: int
    modifier: int = 0
    purpose: str | None = None


class DMTurnMetadata(BaseModel):
    """Metadata attached to a Dungeon Master response."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["dm_turn"] = "dm_turn"
    requires_dice_roll: bool = False
    dice_type: DiceType | None = None
    skill_check: str | None = None
    combat_action: bool = False
    experience_awarded: int = Field(default=0, ge=0)


MessageMetadata = Annotated[DiceRollMetadata | DMTurnMetadata, Field(discriminator="kind")]


class Message(BaseModel):
    """A chat message in a session."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=new_id)
    session_id: str
    sender: MessageSender
    content: str
    message_type: MessageType = MessageType.TEXT
    metadata: MessageMetadata | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


class SessionContextEntry(BaseModel):
    """A fact the narrator should keep in mind for a session."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=new_id)
    session_id: str
    context_type: ContextType
    context_key: str = Field(min_length=1)
    context_value: str
    importance: int = Field(default=1, ge=1, le=10)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# Inventory & Dice
# =============================================================================


class InventoryItem(BaseModel):
    """An item carried by a character."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(default_factory=new_id)
    character_id: str
    item_name: str = Field(min_length=1)
    item_type: str
    quantity: int = Field(default=1, ge=0)
    description: str | None = None
    properties: dict[str, str | int | bool] = Field(default_factory=dict)


class DiceRoll(BaseModel):
    """A recorded roll of a single die."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=new_id)
    session_id: str
    character_id: str
    dice_type: DiceType
    result: int = Field(ge=1)
    modifier: int = 0
    purpose: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_result(self) -> Self:
        if self.result > self.dice_type.sides:
            msg = f"{self.dice_type} cannot roll {self.result}"
            raise ValueError(msg)
        return self

    @computed_field(description="Result plus modifier")
    @property
    def total(self) -> int:
        return self.result + self.modifier


__all__ = [
    "AbilityScore",
    "Level",
    "new_id",
    "Character",
    "create_character",
    "ProgressionEvent",
    "LevelUpEvent",
    "ClassFeature",
    "GameSession",
    "DiceRollMetadata",
    "DMTurnMetadata",
    "MessageMetadata",
    "Message",
    "SessionContextEntry",
    "InventoryItem",
    "DiceRoll",
]
