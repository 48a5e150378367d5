"""Experience awards and level progression.

The ProgressionEngine turns an experience award into a consistent set of
writes: one ProgressionEvent, one atomic character update (experience,
level, proficiency bonus and, on level-up, hit points), and the level-up
records the award earned. All of it happens under a per-character lock
inside a single storage transaction.

Example:
    >>> engine = ProgressionEngine.from_storage(storage)
    >>> result = engine.award_experience(hero.id, 300, "combat")
    >>> result.leveled_up, result.new_level
    (True, 2)
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Generator, Sequence
from contextlib import AbstractContextManager, contextmanager, nullcontext
from dataclasses import dataclass, field
from typing import Any

from questlog.core.config import Settings, get_settings
from questlog.core.exceptions import InvalidInputError, NotFoundError
from questlog.core.logging import get_logger, log_context
from questlog.models import (
    MAX_EXPERIENCE,
    MAX_LEVEL,
    Character,
    ExperienceSource,
    LevelUpEvent,
    LevelUpPolicy,
    ProgressionEvent,
    experience_for_level,
    experience_progress,
    experience_to_next_level,
    hit_point_gain,
    level_from_experience,
    proficiency_bonus_from_level,
)
from questlog.storage.repositories import (
    CharacterStore,
    ClassFeatureCatalog,
    LevelUpHistoryStore,
    ProgressionHistoryStore,
    Storage,
)


logger = get_logger(__name__)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class AwardResult:
    """Outcome of a single experience award.

    Attributes:
        leveled_up: Whether the award crossed at least one level threshold.
        new_level: The level reached, or None if no level was gained.
        progression: The recorded ProgressionEvent.
        level_ups: Level-up records written by this award, oldest first.
        character: The character after the award.
    """

    leveled_up: bool
    new_level: int | None
    progression: ProgressionEvent
    level_ups: tuple[LevelUpEvent, ...]
    character: Character

    @property
    def hit_points_gained(self) -> int:
        return sum(event.hit_points_gained for event in self.level_ups)

    @property
    def features_gained(self) -> list[str]:
        return [name for event in self.level_ups for name in event.features_gained]


@dataclass(frozen=True)
class ProgressionSummary:
    """Display-ready view of a character's progression.

    Attributes:
        level: Current level.
        experience: Cumulative experience.
        proficiency_bonus: Current proficiency bonus.
        level_floor: Experience required for the current level.
        level_ceiling: Experience required for the next level, None at level 20.
        experience_to_next: Experience still needed, 0 at level 20.
        progress_percent: Progress through the current level (0-100).
        recent_gains: Most recent awards, newest first.
        recent_level_ups: Most recent level-ups, newest first.
        total_experience_gained: Sum of every recorded award.
    """

    level: int
    experience: int
    proficiency_bonus: int
    level_floor: int
    level_ceiling: int | None
    experience_to_next: int
    progress_percent: int
    recent_gains: list[ProgressionEvent] = field(default_factory=list)
    recent_level_ups: list[LevelUpEvent] = field(default_factory=list)
    total_experience_gained: int = 0

    @property
    def is_max_level(self) -> bool:
        return self.level >= MAX_LEVEL


def summarize_progression(
    character: Character,
    progression: Sequence[ProgressionEvent],
    level_ups: Sequence[LevelUpEvent],
    *,
    recent_limit: int = 5,
    level_up_limit: int = 3,
) -> ProgressionSummary:
    """Build a ProgressionSummary from a character and its history.

    ``progression`` and ``level_ups`` are expected newest first, as the
    history stores return them.
    """
    level = level_from_experience(character.experience)
    gained, span = experience_progress(character.experience)
    if level >= MAX_LEVEL:
        ceiling = None
        percent = 100
    else:
        ceiling = experience_for_level(level + 1)
        percent = min(100, gained * 100 // span)

    return ProgressionSummary(
        level=level,
        experience=character.experience,
        proficiency_bonus=proficiency_bonus_from_level(level),
        level_floor=experience_for_level(level),
        level_ceiling=ceiling,
        experience_to_next=experience_to_next_level(character.experience),
        progress_percent=percent,
        recent_gains=list(progression[:recent_limit]),
        recent_level_ups=list(level_ups[:level_up_limit]),
        total_experience_gained=sum(e.experience_gained for e in progression),
    )


# =============================================================================
# Locking
# =============================================================================


class CharacterLocks:
    """Registry of one lock per character id.

    Awards for the same character run one at a time; awards for different
    characters do not wait on each other. An entry lives only while some
    thread holds or waits on it, so the registry stays as small as the
    number of characters currently being awarded.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, character_id: str) -> Generator[None, None, None]:
        """Hold the character's lock for the duration of a block."""
        with self._guard:
            lock = self._locks.get(character_id)
            if lock is None:
                lock = self._locks[character_id] = threading.Lock()
            self._users[character_id] = self._users.get(character_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[character_id] -= 1
                if not self._users[character_id]:
                    del self._users[character_id]
                    del self._locks[character_id]


@dataclass(frozen=True)
class _LevelStep:
    previous_level: int
    new_level: int
    hit_points: int
    features: list[str]


# =============================================================================
# Engine
# =============================================================================


class ProgressionEngine:
    """Applies experience awards to characters.

    Collaborators are injected so any storage satisfying the repository
    protocols can back the engine.

    Attributes:
        level_up_policy: How awards crossing several thresholds are recorded.
    """

    def __init__(
        self,
        characters: CharacterStore,
        catalog: ClassFeatureCatalog,
        progression_history: ProgressionHistoryStore,
        level_up_history: LevelUpHistoryStore,
        *,
        transaction: Callable[[], AbstractContextManager[Any]] | None = None,
        locks: CharacterLocks | None = None,
        level_up_policy: LevelUpPolicy | str = LevelUpPolicy.PER_LEVEL,
        recent_history_limit: int = 5,
        recent_level_up_limit: int = 3,
    ) -> None:
        self._characters = characters
        self._catalog = catalog
        self._progression = progression_history
        self._level_ups = level_up_history
        self._transaction = transaction or nullcontext
        self._locks = locks if locks is not None else CharacterLocks()
        self.level_up_policy = LevelUpPolicy(level_up_policy)
        self._recent_history_limit = recent_history_limit
        self._recent_level_up_limit = recent_level_up_limit

    @classmethod
    def from_storage(
        cls,
        storage: Storage,
        settings: Settings | None = None,
        *,
        locks: CharacterLocks | None = None,
    ) -> ProgressionEngine:
        """Wire an engine to every store of a storage backend."""
        settings = settings or get_settings()
        return cls(
            storage.characters,
            storage.class_features,
            storage.progression,
            storage.level_ups,
            transaction=storage.transaction,
            locks=locks,
            level_up_policy=settings.game.level_up_policy,
            recent_history_limit=settings.game.recent_history_limit,
            recent_level_up_limit=settings.game.recent_level_up_limit,
        )

    def award_experience(
        self,
        character_id: str,
        amount: int,
        source: ExperienceSource | str,
        description: str | None = None,
        session_id: str | None = None,
    ) -> AwardResult:
        """Award experience to a character.

        Args:
            character_id: Character receiving the award.
            amount: Positive number of experience points.
            source: Experience source category.
            description: Optional free-text reason.
            session_id: Optional session the award was earned in.

        Returns:
            AwardResult describing what changed.

        Raises:
            InvalidInputError: If amount is not a positive integer, would push the
                total past MAX_EXPERIENCE, or source is unknown.
            NotFoundError: If the character or its class is unknown.
            StorageError: If the backend fails; nothing is committed.
        """
        is_int = isinstance(amount, int) and not isinstance(amount, bool)
        if not is_int or not 0 < amount <= MAX_EXPERIENCE:
            raise InvalidInputError(
                f"Experience award must be an integer between 1 and {MAX_EXPERIENCE}",
                field_name="amount",
                invalid_value=amount,
            )
        try:
            source = ExperienceSource(source)
        except ValueError as exc:
            raise InvalidInputError(
                f"Unknown experience source: {source}",
                field_name="source",
                invalid_value=source,
            ) from exc

        with log_context(character_id=character_id, session_id=session_id):
            with self._locks.hold(character_id), self._transaction():
                character = self._require_character(character_id)

                new_experience = character.experience + amount
                if new_experience > MAX_EXPERIENCE:
                    raise InvalidInputError(
                        f"Experience total cannot exceed {MAX_EXPERIENCE}",
                        field_name="amount",
                        invalid_value=amount,
                    )
                current_level = level_from_experience(character.experience)
                new_level = level_from_experience(new_experience)
                steps = self._plan_level_ups(character, current_level, new_level)

                progression = self._progression.append(
                    ProgressionEvent(
                        character_id=character_id,
                        experience_gained=amount,
                        experience_source=source,
                        description=description,
                        session_id=session_id,
                    )
                )

                fields: dict[str, Any] = {
                    "experience": new_experience,
                    "level": new_level,
                    "proficiency_bonus": proficiency_bonus_from_level(new_level),
                }
                hp_gained = sum(step.hit_points for step in steps)
                if hp_gained:
                    fields["max_health"] = character.max_health + hp_gained
                    fields["health"] = character.health + hp_gained

                updated = self._characters.update(character_id, fields)
                if updated is None:
                    raise NotFoundError(
                        f"Character disappeared during award: {character_id}",
                        resource="character",
                        identifier=character_id,
                    )

                level_ups = tuple(
                    self._level_ups.append(
                        LevelUpEvent(
                            character_id=character_id,
                            previous_level=step.previous_level,
                            new_level=step.new_level,
                            hit_points_gained=step.hit_points,
                            features_gained=step.features,
                            session_id=session_id,
                        )
                    )
                    for step in steps
                )

            logger.info(
                "experience_awarded",
                amount=amount,
                source=str(source),
                experience=new_experience,
            )
            if level_ups:
                logger.info(
                    "level_up",
                    previous_level=current_level,
                    new_level=new_level,
                    hit_points_gained=hp_gained,
                    records=len(level_ups),
                )

        return AwardResult(
            leveled_up=bool(level_ups),
            new_level=new_level if level_ups else None,
            progression=progression,
            level_ups=level_ups,
            character=updated,
        )

    def _plan_level_ups(
        self,
        character: Character,
        current_level: int,
        new_level: int,
    ) -> list[_LevelStep]:
        if new_level <= current_level:
            return []

        gain = hit_point_gain(character.character_class, character.constitution)

        if self.level_up_policy is LevelUpPolicy.SINGLE:
            return [
                _LevelStep(
                    previous_level=current_level,
                    new_level=new_level,
                    hit_points=gain,
                    features=self._feature_names(character, new_level),
                )
            ]

        return [
            _LevelStep(
                previous_level=level - 1,
                new_level=level,
                hit_points=gain,
                features=self._feature_names(character, level),
            )
            for level in range(current_level + 1, new_level + 1)
        ]

    def _feature_names(self, character: Character, level: int) -> list[str]:
        features = self._catalog.features_for(character.character_class, level)
        return [feature.feature_name for feature in features]

    def _require_character(self, character_id: str) -> Character:
        character = self._characters.get(character_id)
        if character is None:
            raise NotFoundError(
                f"Character not found: {character_id}",
                resource="character",
                identifier=character_id,
            )
        return character

    def history(self, character_id: str) -> list[ProgressionEvent]:
        """Progression events for a character, newest first."""
        self._require_character(character_id)
        return self._progression.list_by_character(character_id)

    def level_up_history(self, character_id: str) -> list[LevelUpEvent]:
        """Level-up events for a character, newest first."""
        self._require_character(character_id)
        return self._level_ups.list_by_character(character_id)

    def summary(self, character_id: str) -> ProgressionSummary:
        character = self._require_character(character_id)
        return summarize_progression(
            character,
            self._progression.list_by_character(character_id),
            self._level_ups.list_by_character(character_id),
            recent_limit=self._recent_history_limit,
            level_up_limit=self._recent_level_up_limit,
        )


__all__ = [
    "AwardResult",
    "CharacterLocks",
    "ProgressionEngine",
    "ProgressionSummary",
    "summarize_progression",
]
