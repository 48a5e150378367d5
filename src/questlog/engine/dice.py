"""Dice rolling for questlog.

Single-die rolls through the d20 library, plus a service that records
rolls against a session.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

import d20

from questlog.core.exceptions import DiceRollError, NotFoundError
from questlog.core.logging import get_logger
from questlog.models import DiceRoll, DiceType
from questlog.storage.repositories import CharacterStore, DiceRollStore, SessionStore


logger = get_logger(__name__)


@dataclass(frozen=True)
class RollOutcome:
    """Result of rolling one die.

    Attributes:
        dice_type: The die rolled.
        result: The face that came up.
        modifier: Static modifier applied.
        total: result + modifier.
    """

    dice_type: DiceType
    result: int
    modifier: int
    total: int


class DiceRoller:
    """Rolls a single die of a supported type.

    Example:
        >>> roller = DiceRoller()
        >>> outcome = roller.roll("d20", modifier=3)
        >>> 4 <= outcome.total <= 23
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls.
        """
        if seed is not None:
            random.seed(seed)
        logger.debug("dice_roller_initialized", seed=seed)

    def roll(self, dice_type: DiceType | str, *, modifier: int = 0) -> RollOutcome:
        """Roll one die.

        Raises:
            DiceRollError: If the die type is not supported.
        """
        try:
            dice_type = DiceType(dice_type)
        except ValueError as exc:
            raise DiceRollError(
                f"Unsupported dice type: {dice_type}",
                expression=str(dice_type),
            ) from exc

        expression = f"1{dice_type}"
        try:
            result = d20.roll(expression).total
        except d20.RollError as exc:
            raise DiceRollError(f"Failed to roll {expression}: {exc}", expression=expression) from exc

        return RollOutcome(
            dice_type=dice_type,
            result=result,
            modifier=modifier,
            total=result + modifier,
        )


class DiceService:
    """Rolls dice on behalf of a character and records the result."""

    def __init__(
        self,
        roller: DiceRoller,
        dice_rolls: DiceRollStore,
        sessions: SessionStore,
        characters: CharacterStore,
        *,
        history_limit: int = 20,
    ) -> None:
        self._roller = roller
        self._dice_rolls = dice_rolls
        self._sessions = sessions
        self._characters = characters
        self._history_limit = history_limit

    def roll(
        self,
        session_id: str,
        character_id: str,
        dice_type: DiceType | str,
        modifier: int = 0,
        purpose: str | None = None,
    ) -> DiceRoll:
        """Roll a die in a session and persist it.

        Raises:
            NotFoundError: If the session or character does not exist.
            DiceRollError: If the die type is not supported.
        """
        if self._sessions.get(session_id) is None:
            raise NotFoundError(
                f"Session not found: {session_id}",
                resource="session",
                identifier=session_id,
            )
        if self._characters.get(character_id) is None:
            raise NotFoundError(
                f"Character not found: {character_id}",
                resource="character",
                identifier=character_id,
            )

        outcome = self._roller.roll(dice_type, modifier=modifier)
        roll = self._dice_rolls.create(
            DiceRoll(
                session_id=session_id,
                character_id=character_id,
                dice_type=outcome.dice_type,
                result=outcome.result,
                modifier=outcome.modifier,
                purpose=purpose,
            )
        )
        logger.info(
            "dice_rolled",
            session_id=session_id,
            character_id=character_id,
            dice_type=str(outcome.dice_type),
            result=outcome.result,
            total=outcome.total,
        )
        return roll

    def recent(self, session_id: str, limit: int | None = None) -> list[DiceRoll]:
        """Recent rolls in a session, newest first."""
        return self._dice_rolls.list_for_session(session_id, limit or self._history_limit)


__all__ = ["RollOutcome", "DiceRoller", "DiceService"]
