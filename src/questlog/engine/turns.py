"""Adventure sessions and Dungeon Master turns.

The narrative generator is a black box: given a player action and a
NarrativeContext it returns a DMResponse. AdventureService records the
exchange as chat messages, keeps the session scene and memory current,
and routes any experience the DM awards through the ProgressionEngine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from questlog.core.config import Settings, get_settings
from questlog.core.exceptions import (
    InvalidInputError,
    NarrativeError,
    NotFoundError,
    QuestlogError,
)
from questlog.core.logging import get_logger, log_context
from questlog.engine.dice import RollOutcome
from questlog.engine.progression import AwardResult, ProgressionEngine
from questlog.models import (
    Character,
    ContextType,
    DiceType,
    DMTurnMetadata,
    ExperienceSource,
    GameSession,
    InventoryItem,
    Message,
    MessageSender,
    MessageType,
    SessionContextEntry,
)
from questlog.storage.repositories import Storage


logger = get_logger(__name__)


# =============================================================================
# Narrator Boundary
# =============================================================================


class OpeningScene(BaseModel):
    """The first scene of a new adventure."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    description: str = ""
    scene: str = Field(min_length=1)


class ContextUpdate(BaseModel):
    """A fact the narrator wants remembered for the rest of the session."""

    model_config = ConfigDict(frozen=True)

    type: ContextType
    key: str = Field(min_length=1)
    value: str
    importance: int = Field(default=5, ge=1, le=10)


class DMResponse(BaseModel):
    """Structured reply from the narrative generator."""

    model_config = ConfigDict(frozen=True)

    content: str
    requires_dice_roll: bool = False
    dice_type: DiceType | None = None
    skill_check: str | None = None
    combat_action: bool = False
    scene_update: str | None = None
    memory_updates: list[ContextUpdate] = Field(default_factory=list)
    experience_awarded: int = Field(default=0, ge=0)
    experience_reason: str | None = None
    experience_source: ExperienceSource = ExperienceSource.ROLEPLAY


class RecentMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    sender: str
    content: str


class NarrativeContext(BaseModel):
    """Everything the narrator is told about the current game state."""

    model_config = ConfigDict(frozen=True)

    character_name: str
    character_class: str
    character_level: int
    character_stats: dict[str, int]
    current_scene: str = ""
    session_title: str
    recent_messages: list[RecentMessage] = Field(default_factory=list)
    memories: list[ContextUpdate] = Field(default_factory=list)


class NarrativeGenerator(Protocol):
    """Black-box collaborator that writes the story."""

    def opening_scene(self, character: Character, adventure_type: str) -> OpeningScene: ...

    def respond(
        self,
        action: str,
        context: NarrativeContext,
        dice: RollOutcome | None = None,
    ) -> DMResponse: ...


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class TurnResult:
    """What a single player turn produced."""

    response: DMResponse
    player_message: Message
    dm_message: Message
    award: AwardResult | None = None


@dataclass(frozen=True)
class GameStateView:
    """Snapshot of a session for display."""

    character: Character
    session: GameSession
    messages: list[Message] = field(default_factory=list)
    inventory: list[InventoryItem] = field(default_factory=list)
    is_in_combat: bool = False


# =============================================================================
# Service
# =============================================================================


class AdventureService:
    """Runs adventures for characters against a narrative generator."""

    def __init__(
        self,
        storage: Storage,
        engine: ProgressionEngine,
        narrator: NarrativeGenerator,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._storage = storage
        self._engine = engine
        self._narrator = narrator
        self._context_messages = settings.game.narrative_context_messages
        self._message_limit = settings.game.message_history_limit

    def _require_character(self, character_id: str) -> Character:
        character = self._storage.characters.get(character_id)
        if character is None:
            raise NotFoundError(
                f"Character not found: {character_id}",
                resource="character",
                identifier=character_id,
            )
        return character

    def _require_session(self, session_id: str) -> GameSession:
        session = self._storage.sessions.get(session_id)
        if session is None:
            raise NotFoundError(
                f"Session not found: {session_id}",
                resource="session",
                identifier=session_id,
            )
        return session

    def _call_narrator(self, operation: str, *args: Any) -> Any:
        try:
            return getattr(self._narrator, operation)(*args)
        except QuestlogError:
            raise
        except Exception as exc:
            logger.error("narrative_generation_failed", operation=operation, error=str(exc))
            raise NarrativeError(
                f"Narrative generator failed: {exc}",
                provider=type(self._narrator).__name__,
            ) from exc

    def start_adventure(
        self,
        character_id: str,
        adventure_type: str = "fantasy",
    ) -> tuple[GameSession, Message]:
        """Open a new session with the narrator's opening scene.

        Returns:
            The created session and its first DM message.

        Raises:
            NotFoundError: If the character does not exist.
            NarrativeError: If the narrator fails or returns a malformed scene.
        """
        character = self._require_character(character_id)
        raw = self._call_narrator("opening_scene", character, adventure_type)
        try:
            opening = OpeningScene.model_validate(raw)
        except ValidationError as exc:
            raise NarrativeError(
                "Narrative generator returned a malformed opening scene",
                provider=type(self._narrator).__name__,
            ) from exc

        with self._storage.transaction():
            session = self._storage.sessions.create(
                GameSession(
                    character_id=character_id,
                    title=opening.title,
                    description=opening.description,
                    current_scene=opening.scene,
                    is_active=True,
                )
            )
            message = self._storage.messages.create(
                Message(session_id=session.id, sender=MessageSender.DM, content=opening.scene)
            )

        logger.info(
            "adventure_started",
            session_id=session.id,
            character_id=character_id,
            adventure_type=adventure_type,
        )
        return session, message

    def _build_context(self, character: Character, session: GameSession) -> NarrativeContext:
        recent = self._storage.messages.list_for_session(session.id, self._context_messages)
        memories = self._storage.session_context.list_for_session(session.id)
        return NarrativeContext(
            character_name=character.name,
            character_class=str(character.character_class),
            character_level=character.level,
            character_stats={
                "strength": character.strength,
                "dexterity": character.dexterity,
                "constitution": character.constitution,
                "intelligence": character.intelligence,
                "wisdom": character.wisdom,
                "charisma": character.charisma,
            },
            current_scene=session.current_scene or "",
            session_title=session.title,
            recent_messages=[
                RecentMessage(sender=str(m.sender), content=m.content) for m in recent
            ],
            memories=[
                ContextUpdate(
                    type=entry.context_type,
                    key=entry.context_key,
                    value=entry.context_value,
                    importance=entry.importance,
                )
                for entry in memories
            ],
        )

    def take_turn(
        self,
        session_id: str,
        character_id: str,
        action: str,
        dice: RollOutcome | None = None,
    ) -> TurnResult:
        """Play one player action through the narrator.

        Raises:
            NotFoundError: If the character or session does not exist.
            InvalidInputError: If the session belongs to another character.
            NarrativeError: If the narrator fails or returns a malformed response.
        """
        with log_context(session_id=session_id, character_id=character_id):
            return self._play_turn(session_id, character_id, action, dice)

    def _play_turn(
        self,
        session_id: str,
        character_id: str,
        action: str,
        dice: RollOutcome | None,
    ) -> TurnResult:
        character = self._require_character(character_id)
        session = self._require_session(session_id)
        if session.character_id != character_id:
            raise InvalidInputError(
                f"Session {session_id} does not belong to character {character_id}",
                field_name="character_id",
                invalid_value=character_id,
            )

        context = self._build_context(character, session)
        raw = self._call_narrator("respond", action, context, dice)
        try:
            response = DMResponse.model_validate(raw)
        except ValidationError as exc:
            raise NarrativeError(
                "Narrative generator returned a malformed response",
                provider=type(self._narrator).__name__,
            ) from exc

        with self._storage.transaction():
            player_message = self._storage.messages.create(
                Message(session_id=session_id, sender=MessageSender.PLAYER, content=action)
            )
            dm_message = self._storage.messages.create(
                Message(
                    session_id=session_id,
                    sender=MessageSender.DM,
                    content=response.content,
                    message_type=MessageType.COMBAT if response.combat_action else MessageType.TEXT,
                    metadata=DMTurnMetadata(
                        requires_dice_roll=response.requires_dice_roll,
                        dice_type=response.dice_type,
                        skill_check=response.skill_check,
                        combat_action=response.combat_action,
                        experience_awarded=response.experience_awarded,
                    ),
                )
            )

            if response.scene_update and response.scene_update != session.current_scene:
                self._storage.sessions.update(session_id, {"current_scene": response.scene_update})

            for update in response.memory_updates:
                self._storage.session_context.upsert(
                    SessionContextEntry(
                        session_id=session_id,
                        context_type=update.type,
                        context_key=update.key,
                        context_value=update.value,
                        importance=update.importance,
                    )
                )

        # The award takes the character lock before its own transaction,
        # so it must run outside the message transaction above.
        award = None
        if response.experience_awarded > 0:
            award = self._engine.award_experience(
                character_id,
                response.experience_awarded,
                response.experience_source,
                description=response.experience_reason,
                session_id=session_id,
            )

        logger.info(
            "turn_completed",
            experience_awarded=response.experience_awarded,
            leveled_up=bool(award and award.leveled_up),
        )
        return TurnResult(
            response=response,
            player_message=player_message,
            dm_message=dm_message,
            award=award,
        )

    def game_state(self, session_id: str) -> GameStateView:
        """Character, session, messages and inventory for a session.

        Raises:
            NotFoundError: If the session or its character does not exist.
        """
        session = self._require_session(session_id)
        character = self._require_character(session.character_id)
        return GameStateView(
            character=character,
            session=session,
            messages=self._storage.messages.list_for_session(session_id, self._message_limit),
            inventory=self._storage.inventory.list_for_character(character.id),
            is_in_combat=False,
        )


__all__ = [
    "AdventureService",
    "ContextUpdate",
    "DMResponse",
    "GameStateView",
    "NarrativeContext",
    "NarrativeGenerator",
    "OpeningScene",
    "RecentMessage",
    "TurnResult",
]
