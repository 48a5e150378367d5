"""SQLite persistence layer for questlog.

Provides durable storage for characters, their progression and level-up
history, the class feature catalog, sessions, messages, inventory, dice
rolls and session context.

Every operation runs inside ``Database.transaction``. A transaction is a
thread-local connection opened with ``BEGIN IMMEDIATE``, so writers to the
same database file serialize, and operations issued inside an enclosing
transaction join it rather than committing on their own.

Default location: ~/.questlog/questlog.db
"""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from questlog.core.exceptions import StorageError
from questlog.core.logging import get_logger
from questlog.models import (
    Character,
    ClassFeature,
    DiceRoll,
    GameSession,
    InventoryItem,
    LevelUpEvent,
    Message,
    ProgressionEvent,
    SessionContextEntry,
)
from questlog.storage.memory import check_class_name
from questlog.storage.merge import merge_fields


logger = get_logger(__name__)


def _is_locked(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc).lower()


def _ts(value: datetime) -> str:
    return value.isoformat()


# =============================================================================
# Database Class
# =============================================================================


class Database:
    """SQLite database exposing the questlog stores.

    Attributes:
        characters, class_features, progression, level_ups, sessions,
        messages, inventory, dice_rolls, session_context: Store adapters.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None, *, busy_timeout: float = 5.0) -> None:
        """Initialize database.

        Args:
            db_path: Path to database file. If None, uses default location.
            busy_timeout: Seconds a connection waits on a locked database.
        """
        if db_path is None:
            self.db_path = self._get_default_path()
        else:
            self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._busy_timeout = busy_timeout
        self._local = threading.local()

        self._init_schema()

        self.characters = SqliteCharacterStore(self)
        self.class_features = SqliteClassFeatureCatalog(self)
        self.progression = SqliteProgressionHistory(self)
        self.level_ups = SqliteLevelUpHistory(self)
        self.sessions = SqliteSessionStore(self)
        self.messages = SqliteMessageStore(self)
        self.inventory = SqliteInventoryStore(self)
        self.dice_rolls = SqliteDiceRollStore(self)
        self.session_context = SqliteSessionContextStore(self)

        logger.info("database_initialized", path=str(self.db_path))

    @staticmethod
    def _get_default_path() -> Path:
        return Path.home() / ".questlog" / "questlog.db"

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self._busy_timeout,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @retry(
        retry=retry_if_exception(_is_locked),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, max=1),
        reraise=True,
    )
    def _begin(self, conn: sqlite3.Connection) -> None:
        conn.execute("BEGIN IMMEDIATE")

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block in a single write transaction.

        Nested calls on the same thread reuse the open connection and
        commit with the outermost block.

        Raises:
            StorageError: If the database cannot be reached or a statement fails.
        """
        active: sqlite3.Connection | None = getattr(self._local, "conn", None)
        if active is not None:
            yield active
            return

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(
                f"Cannot open database: {exc}",
                operation="connect",
                details={"path": str(self.db_path)},
            ) from exc

        try:
            self._begin(conn)
            self._local.conn = conn
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        except sqlite3.Error as exc:
            logger.error("storage_transaction_failed", error=str(exc))
            raise StorageError(
                f"Database operation failed: {exc}",
                operation="transaction",
                retryable=not isinstance(exc, sqlite3.IntegrityError),
            ) from exc
        except OverflowError as exc:
            # sqlite3 refuses ints outside the signed 64-bit range when binding
            logger.error("storage_transaction_failed", error=str(exc))
            raise StorageError(
                f"Value out of range for SQLite INTEGER: {exc}",
                operation="transaction",
                retryable=False,
            ) from exc
        finally:
            self._local.conn = None
            conn.close()

    _get_connection = transaction

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS characters (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    class TEXT NOT NULL,
                    level INTEGER NOT NULL DEFAULT 1,
                    health INTEGER NOT NULL,
                    max_health INTEGER NOT NULL,
                    strength INTEGER NOT NULL DEFAULT 10,
                    dexterity INTEGER NOT NULL DEFAULT 10,
                    constitution INTEGER NOT NULL DEFAULT 10,
                    intelligence INTEGER NOT NULL DEFAULT 10,
                    wisdom INTEGER NOT NULL DEFAULT 10,
                    charisma INTEGER NOT NULL DEFAULT 10,
                    experience INTEGER NOT NULL DEFAULT 0,
                    proficiency_bonus INTEGER NOT NULL DEFAULT 2,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS class_features (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    class_name TEXT NOT NULL,
                    level INTEGER NOT NULL,
                    feature_name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    feature_type TEXT NOT NULL,
                    UNIQUE (class_name, level, feature_name)
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS character_progression (
                    id TEXT PRIMARY KEY,
                    character_id TEXT NOT NULL REFERENCES characters(id),
                    experience_gained INTEGER NOT NULL,
                    experience_source TEXT NOT NULL,
                    description TEXT,
                    session_id TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS level_ups (
                    id TEXT PRIMARY KEY,
                    character_id TEXT NOT NULL REFERENCES characters(id),
                    previous_level INTEGER NOT NULL,
                    new_level INTEGER NOT NULL,
                    hit_points_gained INTEGER NOT NULL,
                    features_gained TEXT NOT NULL DEFAULT '[]',
                    session_id TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS game_sessions (
                    id TEXT PRIMARY KEY,
                    character_id TEXT NOT NULL REFERENCES characters(id),
                    title TEXT NOT NULL,
                    description TEXT,
                    current_scene TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL REFERENCES game_sessions(id),
                    sender TEXT NOT NULL,
                    content TEXT NOT NULL,
                    message_type TEXT NOT NULL DEFAULT 'text',
                    metadata TEXT,
                    timestamp TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS inventory (
                    id TEXT PRIMARY KEY,
                    character_id TEXT NOT NULL REFERENCES characters(id),
                    item_name TEXT NOT NULL,
                    item_type TEXT NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 1,
                    description TEXT,
                    properties TEXT NOT NULL DEFAULT '{}'
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS dice_rolls (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL REFERENCES game_sessions(id),
                    character_id TEXT NOT NULL REFERENCES characters(id),
                    dice_type TEXT NOT NULL,
                    result INTEGER NOT NULL,
                    modifier INTEGER NOT NULL DEFAULT 0,
                    purpose TEXT,
                    timestamp TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS session_context (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL REFERENCES game_sessions(id),
                    context_type TEXT NOT NULL,
                    context_key TEXT NOT NULL,
                    context_value TEXT NOT NULL,
                    importance INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (session_id, context_type, context_key)
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_progression_character
                ON character_progression(character_id, created_at DESC)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_level_ups_character
                ON level_ups(character_id, created_at DESC)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_messages_session
                ON messages(session_id)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_dice_rolls_session
                ON dice_rolls(session_id)
            """)

            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )


# =============================================================================
# Store Adapters
# =============================================================================


class _SqliteStore:
    def __init__(self, db: Database) -> None:
        self._db = db


class SqliteCharacterStore(_SqliteStore):
    _COLUMNS = (
        "id", "name", "class", "level", "health", "max_health",
        "strength", "dexterity", "constitution", "intelligence", "wisdom", "charisma",
        "experience", "proficiency_bonus", "created_at",
    )

    @staticmethod
    def _row_values(character: Character) -> tuple[Any, ...]:
        return (
            character.id,
            character.name,
            str(character.character_class),
            character.level,
            character.health,
            character.max_health,
            character.strength,
            character.dexterity,
            character.constitution,
            character.intelligence,
            character.wisdom,
            character.charisma,
            character.experience,
            character.proficiency_bonus,
            _ts(character.created_at),
        )

    def get(self, character_id: str) -> Character | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM characters WHERE id = ?", (character_id,)
            ).fetchone()
        return Character.model_validate(dict(row)) if row else None

    def create(self, character: Character) -> Character:
        placeholders = ", ".join("?" for _ in self._COLUMNS)
        with self._db.transaction() as conn:
            conn.execute(
                f"INSERT INTO characters ({', '.join(self._COLUMNS)}) VALUES ({placeholders})",
                self._row_values(character),
            )
        logger.info("character_created", character_id=character.id, name=character.name)
        return character

    def update(self, character_id: str, fields: dict[str, Any]) -> Character | None:
        with self._db.transaction() as conn:
            current = self.get(character_id)
            if current is None:
                return None
            updated = merge_fields(current, fields, resource="character")
            assignments = ", ".join(f"{col} = ?" for col in self._COLUMNS[1:])
            conn.execute(
                f"UPDATE characters SET {assignments} WHERE id = ?",
                (*self._row_values(updated)[1:], character_id),
            )
        return updated

    def list(self) -> list[Character]:
        with self._db.transaction() as conn:
            rows = conn.execute("SELECT * FROM characters ORDER BY created_at").fetchall()
        return [Character.model_validate(dict(row)) for row in rows]


class SqliteClassFeatureCatalog(_SqliteStore):
    def features_for(self, class_name: str, level: int) -> list[ClassFeature]:
        resolved = check_class_name(class_name)
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT class_name, level, feature_name, description, feature_type
                FROM class_features WHERE class_name = ? AND level = ?
                ORDER BY id
                """,
                (str(resolved), level),
            ).fetchall()
        return [ClassFeature.model_validate(dict(row)) for row in rows]

    def add(self, feature: ClassFeature) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO class_features
                (class_name, level, feature_name, description, feature_type)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    str(feature.class_name),
                    feature.level,
                    feature.feature_name,
                    feature.description,
                    str(feature.feature_type),
                ),
            )
            return cursor.rowcount > 0


class SqliteProgressionHistory(_SqliteStore):
    def append(self, event: ProgressionEvent) -> ProgressionEvent:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO character_progression
                (id, character_id, experience_gained, experience_source,
                 description, session_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.character_id,
                    event.experience_gained,
                    str(event.experience_source),
                    event.description,
                    event.session_id,
                    _ts(event.created_at),
                ),
            )
        return event

    def list_by_character(self, character_id: str) -> list[ProgressionEvent]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, character_id, experience_gained, experience_source,
                       description, session_id, created_at
                FROM character_progression WHERE character_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (character_id,),
            ).fetchall()
        return [ProgressionEvent.model_validate(dict(row)) for row in rows]


class SqliteLevelUpHistory(_SqliteStore):
    def append(self, event: LevelUpEvent) -> LevelUpEvent:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO level_ups
                (id, character_id, previous_level, new_level, hit_points_gained,
                 features_gained, session_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.character_id,
                    event.previous_level,
                    event.new_level,
                    event.hit_points_gained,
                    json.dumps(event.features_gained),
                    event.session_id,
                    _ts(event.created_at),
                ),
            )
        return event

    def list_by_character(self, character_id: str) -> list[LevelUpEvent]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, character_id, previous_level, new_level, hit_points_gained,
                       features_gained, session_id, created_at
                FROM level_ups WHERE character_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (character_id,),
            ).fetchall()

        events = []
        for row in rows:
            data = dict(row)
            data["features_gained"] = json.loads(data["features_gained"])
            events.append(LevelUpEvent.model_validate(data))
        return events


class SqliteSessionStore(_SqliteStore):
    _COLUMNS = (
        "id", "character_id", "title", "description", "current_scene",
        "is_active", "created_at", "updated_at",
    )

    @staticmethod
    def _row_values(session: GameSession) -> tuple[Any, ...]:
        return (
            session.id,
            session.character_id,
            session.title,
            session.description,
            session.current_scene,
            int(session.is_active),
            _ts(session.created_at),
            _ts(session.updated_at),
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> GameSession:
        data = dict(row)
        data["is_active"] = bool(data["is_active"])
        return GameSession.model_validate(data)

    def get(self, session_id: str) -> GameSession | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM game_sessions WHERE id = ?", (session_id,)
            ).fetchone()
        return self._from_row(row) if row else None

    def create(self, session: GameSession) -> GameSession:
        placeholders = ", ".join("?" for _ in self._COLUMNS)
        with self._db.transaction() as conn:
            conn.execute(
                f"INSERT INTO game_sessions ({', '.join(self._COLUMNS)}) VALUES ({placeholders})",
                self._row_values(session),
            )
        logger.info("session_created", session_id=session.id, character_id=session.character_id)
        return session

    def update(self, session_id: str, fields: dict[str, Any]) -> GameSession | None:
        with self._db.transaction() as conn:
            current = self.get(session_id)
            if current is None:
                return None
            updated = merge_fields(
                current, {**fields, "updated_at": datetime.now()}, resource="session"
            )
            assignments = ", ".join(f"{col} = ?" for col in self._COLUMNS[1:])
            conn.execute(
                f"UPDATE game_sessions SET {assignments} WHERE id = ?",
                (*self._row_values(updated)[1:], session_id),
            )
        return updated

    def active_for_character(self, character_id: str) -> GameSession | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                """
                SELECT * FROM game_sessions
                WHERE character_id = ? AND is_active = 1
                ORDER BY created_at DESC LIMIT 1
                """,
                (character_id,),
            ).fetchone()
        return self._from_row(row) if row else None


class SqliteMessageStore(_SqliteStore):
    def create(self, message: Message) -> Message:
        metadata = message.metadata.model_dump_json() if message.metadata else None
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO messages
                (id, session_id, sender, content, message_type, metadata, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    message.session_id,
                    str(message.sender),
                    message.content,
                    str(message.message_type),
                    metadata,
                    _ts(message.timestamp),
                ),
            )
        return message

    def list_for_session(self, session_id: str, limit: int = 50) -> list[Message]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, session_id, sender, content, message_type, metadata, timestamp
                FROM (
                    SELECT rowid AS seq, * FROM messages
                    WHERE session_id = ? ORDER BY rowid DESC LIMIT ?
                ) ORDER BY seq ASC
                """,
                (session_id, limit),
            ).fetchall()

        messages = []
        for row in rows:
            data = dict(row)
            data["metadata"] = json.loads(data["metadata"]) if data["metadata"] else None
            messages.append(Message.model_validate(data))
        return messages


class SqliteInventoryStore(_SqliteStore):
    @staticmethod
    def _from_row(row: sqlite3.Row) -> InventoryItem:
        data = dict(row)
        data["properties"] = json.loads(data["properties"])
        return InventoryItem.model_validate(data)

    def list_for_character(self, character_id: str) -> list[InventoryItem]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM inventory WHERE character_id = ? ORDER BY rowid",
                (character_id,),
            ).fetchall()
        return [self._from_row(row) for row in rows]

    def _get(self, item_id: str) -> InventoryItem | None:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM inventory WHERE id = ?", (item_id,)).fetchone()
        return self._from_row(row) if row else None

    def create(self, item: InventoryItem) -> InventoryItem:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO inventory
                (id, character_id, item_name, item_type, quantity, description, properties)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    item.character_id,
                    item.item_name,
                    item.item_type,
                    item.quantity,
                    item.description,
                    json.dumps(item.properties),
                ),
            )
        return item

    def update(self, item_id: str, fields: dict[str, Any]) -> InventoryItem | None:
        with self._db.transaction() as conn:
            current = self._get(item_id)
            if current is None:
                return None
            updated = merge_fields(current, fields, resource="inventory item")
            conn.execute(
                """
                UPDATE inventory SET item_name = ?, item_type = ?, quantity = ?,
                       description = ?, properties = ?
                WHERE id = ?
                """,
                (
                    updated.item_name,
                    updated.item_type,
                    updated.quantity,
                    updated.description,
                    json.dumps(updated.properties),
                    item_id,
                ),
            )
        return updated

    def delete(self, item_id: str) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM inventory WHERE id = ?", (item_id,))
            return cursor.rowcount > 0


class SqliteDiceRollStore(_SqliteStore):
    def create(self, roll: DiceRoll) -> DiceRoll:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO dice_rolls
                (id, session_id, character_id, dice_type, result, modifier, purpose, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    roll.id,
                    roll.session_id,
                    roll.character_id,
                    str(roll.dice_type),
                    roll.result,
                    roll.modifier,
                    roll.purpose,
                    _ts(roll.timestamp),
                ),
            )
        return roll

    def list_for_session(self, session_id: str, limit: int = 20) -> list[DiceRoll]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, session_id, character_id, dice_type, result, modifier, purpose, timestamp
                FROM dice_rolls WHERE session_id = ?
                ORDER BY timestamp DESC, rowid DESC LIMIT ?
                """,
                (session_id, limit),
            ).fetchall()
        return [DiceRoll.model_validate(dict(row)) for row in rows]


class SqliteSessionContextStore(_SqliteStore):
    def upsert(self, entry: SessionContextEntry) -> SessionContextEntry:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO session_context
                (id, session_id, context_type, context_key, context_value,
                 importance, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (session_id, context_type, context_key) DO UPDATE SET
                    context_value = excluded.context_value,
                    importance = excluded.importance,
                    updated_at = excluded.updated_at
                """,
                (
                    entry.id,
                    entry.session_id,
                    str(entry.context_type),
                    entry.context_key,
                    entry.context_value,
                    entry.importance,
                    _ts(entry.created_at),
                    _ts(entry.updated_at),
                ),
            )
            row = conn.execute(
                """
                SELECT * FROM session_context
                WHERE session_id = ? AND context_type = ? AND context_key = ?
                """,
                (entry.session_id, str(entry.context_type), entry.context_key),
            ).fetchone()
        return SessionContextEntry.model_validate(dict(row))

    def list_for_session(self, session_id: str) -> list[SessionContextEntry]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM session_context WHERE session_id = ?
                ORDER BY importance DESC, rowid
                """,
                (session_id,),
            ).fetchall()
        return [SessionContextEntry.model_validate(dict(row)) for row in rows]


__all__ = [
    "Database",
    "SqliteCharacterStore",
    "SqliteClassFeatureCatalog",
    "SqliteProgressionHistory",
    "SqliteLevelUpHistory",
    "SqliteSessionStore",
    "SqliteMessageStore",
    "SqliteInventoryStore",
    "SqliteDiceRollStore",
    "SqliteSessionContextStore",
]
