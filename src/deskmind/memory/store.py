"""SQLite storage for conversations, messages and facts.

Each fact row is paired with exactly one row in the ``vec_facts`` sqlite-vec
table through ``facts.vector_ref``. The pairing is not a foreign key; it is
kept by writing and deleting both rows inside the same transaction.

If the sqlite-vec extension cannot be loaded or no embedder is ready, the
store runs degraded: conversations and messages still work, fact writes
and searches return None, False or [].
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from ..errors import MemoryUnavailableError
from .embedding import EmbeddingService
from .models import (
    Conversation,
    Fact,
    FactCategory,
    Message,
    ScoredFact,
    reinforced_confidence,
)

logger = logging.getLogger(__name__)

MESSAGE_ROLES = ("user", "assistant", "tool", "system")

SCHEMA = """
CREATE TABLE IF NOT EXISTS conversations (
    id             TEXT PRIMARY KEY,
    title          TEXT NOT NULL,
    project_id     TEXT,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL,
    message_count  INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS conversation_messages (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    conversation_id      TEXT NOT NULL,
    role                 TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'tool', 'system')),
    content              TEXT NOT NULL,
    timestamp            TEXT NOT NULL,
    processed_for_facts  INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_messages_conversation
    ON conversation_messages(conversation_id, id);

CREATE TABLE IF NOT EXISTS facts (
    id                      INTEGER PRIMARY KEY AUTOINCREMENT,
    content                 TEXT NOT NULL,
    category                TEXT NOT NULL
        CHECK (category IN ('personal', 'preferences', 'professional', 'interests')),
    confidence              REAL NOT NULL DEFAULT 1.0
        CHECK (confidence >= 0 AND confidence <= 2.0),
    created_at              TEXT NOT NULL,
    updated_at              TEXT NOT NULL,
    source_conversation_id  TEXT,
    project_id              TEXT,
    vector_ref              INTEGER NOT NULL UNIQUE
);

CREATE INDEX IF NOT EXISTS idx_facts_category ON facts(category);

CREATE TABLE IF NOT EXISTS user_profile (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

FACT_COLUMNS = (
    "id, content, category, confidence, created_at, updated_at, "
    "source_conversation_id, project_id, vector_ref"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialize(vector: list[float]) -> bytes:
    import sqlite_vec

    return sqlite_vec.serialize_float32(vector)


class MemoryStore:
    """Persistent storage for conversations, messages and facts using SQLite."""

    def __init__(
        self,
        db_path: Path | str,
        embedder: EmbeddingService | None = None,
        dimension: int | None = None,
    ) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file, or ``:memory:``.
            embedder: Embedding service for fact content and queries.
            dimension: Vector width; defaults to the embedder's.
        """
        self.db_path = db_path
        self.embedder = embedder
        self.dimension = dimension or (embedder.dimension if embedder else 384)
        self._conn: sqlite3.Connection | None = None
        self.vector_enabled = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            try:
                if str(self.db_path) != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self._conn = sqlite3.connect(self.db_path)
            except (OSError, sqlite3.Error) as e:
                raise MemoryUnavailableError(f"Cannot open memory database {self.db_path}: {e}") from e
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _load_vector_extension(self, conn: sqlite3.Connection) -> bool:
        try:
            import sqlite_vec

            conn.enable_load_extension(True)
            sqlite_vec.load(conn)
            conn.enable_load_extension(False)
        except (ImportError, AttributeError, sqlite3.Error) as e:
            logger.warning(f"sqlite-vec unavailable, facts disabled: {e}")
            return False
        return True

    def init_db(self) -> None:
        """Create tables and load the vector extension.

        Raises:
            MemoryUnavailableError: If the database cannot be opened.
        """
        conn = self._get_connection()
        try:
            if str(self.db_path) != ":memory:":
                conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise MemoryUnavailableError(f"Cannot initialize memory database: {e}") from e

        self.vector_enabled = self._load_vector_extension(conn)
        if self.vector_enabled:
            try:
                conn.execute(
                    f"CREATE VIRTUAL TABLE IF NOT EXISTS vec_facts "
                    f"USING vec0(embedding float[{self.dimension}])"
                )
            except sqlite3.Error as e:
                logger.warning(f"Could not create vector table, facts disabled: {e}")
                self.vector_enabled = False
        conn.commit()

    @property
    def facts_available(self) -> bool:
        """True when fact writes and searches can run."""
        return (
            self.vector_enabled
            and self.embedder is not None
            and self.embedder.is_ready
        )

    # Conversations and messages

    def create_conversation(
        self,
        conversation_id: str,
        title: str = "New Conversation",
        project_id: str | None = None,
    ) -> Conversation:
        conn = self._get_connection()
        now = _now()
        with conn:
            conn.execute(
                """
                INSERT INTO conversations (id, title, project_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO NOTHING
                """,
                (conversation_id, title, project_id, now, now),
            )
        return self.get_conversation(conversation_id)

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        row = self._get_connection().execute(
            "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
        ).fetchone()
        return self._row_to_conversation(row) if row else None

    def list_conversations(self) -> list[Conversation]:
        rows = self._get_connection().execute(
            "SELECT * FROM conversations ORDER BY updated_at DESC"
        ).fetchall()
        return [self._row_to_conversation(row) for row in rows]

    def update_conversation(
        self,
        conversation_id: str,
        title: str | None = None,
        project_id: str | None = None,
    ) -> Conversation | None:
        conn = self._get_connection()
        with conn:
            conn.execute(
                """
                UPDATE conversations
                SET title = COALESCE(?, title),
                    project_id = COALESCE(?, project_id),
                    updated_at = ?
                WHERE id = ?
                """,
                (title, project_id, _now(), conversation_id),
            )
        return self.get_conversation(conversation_id)

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and all of its messages."""
        conn = self._get_connection()
        with conn:
            conn.execute(
                "DELETE FROM conversation_messages WHERE conversation_id = ?", (conversation_id,)
            )
            cursor = conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
        return cursor.rowcount > 0

    def add_message(self, conversation_id: str, role: str, content: str) -> Message:
        """Append a message and bump the conversation's message count atomically.

        The conversation row is created if it does not exist.
        """
        if role not in MESSAGE_ROLES:
            raise ValueError(f"Invalid message role: {role}")

        conn = self._get_connection()
        now = _now()
        with conn:
            conn.execute(
                """
                INSERT INTO conversations (id, title, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO NOTHING
                """,
                (conversation_id, "New Conversation", now, now),
            )
            cursor = conn.execute(
                """
                INSERT INTO conversation_messages (conversation_id, role, content, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                (conversation_id, role, content, now),
            )
            conn.execute(
                """
                UPDATE conversations
                SET message_count = message_count + 1, updated_at = ?
                WHERE id = ?
                """,
                (now, conversation_id),
            )
        return Message(
            id=cursor.lastrowid,
            conversation_id=conversation_id,
            role=role,
            content=content,
            timestamp=now,
        )

    def get_messages(self, conversation_id: str, limit: int | None = None) -> list[Message]:
        """Messages in insertion order; ``limit`` keeps the most recent ones."""
        conn = self._get_connection()
        if limit is None:
            rows = conn.execute(
                "SELECT * FROM conversation_messages WHERE conversation_id = ? ORDER BY id",
                (conversation_id,),
            ).fetchall()
        else:
            rows = conn.execute(
                """
                SELECT * FROM (
                    SELECT * FROM conversation_messages
                    WHERE conversation_id = ? ORDER BY id DESC LIMIT ?
                ) ORDER BY id
                """,
                (conversation_id, limit),
            ).fetchall()
        return [self._row_to_message(row) for row in rows]

    def mark_messages_processed(self, message_ids: list[int]) -> int:
        if not message_ids:
            return 0
        conn = self._get_connection()
        with conn:
            cursor = conn.executemany(
                "UPDATE conversation_messages SET processed_for_facts = 1 WHERE id = ?",
                [(message_id,) for message_id in message_ids],
            )
        return cursor.rowcount

    # Facts

    async def _embed(self, text: str) -> list[float] | None:
        try:
            return await self.embedder.embed(text)
        except Exception as e:
            logger.warning(f"Embedding failed, fact operation skipped: {e}")
            return None

    async def add_fact(
        self,
        content: str,
        category: FactCategory | str,
        confidence: float = 1.0,
        source_conversation_id: str | None = None,
        project_id: str | None = None,
    ) -> Fact | None:
        """Embed and store a fact with its vector row.

        Returns:
            The stored fact, or None when facts are unavailable or the write
            was rolled back.
        """
        parsed = FactCategory.parse(category)
        if parsed is None:
            raise ValueError(f"Invalid fact category: {category}")
        if not self.facts_available:
            logger.debug("Facts unavailable, skipping add_fact")
            return None

        embedding = await self._embed(content)
        if embedding is None:
            return None

        conn = self._get_connection()
        now = _now()
        try:
            with conn:
                vector_ref = conn.execute(
                    "SELECT COALESCE(MAX(rowid), 0) + 1 FROM vec_facts"
                ).fetchone()[0]
                conn.execute(
                    "INSERT INTO vec_facts (rowid, embedding) VALUES (?, ?)",
                    (vector_ref, _serialize(embedding)),
                )
                exists = conn.execute(
                    "SELECT COUNT(*) FROM vec_facts WHERE rowid = ?", (vector_ref,)
                ).fetchone()[0]
                if exists != 1:
                    raise sqlite3.IntegrityError(f"Vector row {vector_ref} was not written")
                cursor = conn.execute(
                    """
                    INSERT INTO facts (content, category, confidence, created_at, updated_at,
                                       source_conversation_id, project_id, vector_ref)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (content, parsed.value, confidence, now, now,
                     source_conversation_id, project_id, vector_ref),
                )
                fact_id = cursor.lastrowid
        except sqlite3.Error as e:
            logger.warning(f"add_fact rolled back: {e}")
            return None

        return self.get_fact(fact_id)

    def get_fact(self, fact_id: int) -> Fact | None:
        row = self._get_connection().execute(
            f"SELECT {FACT_COLUMNS} FROM facts WHERE id = ?", (fact_id,)
        ).fetchone()
        return self._row_to_fact(row) if row else None

    def list_facts(self, category: FactCategory | str | None = None) -> list[Fact]:
        conn = self._get_connection()
        if category is None:
            rows = conn.execute(
                f"SELECT {FACT_COLUMNS} FROM facts ORDER BY updated_at DESC"
            ).fetchall()
        else:
            parsed = FactCategory.parse(category)
            if parsed is None:
                return []
            rows = conn.execute(
                f"SELECT {FACT_COLUMNS} FROM facts WHERE category = ? ORDER BY updated_at DESC",
                (parsed.value,),
            ).fetchall()
        return [self._row_to_fact(row) for row in rows]

    async def update_fact(
        self,
        fact_id: int,
        content: str | None = None,
        category: FactCategory | str | None = None,
        confidence: float | None = None,
    ) -> Fact | None:
        """Update a fact; a content change re-embeds and rewrites its vector row."""
        if not self.facts_available:
            return None
        existing = self.get_fact(fact_id)
        if existing is None:
            return None

        parsed = None
        if category is not None:
            parsed = FactCategory.parse(category)
            if parsed is None:
                raise ValueError(f"Invalid fact category: {category}")

        embedding = None
        if content is not None and content != existing.content:
            embedding = await self._embed(content)
            if embedding is None:
                return None

        conn = self._get_connection()
        try:
            with conn:
                if embedding is not None:
                    conn.execute(
                        "UPDATE vec_facts SET embedding = ? WHERE rowid = ?",
                        (_serialize(embedding), existing.vector_ref),
                    )
                conn.execute(
                    """
                    UPDATE facts
                    SET content = ?, category = ?, confidence = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        content if content is not None else existing.content,
                        (parsed or existing.category).value,
                        confidence if confidence is not None else existing.confidence,
                        _now(),
                        fact_id,
                    ),
                )
        except sqlite3.Error as e:
            logger.warning(f"update_fact {fact_id} rolled back: {e}")
            return None
        return self.get_fact(fact_id)

    async def reinforce_fact(self, fact_id: int) -> Fact | None:
        """Raise a fact's confidence by one step, capped at the maximum."""
        existing = self.get_fact(fact_id)
        if existing is None:
            return None
        return await self.update_fact(
            fact_id, confidence=reinforced_confidence(existing.confidence)
        )

    def delete_fact(self, fact_id: int) -> bool:
        """Delete a fact and its vector row together."""
        if not self.vector_enabled:
            return False
        conn = self._get_connection()
        row = conn.execute("SELECT vector_ref FROM facts WHERE id = ?", (fact_id,)).fetchone()
        if row is None:
            return False
        try:
            with conn:
                conn.execute("DELETE FROM vec_facts WHERE rowid = ?", (row["vector_ref"],))
                conn.execute("DELETE FROM facts WHERE id = ?", (fact_id,))
        except sqlite3.Error as e:
            logger.warning(f"delete_fact {fact_id} rolled back: {e}")
            return False
        return True

    async def search(self, query: str, limit: int = 8) -> list[ScoredFact]:
        """Facts nearest to ``query``, ascending L2 distance."""
        if not self.facts_available or limit < 1 or not query.strip():
            return []
        embedding = await self._embed(query)
        if embedding is None:
            return []
        try:
            rows = self._get_connection().execute(
                """
                SELECT f.id, f.content, f.category, f.confidence, f.created_at, f.updated_at,
                       f.source_conversation_id, f.project_id, f.vector_ref,
                       v.distance AS distance
                FROM (
                    SELECT rowid, distance FROM vec_facts
                    WHERE embedding MATCH ? AND k = ?
                ) AS v
                JOIN facts AS f ON f.vector_ref = v.rowid
                ORDER BY v.distance
                """,
                (_serialize(embedding), limit),
            ).fetchall()
        except sqlite3.Error as e:
            logger.warning(f"Fact search failed: {e}")
            return []
        return [ScoredFact(self._row_to_fact(row), float(row["distance"])) for row in rows]

    def count_facts(self) -> int:
        return self._get_connection().execute("SELECT COUNT(*) FROM facts").fetchone()[0]

    def count_vectors(self) -> int:
        if not self.vector_enabled:
            return 0
        return self._get_connection().execute("SELECT COUNT(*) FROM vec_facts").fetchone()[0]

    # User profile

    def get_profile(self) -> dict[str, str]:
        rows = self._get_connection().execute("SELECT key, value FROM user_profile").fetchall()
        return {row["key"]: row["value"] for row in rows}

    def set_profile_value(self, key: str, value: str) -> None:
        conn = self._get_connection()
        with conn:
            conn.execute(
                """
                INSERT INTO user_profile (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, _now()),
            )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @staticmethod
    def _row_to_fact(row: sqlite3.Row) -> Fact:
        return Fact(
            id=row["id"],
            content=row["content"],
            category=FactCategory(row["category"]),
            confidence=row["confidence"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            source_conversation_id=row["source_conversation_id"],
            project_id=row["project_id"],
            vector_ref=row["vector_ref"],
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=row["role"],
            content=row["content"],
            timestamp=row["timestamp"],
            processed_for_facts=bool(row["processed_for_facts"]),
        )

    @staticmethod
    def _row_to_conversation(row: sqlite3.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            title=row["title"],
            project_id=row["project_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            message_count=row["message_count"],
        )
