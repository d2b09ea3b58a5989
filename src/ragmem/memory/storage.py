"""SQLite storage backend for documents, conversations and context."""

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from ragmem.memory.errors import NotFoundError, StoreError
from ragmem.memory.schema import (
    SENTINEL_TITLE,
    ContextAssociation,
    ContextEntry,
    Conversation,
    Document,
    MessageRecord,
    Metadata,
    utcnow,
)
from ragmem.memory.utils import lexical_rank, match_expression

logger = logging.getLogger(__name__)

# Conversation columns that may be changed after creation
_UPDATABLE_CONVERSATION_FIELDS = frozenset({"title", "context_summary", "user_id"})


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _dump_metadata(metadata: Metadata) -> str:
    return json.dumps(metadata, sort_keys=True)


def _document_from_row(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        metadata=json.loads(row["metadata"]) if row["metadata"] else {},
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _conversation_from_row(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"] or SENTINEL_TITLE,
        context_summary=row["context_summary"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _message_from_row(row: sqlite3.Row) -> MessageRecord:
    return MessageRecord(
        id=row["id"],
        conversation_id=row["conversation_id"],
        role=row["role"],
        content=row["content"],
        context_used=json.loads(row["context_used"]) if row["context_used"] else None,
        tokens_used=row["tokens_used"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class MemoryStorage:
    """SQLite-based datastore with an FTS5 lexical ranking primitive.

    Every public method opens its own connection, so each call is atomic on its
    own and calls may run from worker threads. SQLite errors are raised as
    :class:`StoreError`.
    """

    def __init__(self, db_path: str | Path):
        """Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and translate SQLite errors."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StoreError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def _initialize_db(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode = WAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id TEXT PRIMARY KEY,
                    user_id TEXT,
                    title TEXT NOT NULL,
                    context_summary TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT NOT NULL,
                    role TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
                    content TEXT NOT NULL,
                    context_used TEXT,
                    tokens_used INTEGER,
                    created_at TIMESTAMP NOT NULL,
                    FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    metadata TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)

            # Full-text index over title + content, porter-stemmed
            conn.execute("""
                CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
                    document_id UNINDEXED,
                    body,
                    tokenize = 'porter unicode61'
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversation_context (
                    conversation_id TEXT NOT NULL,
                    document_id TEXT NOT NULL,
                    relevance_score REAL NOT NULL CHECK (relevance_score >= 0),
                    added_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (conversation_id, document_id),
                    FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE,
                    FOREIGN KEY (document_id) REFERENCES documents(id) ON DELETE CASCADE
                )
            """)

            # Create indexes
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_conversation "
                "ON messages(conversation_id, created_at, id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_created ON documents(created_at)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_conversations_updated ON conversations(updated_at)"
            )

    # Conversations

    def create_conversation(
        self,
        conversation_id: str,
        user_id: str | None = None,
        title: str = SENTINEL_TITLE,
    ) -> tuple[Conversation, bool]:
        """Create a conversation unless one with this ID already exists.

        Args:
            conversation_id: Conversation (session) identifier
            user_id: Optional owning user
            title: Initial title

        Returns:
            Tuple of (conversation, created) where created is True if the row is new
        """
        now = _timestamp(utcnow())
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO conversations
                (id, user_id, title, context_summary, created_at, updated_at)
                VALUES (?, ?, ?, NULL, ?, ?)
            """,
                (conversation_id, user_id, title, now, now),
            )
            created = cursor.rowcount > 0
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()

        if created:
            logger.debug("Created conversation %s", conversation_id)
        return _conversation_from_row(row), created

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID.

        Args:
            conversation_id: Conversation identifier

        Returns:
            Conversation or None if not found
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
        return _conversation_from_row(row) if row else None

    def update_conversation(self, conversation_id: str, **updates: Any) -> Conversation:
        """Update conversation fields and bump ``updated_at``.

        Args:
            conversation_id: Conversation identifier
            **updates: Column values (title, context_summary, user_id)

        Returns:
            The updated conversation

        Raises:
            ValueError: If an unknown field is given
            NotFoundError: If the conversation does not exist
        """
        unknown = set(updates) - _UPDATABLE_CONVERSATION_FIELDS
        if unknown:
            raise ValueError(f"Cannot update conversation fields: {sorted(unknown)}")

        assignments = [f"{field} = ?" for field in updates]
        assignments.append("updated_at = ?")
        params: list[Any] = [*updates.values(), _timestamp(utcnow()), conversation_id]

        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE conversations SET {', '.join(assignments)} WHERE id = ?",
                params,
            )
            if cursor.rowcount == 0:
                raise NotFoundError("conversation", conversation_id)
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
        return _conversation_from_row(row)

    def set_title_if_sentinel(self, conversation_id: str, title: str) -> bool:
        """Replace the title only while it still holds the placeholder.

        Returns:
            True if the title was changed
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE conversations SET title = ?, updated_at = ?
                WHERE id = ? AND (title IS NULL OR title = '' OR title = ?)
            """,
                (title, _timestamp(utcnow()), conversation_id, SENTINEL_TITLE),
            )
        return cursor.rowcount > 0

    def list_conversations(self, limit: int = 10, offset: int = 0) -> list[Conversation]:
        """List conversations ordered by most recent activity.

        Args:
            limit: Maximum number of conversations to return
            offset: Number of conversations to skip

        Returns:
            List of conversations
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM conversations
                ORDER BY updated_at DESC
                LIMIT ? OFFSET ?
            """,
                (limit, offset),
            ).fetchall()
        return [_conversation_from_row(row) for row in rows]

    # Messages

    def save_message(self, message: MessageRecord) -> int:
        """Append a message to a conversation.

        Args:
            message: Message record to save

        Returns:
            Message ID assigned by database

        Raises:
            NotFoundError: If the conversation does not exist
        """
        context_used = (
            json.dumps(message.context_used, sort_keys=True)
            if message.context_used is not None
            else None
        )
        with self._connect() as conn:
            touched = conn.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?",
                (_timestamp(utcnow()), message.conversation_id),
            )
            if touched.rowcount == 0:
                raise NotFoundError("conversation", message.conversation_id)

            cursor = conn.execute(
                """
                INSERT INTO messages
                (conversation_id, role, content, context_used, tokens_used, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    message.conversation_id,
                    message.role,
                    message.content,
                    context_used,
                    message.tokens_used,
                    _timestamp(message.created_at),
                ),
            )

        message_id = cursor.lastrowid
        assert message_id is not None
        return message_id

    def load_messages(self, conversation_id: str, limit: int | None = None) -> list[MessageRecord]:
        """Load messages for a conversation.

        Args:
            conversation_id: Conversation identifier
            limit: If given, only the most recent ``limit`` messages

        Returns:
            List of messages in chronological order
        """
        if limit is None:
            query = """
                SELECT * FROM messages
                WHERE conversation_id = ?
                ORDER BY created_at ASC, id ASC
            """
            params: tuple[Any, ...] = (conversation_id,)
        else:
            query = """
                SELECT * FROM (
                    SELECT * FROM messages
                    WHERE conversation_id = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                )
                ORDER BY created_at ASC, id ASC
            """
            params = (conversation_id, limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_message_from_row(row) for row in rows]

    def get_message_count(self, conversation_id: str) -> int:
        """Get the total number of messages in a conversation."""
        with self._connect() as conn:
            result = conn.execute(
                "SELECT COUNT(*) FROM messages WHERE conversation_id = ?", (conversation_id,)
            ).fetchone()
        return int(result[0])

    def clear_messages(self, conversation_id: str) -> int:
        """Delete all messages of a conversation (but keep the conversation).

        Returns:
            Number of messages deleted
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM messages WHERE conversation_id = ?", (conversation_id,)
            )
        return cursor.rowcount

    # Documents

    def insert_document(self, title: str, content: str, metadata: Metadata) -> Document:
        """Insert a document and index it for full-text search.

        Args:
            title: Document title
            content: Document body
            metadata: JSON-compatible metadata map

        Returns:
            Created document
        """
        now = utcnow()
        document = Document(
            id=str(uuid.uuid4()),
            title=title,
            content=content,
            metadata=metadata,
            created_at=now,
            updated_at=now,
        )

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO documents (id, title, content, metadata, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    document.id,
                    document.title,
                    document.content,
                    _dump_metadata(document.metadata),
                    _timestamp(document.created_at),
                    _timestamp(document.updated_at),
                ),
            )
            conn.execute(
                "INSERT INTO documents_fts (document_id, body) VALUES (?, ?)",
                (document.id, f"{document.title} {document.content}"),
            )

        return document

    def get_document(self, document_id: str) -> Document | None:
        """Get a document by ID, or None if not found."""
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM documents WHERE id = ?", (document_id,)).fetchone()
        return _document_from_row(row) if row else None

    def find_document_by_title(self, title: str) -> Document | None:
        """Get the oldest document with exactly this title, or None."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM documents WHERE title = ? ORDER BY created_at ASC LIMIT 1",
                (title,),
            ).fetchone()
        return _document_from_row(row) if row else None

    def list_documents(self, limit: int = 100) -> list[Document]:
        """List documents, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM documents ORDER BY created_at DESC, id ASC LIMIT ?", (limit,)
            ).fetchall()
        return [_document_from_row(row) for row in rows]

    def search_documents(self, terms: list[str], limit: int = 10) -> list[tuple[Document, float]]:
        """Rank documents matching any of the query terms.

        Args:
            terms: Distinct search terms
            limit: Maximum number of results

        Returns:
            List of (document, rank) pairs, rank in (0, 1), most relevant first
        """
        if not terms or limit <= 0:
            return []

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT d.*, bm25(documents_fts) AS score
                FROM documents_fts
                JOIN documents d ON d.id = documents_fts.document_id
                WHERE documents_fts MATCH ?
            """,
                (match_expression(terms),),
            ).fetchall()

            matched: dict[str, int] = {}
            for term in terms:
                for hit in conn.execute(
                    "SELECT document_id FROM documents_fts WHERE documents_fts MATCH ?",
                    (match_expression([term]),),
                ):
                    matched[hit["document_id"]] = matched.get(hit["document_id"], 0) + 1

        results = [
            (
                _document_from_row(row),
                lexical_rank(matched.get(row["id"], 0), len(terms), row["score"]),
            )
            for row in rows
        ]
        results.sort(key=lambda pair: (-pair[1], pair[0].id))
        return results[:limit]

    def delete_document(self, document_id: str) -> bool:
        """Delete a document, its index entry and its associations.

        Returns:
            True if the document existed
        """
        with self._connect() as conn:
            conn.execute("DELETE FROM documents_fts WHERE document_id = ?", (document_id,))
            cursor = conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        return cursor.rowcount > 0

    # Conversation context

    def upsert_context(
        self, conversation_id: str, document_id: str, relevance_score: float
    ) -> ContextAssociation:
        """Insert or replace the association between a conversation and a document.

        On conflict both ``relevance_score`` and ``added_at`` are overwritten.

        Raises:
            NotFoundError: If the conversation or the document does not exist
        """
        association = ContextAssociation(
            conversation_id=conversation_id,
            document_id=document_id,
            relevance_score=relevance_score,
            added_at=utcnow(),
        )

        with self._connect() as conn:
            if not conn.execute(
                "SELECT 1 FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone():
                raise NotFoundError("conversation", conversation_id)
            if not conn.execute("SELECT 1 FROM documents WHERE id = ?", (document_id,)).fetchone():
                raise NotFoundError("document", document_id)

            conn.execute(
                """
                INSERT INTO conversation_context
                (conversation_id, document_id, relevance_score, added_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (conversation_id, document_id)
                DO UPDATE SET relevance_score = excluded.relevance_score,
                              added_at = excluded.added_at
            """,
                (
                    association.conversation_id,
                    association.document_id,
                    association.relevance_score,
                    _timestamp(association.added_at),
                ),
            )

        return association

    def get_context(self, conversation_id: str) -> list[ContextEntry]:
        """Documents attached to a conversation, most relevant first.

        Ties on relevance are broken by most recent attachment.
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT d.*, cc.relevance_score, cc.added_at
                FROM conversation_context cc
                JOIN documents d ON d.id = cc.document_id
                WHERE cc.conversation_id = ?
                ORDER BY cc.relevance_score DESC, cc.added_at DESC, d.id ASC
            """,
                (conversation_id,),
            ).fetchall()

        return [
            ContextEntry(
                document=_document_from_row(row),
                relevance_score=row["relevance_score"],
                added_at=datetime.fromisoformat(row["added_at"]),
            )
            for row in rows
        ]

    def context_document_ids(self, conversation_id: str) -> set[str]:
        """IDs of the documents attached to a conversation."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT document_id FROM conversation_context WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchall()
        return {row["document_id"] for row in rows}

    def delete_context(self, conversation_id: str, document_id: str) -> bool:
        """Remove one association. Returns True if it existed."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM conversation_context WHERE conversation_id = ? AND document_id = ?",
                (conversation_id, document_id),
            )
        return cursor.rowcount > 0

    def clear_context(self, conversation_id: str) -> int:
        """Remove all associations of a conversation.

        Returns:
            Number of associations deleted
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM conversation_context WHERE conversation_id = ?", (conversation_id,)
            )
        return cursor.rowcount
