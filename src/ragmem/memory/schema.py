"""Pydantic models for the memory system."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, JsonValue

# Placeholder title until the first exchange derives a real one
SENTINEL_TITLE = "New Conversation"

MessageRole = Literal["user", "assistant", "system"]

# Document metadata: string keys, JSON-compatible values (str/number/bool/null,
# nested maps and lists of the same). Stored with sorted keys.
Metadata = dict[str, JsonValue]


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """A context document in the corpus. Content is immutable."""

    id: str
    title: str
    content: str
    metadata: Metadata = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class Conversation(BaseModel):
    """A conversation record, keyed by the session identifier."""

    id: str
    user_id: str | None = None
    title: str = SENTINEL_TITLE
    context_summary: str | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def has_sentinel_title(self) -> bool:
        return not self.title or self.title == SENTINEL_TITLE


class MessageRecord(BaseModel):
    """A message in a conversation. Ordered by (created_at, id)."""

    id: int | None = None  # Auto-assigned by database
    conversation_id: str
    role: MessageRole
    content: str
    context_used: JsonValue | None = None  # Snapshot of the context at generation time
    tokens_used: int | None = None
    created_at: datetime = Field(default_factory=utcnow)


class ContextAssociation(BaseModel):
    """A scored edge linking a conversation to a document."""

    conversation_id: str
    document_id: str
    relevance_score: float = Field(ge=0.0)
    added_at: datetime


class RankedDocument(BaseModel):
    """A document with its lexical relevance rank.

    ``rank`` is the (possibly boosted) rank used for ordering; ``base_rank`` is
    the unadjusted lexical rank.
    """

    document: Document
    rank: float
    base_rank: float
    boosted: bool = False


class ContextEntry(BaseModel):
    """A document attached to a conversation, with its association score."""

    document: Document
    relevance_score: float
    added_at: datetime


class MemoryVariables(BaseModel):
    """History and context loaded for one conversation turn."""

    history: list[MessageRecord] = Field(default_factory=list)
    context: list[ContextEntry] = Field(default_factory=list)


class OperationResult(BaseModel):
    """Outcome of a caller-requested write operation."""

    success: bool
    message: str | None = None
    error: str | None = None
    data: Any = None
