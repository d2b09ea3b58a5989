"""High-level context memory interface for the calling layer."""

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ragmem.memory.associations import ContextAssociationTable
from ragmem.memory.cache import SessionMemoryCache
from ragmem.memory.conversation import DEFAULT_HISTORY_LIMIT, PROMPT_CONTEXT_LIMIT
from ragmem.memory.documents import DocumentStore
from ragmem.memory.errors import RagmemError
from ragmem.memory.ranking import RELEVANT_CONTEXT_LIMIT, RelevanceRanker
from ragmem.memory.schema import (
    ContextEntry,
    Conversation,
    Document,
    MemoryVariables,
    MessageRecord,
    Metadata,
    OperationResult,
    RankedDocument,
)
from ragmem.memory.storage import MemoryStorage
from ragmem.memory.utils import preview

if TYPE_CHECKING:
    from ragmem.config.schema import MemoryConfig

logger = logging.getLogger(__name__)

DEFAULT_ATTACH_SCORE = 0.8

SAMPLE_DOCUMENTS: list[dict] = [
    {
        "title": "AI Assistant Guidelines",
        "content": (
            "I am an AI assistant designed to be helpful, harmless, and honest. I can help "
            "with a wide variety of tasks including answering questions, writing, analysis, "
            "math, coding, and creative tasks."
        ),
        "metadata": {"type": "guidelines", "priority": "high"},
    },
    {
        "title": "Technical Support",
        "content": (
            "For technical issues, please provide detailed information about your problem "
            "including error messages, steps to reproduce, and your system configuration."
        ),
        "metadata": {"type": "support", "category": "technical"},
    },
    {
        "title": "Company Information",
        "content": (
            "We are a technology company focused on building AI-powered solutions to help "
            "businesses improve efficiency and customer experience."
        ),
        "metadata": {"type": "company", "department": "general"},
    },
]


class ContextService:
    """Session-scoped memory, document corpus and context attachment.

    Reads used to assemble a prompt never fail the turn: they degrade to empty
    results. Writes the caller asked for explicitly report their outcome as an
    :class:`OperationResult`.
    """

    def __init__(
        self,
        storage_path: str | Path,
        context_enabled: bool = True,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        default_attach_score: float = DEFAULT_ATTACH_SCORE,
    ):
        """Initialize the context service.

        Args:
            storage_path: Path to SQLite database
            context_enabled: Whether session memories load and attach documents
            history_limit: Maximum number of recent messages loaded per turn
            default_attach_score: Score used by :meth:`attach_context` when none is given
        """
        self.storage = MemoryStorage(storage_path)
        self.documents = DocumentStore(self.storage)
        self.associations = ContextAssociationTable(self.storage)
        self.ranker = RelevanceRanker(self.documents, self.associations)
        self.sessions = SessionMemoryCache(
            storage=self.storage,
            associations=self.associations,
            ranker=self.ranker,
            context_enabled=context_enabled,
            history_limit=history_limit,
        )
        self.default_attach_score = default_attach_score

    @classmethod
    def from_config(cls, config: "MemoryConfig") -> "ContextService":
        return cls(
            storage_path=config.storage_path,
            context_enabled=config.context_enabled,
            history_limit=config.history_limit,
            default_attach_score=config.default_attach_score,
        )

    # Conversation memory

    async def load_context(self, session_id: str) -> MemoryVariables:
        return await self.sessions.get_or_create(session_id).load_context()

    async def build_context_prompt(self, session_id: str) -> str:
        return await self.sessions.get_or_create(session_id).build_context_prompt()

    async def save_exchange(
        self,
        session_id: str,
        user_input: str,
        assistant_output: str,
        context_used: list[str] | None = None,
        tokens_used: int | None = None,
    ) -> None:
        """Persist an exchange for a session (see :meth:`ConversationMemory.save_exchange`)."""
        memory = self.sessions.get_or_create(session_id)
        await memory.save_exchange(
            user_input, assistant_output, context_used=context_used, tokens_used=tokens_used
        )

    async def clear(self, session_id: str) -> OperationResult:
        """Clear a session's history and context, then evict its cached memory.

        The conversation row itself is kept.
        """
        memory = self.sessions.get_or_create(session_id)
        try:
            await memory.clear()
        except RagmemError as e:
            logger.error("Error clearing conversation %s: %s", session_id, e)
            return OperationResult(success=False, error=str(e))
        finally:
            self.sessions.remove(session_id)

        return OperationResult(success=True, message="Conversation cleared", data=session_id)

    async def get_history(self, session_id: str) -> list[MessageRecord]:
        """Full chronological message log of a session."""
        try:
            return await asyncio.to_thread(self.storage.load_messages, session_id)
        except RagmemError as e:
            logger.error("Error fetching history for %s: %s", session_id, e)
            return []

    async def get_conversation(self, session_id: str) -> Conversation | None:
        return await asyncio.to_thread(self.storage.get_conversation, session_id)

    async def list_conversations(self, limit: int = 10) -> list[Conversation]:
        return await asyncio.to_thread(self.storage.list_conversations, limit)

    async def get_conversation_summary(self, session_id: str) -> str:
        return await self.sessions.get_or_create(session_id).get_conversation_summary()

    # Documents

    async def add_document(
        self,
        title: str,
        content: str,
        metadata: Metadata | None = None,
    ) -> OperationResult:
        """Add a document to the corpus.

        Returns:
            Result whose ``data`` is the created :class:`Document` on success
        """
        try:
            document = await self.documents.create(title, content, metadata)
        except RagmemError as e:
            logger.error("Error adding context document %r: %s", title, e)
            return OperationResult(success=False, error=str(e))

        return OperationResult(
            success=True,
            message="Context document added successfully",
            data=document,
        )

    async def list_documents(self, limit: int = 100) -> list[Document]:
        try:
            return await self.documents.find_all(limit)
        except RagmemError as e:
            logger.error("Error fetching context documents: %s", e)
            return []

    async def search_documents(self, query: str, limit: int = 10) -> list[RankedDocument]:
        """Rank the corpus against a query. Returns an empty list on failure."""
        try:
            return await self.ranker.rank(query, limit)
        except RagmemError as e:
            logger.error("Error searching context documents: %s", e)
            return []

    async def delete_document(self, document_id: str) -> OperationResult:
        """Delete a document and detach it from every conversation."""
        try:
            deleted = await self.documents.delete(document_id)
        except RagmemError as e:
            logger.error("Error deleting context document %s: %s", document_id, e)
            return OperationResult(success=False, error=str(e))

        message = "Context document deleted successfully" if deleted else "Document not found"
        return OperationResult(success=True, message=message, data=deleted)

    async def seed_sample_documents(self) -> int:
        """Insert the sample documents whose titles are not in the corpus yet.

        Returns:
            Number of documents inserted
        """
        inserted = 0
        for sample in SAMPLE_DOCUMENTS:
            if await self.documents.find_by_title(sample["title"]) is not None:
                continue
            await self.documents.create(sample["title"], sample["content"], sample["metadata"])
            inserted += 1
        return inserted

    # Conversation context

    async def attach_context(
        self,
        session_id: str,
        document_ids: list[str],
        relevance_score: float | None = None,
    ) -> OperationResult:
        """Attach documents to a session's conversation with one shared score.

        The conversation is created if it does not exist yet.
        """
        score = self.default_attach_score if relevance_score is None else relevance_score
        try:
            await asyncio.to_thread(self.storage.create_conversation, session_id)
            for document_id in document_ids:
                await self.associations.add_context(session_id, document_id, score)
        except RagmemError as e:
            logger.error("Error adding context to conversation %s: %s", session_id, e)
            return OperationResult(success=False, error=str(e))

        return OperationResult(
            success=True,
            message=f"Added {len(document_ids)} context document(s) to conversation",
            data=list(document_ids),
        )

    async def detach_context(self, session_id: str, document_id: str) -> OperationResult:
        try:
            removed = await self.associations.remove_context(session_id, document_id)
        except RagmemError as e:
            logger.error("Error removing context from conversation %s: %s", session_id, e)
            return OperationResult(success=False, error=str(e))

        return OperationResult(
            success=True, message="Context removed from conversation", data=removed
        )

    async def list_active_context(self, session_id: str) -> list[ContextEntry]:
        try:
            return await self.associations.get_context_for_conversation(session_id)
        except RagmemError as e:
            logger.error("Error fetching conversation context for %s: %s", session_id, e)
            return []

    async def find_relevant_context(
        self,
        query: str,
        session_id: str | None = None,
        limit: int = RELEVANT_CONTEXT_LIMIT,
    ) -> list[RankedDocument]:
        """Rank documents for a query, boosting a session's attached documents."""
        try:
            if session_id:
                return await self.ranker.rank_for_conversation(query, session_id, limit)
            return await self.ranker.rank(query, limit)
        except RagmemError as e:
            logger.error("Error finding relevant context: %s", e)
            return []

    async def generate_context_summary(self, session_id: str) -> str:
        """Bullet list of the most relevant attached documents."""
        entries = await self.list_active_context(session_id)
        if not entries:
            return "No context documents attached to this conversation."

        bullets = "\n".join(
            f"• {entry.document.title}: {preview(entry.document.content)}"
            for entry in entries[:PROMPT_CONTEXT_LIMIT]
        )
        return f"Active Context ({len(entries)} documents):\n{bullets}"
