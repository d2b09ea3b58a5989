"""Per-conversation set of scored document associations."""

import asyncio
import logging

from ragmem.memory.errors import ValidationError
from ragmem.memory.schema import ContextAssociation, ContextEntry
from ragmem.memory.storage import MemoryStorage

logger = logging.getLogger(__name__)


class ContextAssociationTable:
    """Many-to-many conversation/document edges with upsert semantics.

    Re-attaching a document replaces its score and timestamp; scores from
    earlier attachments are never accumulated.
    """

    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    async def add_context(
        self,
        conversation_id: str,
        document_id: str,
        relevance_score: float = 1.0,
    ) -> ContextAssociation:
        """Attach a document to a conversation, or refresh an existing attachment.

        Args:
            conversation_id: Conversation identifier
            document_id: Document identifier
            relevance_score: Non-negative relevance of the document

        Returns:
            The stored association

        Raises:
            ValidationError: If the score is negative
            NotFoundError: If the conversation or document does not exist
        """
        if relevance_score < 0:
            raise ValidationError(f"Relevance score must be >= 0, got {relevance_score}")

        association = await asyncio.to_thread(
            self.storage.upsert_context, conversation_id, document_id, relevance_score
        )
        logger.debug(
            "Attached document %s to conversation %s (score=%.4f)",
            document_id,
            conversation_id,
            relevance_score,
        )
        return association

    async def get_context_for_conversation(self, conversation_id: str) -> list[ContextEntry]:
        """Attached documents ordered by score, then by most recent attachment."""
        return await asyncio.to_thread(self.storage.get_context, conversation_id)

    async def document_ids_for_conversation(self, conversation_id: str) -> set[str]:
        return await asyncio.to_thread(self.storage.context_document_ids, conversation_id)

    async def remove_context(self, conversation_id: str, document_id: str) -> bool:
        """Detach a document. Detaching a missing edge is not an error.

        Returns:
            True if an association was removed
        """
        return await asyncio.to_thread(self.storage.delete_context, conversation_id, document_id)

    async def clear_conversation(self, conversation_id: str) -> int:
        """Detach every document from a conversation."""
        return await asyncio.to_thread(self.storage.clear_context, conversation_id)
