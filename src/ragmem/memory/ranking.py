"""Relevance ranking with conversation-aware boosting."""

import logging

from ragmem.memory.associations import ContextAssociationTable
from ragmem.memory.documents import DocumentStore
from ragmem.memory.errors import RankingUnavailable, StoreError
from ragmem.memory.schema import RankedDocument

logger = logging.getLogger(__name__)

# Multiplier applied to documents already attached to the querying conversation.
# Applied once per call and never persisted, so it does not compound.
BOOST_FACTOR = 1.5

# Default number of results for relevant-context lookups
RELEVANT_CONTEXT_LIMIT = 5


class RelevanceRanker:
    """Rank documents for a query, optionally favoring a conversation's context."""

    def __init__(self, documents: DocumentStore, associations: ContextAssociationTable):
        self.documents = documents
        self.associations = associations

    async def rank(self, query: str, limit: int) -> list[RankedDocument]:
        """Plain lexical ranking.

        Args:
            query: Free-text query
            limit: Maximum number of results

        Returns:
            Ranked documents, most relevant first

        Raises:
            RankingUnavailable: If the search backend fails
        """
        try:
            return await self.documents.search(query, limit)
        except StoreError as e:
            raise RankingUnavailable(f"Document search failed: {e}") from e

    async def rank_for_conversation(
        self,
        query: str,
        conversation_id: str,
        limit: int = RELEVANT_CONTEXT_LIMIT,
    ) -> list[RankedDocument]:
        """Rank documents, boosting those already attached to the conversation.

        Each attached document's rank is multiplied by :data:`BOOST_FACTOR`;
        other documents keep their lexical rank. Results are re-sorted by the
        adjusted rank, then by the original rank, then by document ID.

        Args:
            query: Free-text query
            conversation_id: Conversation whose attachments are boosted
            limit: Maximum number of results (applied before boosting)

        Returns:
            Re-ranked documents, most relevant first

        Raises:
            RankingUnavailable: If the search backend or association lookup fails
        """
        ranked = await self.rank(query, limit)
        if not ranked:
            return []

        try:
            attached = await self.associations.document_ids_for_conversation(conversation_id)
        except StoreError as e:
            raise RankingUnavailable(f"Context lookup failed: {e}") from e

        adjusted = [
            item.model_copy(update={"rank": item.base_rank * BOOST_FACTOR, "boosted": True})
            if item.document.id in attached
            else item
            for item in ranked
        ]
        adjusted.sort(key=lambda item: (-item.rank, -item.base_rank, item.document.id))

        logger.debug(
            "Ranked %d documents for conversation %s (%d boosted)",
            len(adjusted),
            conversation_id,
            sum(1 for item in adjusted if item.boosted),
        )
        return adjusted
