"""Persisted corpus of context documents."""

import asyncio
import logging

from ragmem.memory.errors import ValidationError
from ragmem.memory.schema import Document, Metadata, RankedDocument
from ragmem.memory.storage import MemoryStorage
from ragmem.memory.utils import query_terms

logger = logging.getLogger(__name__)


class DocumentStore:
    """Create, list, search and delete context documents.

    Documents are immutable once created; there is no update operation.
    """

    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    async def create(
        self,
        title: str,
        content: str,
        metadata: Metadata | None = None,
    ) -> Document:
        """Add a document to the corpus.

        Args:
            title: Document title (required)
            content: Document body (required)
            metadata: Optional JSON-compatible metadata

        Returns:
            Created document

        Raises:
            ValidationError: If title or content is missing
            StoreError: If the datastore fails
        """
        if not title or not title.strip():
            raise ValidationError("Document title is required")
        if not content or not content.strip():
            raise ValidationError("Document content is required")

        document = await asyncio.to_thread(
            self.storage.insert_document, title.strip(), content, metadata or {}
        )
        logger.info("Created document %s (%r)", document.id, document.title)
        return document

    async def find_all(self, limit: int = 100) -> list[Document]:
        """List documents, newest first."""
        return await asyncio.to_thread(self.storage.list_documents, limit)

    async def find_by_id(self, document_id: str) -> Document | None:
        """Get a document by ID, or None if not found."""
        return await asyncio.to_thread(self.storage.get_document, document_id)

    async def find_by_title(self, title: str) -> Document | None:
        return await asyncio.to_thread(self.storage.find_document_by_title, title)

    async def search(self, term: str, limit: int = 10) -> list[RankedDocument]:
        """Rank documents by lexical relevance of ``title + content`` to a term.

        Args:
            term: Free-text query
            limit: Maximum number of results

        Returns:
            Ranked documents, most relevant first. Empty if the query has no
            searchable terms.
        """
        terms = query_terms(term)
        if not terms or limit <= 0:
            return []

        results = await asyncio.to_thread(self.storage.search_documents, terms, limit)
        return [
            RankedDocument(document=document, rank=rank, base_rank=rank)
            for document, rank in results
        ]

    async def delete(self, document_id: str) -> bool:
        """Delete a document. A missing document is a no-op.

        Returns:
            True if a document was deleted
        """
        deleted = await asyncio.to_thread(self.storage.delete_document, document_id)
        if deleted:
            logger.info("Deleted document %s", document_id)
        return deleted
