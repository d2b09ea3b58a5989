"""Retrieval-augmented conversation memory for ragmem.

Provides SQLite-backed document storage with FTS5 lexical ranking, scored
conversation/document associations, and per-session conversation memory that
assembles a bounded context block for each turn.

Components:

- :class:`ContextService` - High-level API used by the calling layer
- :class:`ConversationMemory` - History, title and context for one session
- :class:`SessionMemoryCache` - One memory instance per active session
- :class:`RelevanceRanker` - Lexical ranking with conversation boosting
- :class:`DocumentStore` - Document corpus
- :class:`ContextAssociationTable` - Conversation/document associations
- :class:`MemoryStorage` - SQLite storage backend with WAL mode
"""

from ragmem.memory.associations import ContextAssociationTable
from ragmem.memory.cache import SessionMemoryCache
from ragmem.memory.conversation import ConversationMemory
from ragmem.memory.documents import DocumentStore
from ragmem.memory.ranking import RelevanceRanker
from ragmem.memory.service import ContextService
from ragmem.memory.storage import MemoryStorage

__all__ = [
    "ContextAssociationTable",
    "ContextService",
    "ConversationMemory",
    "DocumentStore",
    "MemoryStorage",
    "RelevanceRanker",
    "SessionMemoryCache",
]
