"""Process-wide cache of conversation memories keyed by session ID."""

import logging
import threading

from ragmem.memory.associations import ContextAssociationTable
from ragmem.memory.conversation import DEFAULT_HISTORY_LIMIT, ConversationMemory
from ragmem.memory.ranking import RelevanceRanker
from ragmem.memory.storage import MemoryStorage

logger = logging.getLogger(__name__)


class SessionMemoryCache:
    """Lazily created :class:`ConversationMemory` instances, one per session.

    Lookup-or-create runs under a lock, so concurrent first turns for the same
    session always share a single instance.
    """

    def __init__(
        self,
        storage: MemoryStorage,
        associations: ContextAssociationTable,
        ranker: RelevanceRanker,
        context_enabled: bool = True,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.storage = storage
        self.associations = associations
        self.ranker = ranker
        self.context_enabled = context_enabled
        self.history_limit = history_limit
        self._memories: dict[str, ConversationMemory] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: str) -> ConversationMemory:
        """Return the cached memory for a session, creating it on first use.

        Args:
            session_id: Session identifier

        Returns:
            The session's conversation memory
        """
        with self._lock:
            memory = self._memories.get(session_id)
            if memory is None:
                memory = ConversationMemory(
                    conversation_id=session_id,
                    storage=self.storage,
                    associations=self.associations,
                    ranker=self.ranker,
                    context_enabled=self.context_enabled,
                    history_limit=self.history_limit,
                )
                self._memories[session_id] = memory
                logger.debug("Created memory for session %s", session_id)
            return memory

    def get(self, session_id: str) -> ConversationMemory | None:
        with self._lock:
            return self._memories.get(session_id)

    def remove(self, session_id: str) -> ConversationMemory | None:
        """Evict a session's memory. The persisted conversation is untouched.

        Returns:
            The evicted memory, or None if the session was not cached
        """
        with self._lock:
            memory = self._memories.pop(session_id, None)
        if memory is not None:
            logger.debug("Evicted memory for session %s", session_id)
        return memory

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._memories)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._memories

    def __len__(self) -> int:
        with self._lock:
            return len(self._memories)
