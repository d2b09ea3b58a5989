"""Per-session conversation memory: chat history plus attached context."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from ragmem.memory.associations import ContextAssociationTable
from ragmem.memory.ranking import RelevanceRanker
from ragmem.memory.schema import (
    SENTINEL_TITLE,
    ContextEntry,
    Conversation,
    MemoryVariables,
    MessageRecord,
)
from ragmem.memory.storage import MemoryStorage
from ragmem.memory.utils import derive_title, preview

logger = logging.getLogger(__name__)

# Documents auto-attached per exchange
AUTO_ATTACH_LIMIT = 3
# Attached documents rendered into the prompt context block
PROMPT_CONTEXT_LIMIT = 3
# Score used when a ranked document carries no rank
MISSING_RANK_SCORE = 0.5

DEFAULT_HISTORY_LIMIT = 50

CONTEXT_SEPARATOR = "\n\n---\n\n"
CONTEXT_INSTRUCTION = "Please use this context to inform your responses when relevant."

# Messages considered by the conversation summary
SUMMARY_WINDOW = 10
SUMMARY_MESSAGES = 6


class MemoryState(str, Enum):
    """Lifecycle of a conversation memory."""

    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    SAVING = "saving"
    CLEARED = "cleared"


@dataclass
class AttachResult:
    """Outcome of auto-attaching relevant documents after an exchange."""

    attached: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ConversationMemory:
    """Chat history and attached context for one session.

    The session identifier doubles as the conversation ID. The conversation row
    is created lazily by the first saved exchange.
    """

    def __init__(
        self,
        conversation_id: str,
        storage: MemoryStorage,
        associations: ContextAssociationTable,
        ranker: RelevanceRanker,
        context_enabled: bool = True,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        """Initialize conversation memory.

        Args:
            conversation_id: Session/conversation identifier
            storage: Datastore for conversations and messages
            associations: Conversation/document association table
            ranker: Ranker used to find documents for auto-attachment
            context_enabled: Whether documents are loaded, attached and rendered
            history_limit: Maximum number of recent messages to load
        """
        self.conversation_id = conversation_id
        self.storage = storage
        self.associations = associations
        self.ranker = ranker
        self.context_enabled = context_enabled
        self.history_limit = history_limit
        self.state = MemoryState.UNINITIALIZED

    async def get_conversation(self) -> Conversation | None:
        """The persisted conversation row, or None before the first exchange."""
        return await asyncio.to_thread(self.storage.get_conversation, self.conversation_id)

    async def load_context(self) -> MemoryVariables:
        """Load chronological history and, if enabled, the attached documents.

        Never raises: on any collaborator failure the turn proceeds without
        history or context.

        Returns:
            History and context for the next turn
        """
        try:
            history = await asyncio.to_thread(
                self.storage.load_messages, self.conversation_id, self.history_limit
            )
            context: list[ContextEntry] = []
            if self.context_enabled:
                context = await self.associations.get_context_for_conversation(
                    self.conversation_id
                )
        except Exception:
            logger.exception("Error loading memory for conversation %s", self.conversation_id)
            return MemoryVariables()

        if self.state != MemoryState.SAVING:
            self.state = MemoryState.LOADED
        return MemoryVariables(history=history, context=context)

    async def save_exchange(
        self,
        user_input: str,
        assistant_output: str,
        context_used: list[str] | None = None,
        tokens_used: int | None = None,
    ) -> None:
        """Persist one user/assistant exchange.

        Ensures the conversation exists, appends the user message then the
        assistant message, derives the title on the first exchange and
        auto-attaches documents relevant to the user input.

        The two messages are separate writes; a failure between them leaves
        the user message without a reply.

        Args:
            user_input: The user's message
            assistant_output: The assistant's reply
            context_used: Optional IDs of the documents used to generate the reply
            tokens_used: Optional token count reported by the model

        Raises:
            StoreError: If the conversation or messages cannot be written
        """
        self.state = MemoryState.SAVING
        try:
            await asyncio.to_thread(self.storage.create_conversation, self.conversation_id)

            await asyncio.to_thread(
                self.storage.save_message,
                MessageRecord(
                    conversation_id=self.conversation_id, role="user", content=user_input
                ),
            )
            await asyncio.to_thread(
                self.storage.save_message,
                MessageRecord(
                    conversation_id=self.conversation_id,
                    role="assistant",
                    content=assistant_output,
                    context_used=context_used,
                    tokens_used=tokens_used,
                ),
            )

            title = derive_title(user_input)
            if title:
                changed = await asyncio.to_thread(
                    self.storage.set_title_if_sentinel, self.conversation_id, title
                )
                if changed:
                    logger.info("Titled conversation %s: %r", self.conversation_id, title)

            if self.context_enabled:
                result = await self._attach_relevant_context(user_input)
                if not result.ok:
                    logger.warning(
                        "Auto-attach failed for conversation %s: %s",
                        self.conversation_id,
                        result.error,
                    )
        finally:
            self.state = MemoryState.LOADED

    async def _attach_relevant_context(self, user_input: str) -> AttachResult:
        """Attach the documents most relevant to the latest user input.

        Uses plain ranking, not conversation boosting, so each turn can surface
        new documents.
        """
        result = AttachResult()
        try:
            ranked = await self.ranker.rank(user_input, AUTO_ATTACH_LIMIT)
            for item in ranked:
                score = item.rank or MISSING_RANK_SCORE
                await self.associations.add_context(
                    self.conversation_id, item.document.id, score
                )
                result.attached.append(item.document.id)
        except Exception as e:
            result.error = str(e) or type(e).__name__
        return result

    async def build_context_prompt(self) -> str:
        """Render the top attached documents as a context block for the prompt.

        Returns:
            The context block, or an empty string when context is disabled,
            nothing is attached, or the lookup fails
        """
        if not self.context_enabled:
            return ""

        try:
            entries = await self.associations.get_context_for_conversation(self.conversation_id)
        except Exception:
            logger.exception("Error getting context prompt for %s", self.conversation_id)
            return ""

        if not entries:
            return ""

        context_text = CONTEXT_SEPARATOR.join(
            f"Title: {entry.document.title}\nContent: {entry.document.content}"
            for entry in entries[:PROMPT_CONTEXT_LIMIT]
        )
        return f"\nContext Information:\n{context_text}\n\n{CONTEXT_INSTRUCTION}\n"

    async def get_conversation_summary(self) -> str:
        """Short digest of the most recent messages, one line per message."""
        try:
            messages = await asyncio.to_thread(
                self.storage.load_messages, self.conversation_id, SUMMARY_WINDOW
            )
        except Exception:
            logger.exception("Error creating summary for %s", self.conversation_id)
            return ""

        return "\n".join(
            f"{message.role}: {preview(message.content)}"
            for message in messages[-SUMMARY_MESSAGES:]
        )

    async def clear(self) -> None:
        """Delete messages and attachments, reset the title, keep the conversation row.

        Raises:
            StoreError: If the datastore fails
        """
        conversation = await self.get_conversation()
        if conversation is not None:
            messages = await asyncio.to_thread(self.storage.clear_messages, self.conversation_id)
            documents = await self.associations.clear_conversation(self.conversation_id)
            await asyncio.to_thread(
                self.storage.update_conversation,
                self.conversation_id,
                title=SENTINEL_TITLE,
                context_summary=None,
            )
            logger.info(
                "Cleared conversation %s (%d messages, %d documents)",
                self.conversation_id,
                messages,
                documents,
            )
        self.state = MemoryState.CLEARED
