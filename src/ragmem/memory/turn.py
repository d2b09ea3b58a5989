"""One conversation turn: load memory, generate, persist."""

import logging
from dataclasses import dataclass, field

from ragmem.llm.client import LanguageModel
from ragmem.memory.conversation import PROMPT_CONTEXT_LIMIT
from ragmem.memory.schema import MessageRecord
from ragmem.memory.service import ContextService

logger = logging.getLogger(__name__)

_ROLE_LABELS = {"user": "User", "assistant": "Assistant", "system": "System"}


@dataclass
class TurnResult:
    """Reply produced by a chat turn."""

    response: str
    session_id: str
    context_used: bool = False
    document_ids: list[str] = field(default_factory=list)


def compose_prompt(context_prompt: str, history: list[MessageRecord], user_input: str) -> str:
    """Assemble the prompt text handed to the language model.

    Args:
        context_prompt: Rendered context block (may be empty)
        history: Prior messages, oldest first
        user_input: The new user message

    Returns:
        Prompt text ending with an open assistant line
    """
    lines = []
    if context_prompt:
        lines.append(context_prompt.strip())
        lines.append("")

    for message in history:
        lines.append(f"{_ROLE_LABELS.get(message.role, message.role)}: {message.content}")

    lines.append(f"User: {user_input}")
    lines.append("Assistant:")
    return "\n".join(lines)


class ChatTurn:
    """Drive a turn through the session's memory and the language model."""

    def __init__(self, service: ContextService, llm: LanguageModel, history_turns: int = 10):
        """Initialize the chat turn runner.

        Args:
            service: Context service owning the session cache
            llm: Language model used to generate replies
            history_turns: Recent exchanges included in the prompt
        """
        self.service = service
        self.llm = llm
        self.history_turns = history_turns

    async def run(self, session_id: str, user_input: str) -> TurnResult:
        """Answer one user message and record the exchange.

        Context retrieval failures degrade to a context-free prompt; generation
        and persistence failures propagate.

        Args:
            session_id: Session identifier
            user_input: The user's message

        Returns:
            The reply and whether attached context was used
        """
        memory = self.service.sessions.get_or_create(session_id)

        variables = await memory.load_context()
        context_prompt = await memory.build_context_prompt()
        document_ids = [entry.document.id for entry in variables.context[:PROMPT_CONTEXT_LIMIT]]

        history = variables.history[-self.history_turns * 2 :] if self.history_turns else []
        prompt = compose_prompt(context_prompt, history, user_input)

        response = await self.llm.generate(prompt)

        await memory.save_exchange(
            user_input,
            response,
            context_used=document_ids if context_prompt else None,
        )
        logger.debug(
            "Completed turn for session %s (%d context documents)", session_id, len(document_ids)
        )

        return TurnResult(
            response=response,
            session_id=session_id,
            context_used=bool(context_prompt),
            document_ids=document_ids if context_prompt else [],
        )
