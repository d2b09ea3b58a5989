"""Language model protocol and data types."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class Message:
    """A chat message sent to the model."""

    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class CompletionResponse:
    """Response from LLM completion."""

    content: str
    finish_reason: str = "stop"


class LanguageModel(Protocol):
    """Opaque text generation capability used by the chat turn."""

    async def generate(self, prompt: str) -> str:
        """Generate a response for a fully assembled prompt.

        Args:
            prompt: Prompt text including context and history

        Returns:
            Response text
        """
        ...
