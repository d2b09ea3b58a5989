"""Factory function for creating LLM clients from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ragmem.llm.ollama import OllamaClient

if TYPE_CHECKING:
    from ragmem.config.schema import RagmemConfig


def create_llm_client(config: RagmemConfig) -> OllamaClient:
    """Create the language model client described by the configuration.

    Args:
        config: ragmem configuration.

    Returns:
        An Ollama client using the configured model and system prompt.
    """
    return OllamaClient(
        model=config.model.name,
        base_url=config.ollama.host.rstrip("/") + "/v1",
        timeout=config.ollama.timeout,
        temperature=config.model.temperature,
        system_prompt=config.chat.system_prompt,
    )
