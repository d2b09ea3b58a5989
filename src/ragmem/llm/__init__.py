"""LLM client implementations."""

from .client import CompletionResponse, LanguageModel, Message
from .ollama import OllamaClient

__all__ = [
    "CompletionResponse",
    "LanguageModel",
    "Message",
    "OllamaClient",
]
