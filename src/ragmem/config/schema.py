"""Pydantic models for ragmem.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class ModelConfig(BaseModel):
    """LLM model configuration."""

    name: str = Field(default="qwen2.5:7b", description="Ollama model name")
    temperature: float = Field(default=0.7, description="Sampling temperature", ge=0.0, le=2.0)


class OllamaConfig(BaseModel):
    """Ollama server configuration."""

    host: str = Field(default="http://localhost:11434", description="Ollama server URL")
    timeout: int = Field(default=120, description="Request timeout in seconds", ge=1)


class MemoryConfig(BaseModel):
    """Conversation memory and context document configuration."""

    storage_path: str = Field(
        default="~/.ragmem/memory.db",
        description="Path to SQLite database for documents and conversations",
    )
    context_enabled: bool = Field(
        default=True,
        description="Load, auto-attach and render context documents for conversations",
    )
    history_limit: int = Field(
        default=50,
        description="Maximum number of recent messages loaded per turn",
        ge=1,
        le=1000,
    )
    default_attach_score: float = Field(
        default=0.8,
        description="Relevance score for documents attached manually without a score",
        ge=0.0,
    )


class ChatConfig(BaseModel):
    """Chat turn configuration."""

    system_prompt: str = Field(
        default=(
            "You are a helpful AI assistant. Answer the user's questions using the "
            "conversation so far and any context information provided."
        ),
        description="System prompt sent with every turn",
    )
    history_turns: int = Field(
        default=10,
        description="Number of recent user/assistant exchanges included in the prompt",
        ge=0,
        le=100,
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Root log level for the CLI",
    )


class RagmemConfig(BaseModel):
    """Root configuration schema for ragmem."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
