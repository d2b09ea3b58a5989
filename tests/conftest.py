"""Pytest configuration and shared fixtures."""

import pytest

from ragmem.config.schema import RagmemConfig


@pytest.fixture
def default_config() -> RagmemConfig:
    """Provide a default configuration for tests."""
    return RagmemConfig()


@pytest.fixture
def custom_config(tmp_path) -> RagmemConfig:
    """Provide a custom configuration backed by a temporary database."""
    config = RagmemConfig()
    config.model.name = "llama3:8b"
    config.memory.storage_path = str(tmp_path / "memory.db")
    config.chat.history_turns = 3
    return config
