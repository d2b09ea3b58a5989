"""Shared fixtures for memory tests."""

import pytest

from ragmem.memory.associations import ContextAssociationTable
from ragmem.memory.documents import DocumentStore
from ragmem.memory.ranking import RelevanceRanker
from ragmem.memory.schema import Document
from ragmem.memory.service import SAMPLE_DOCUMENTS
from ragmem.memory.storage import MemoryStorage


@pytest.fixture
def storage(tmp_path):
    """Create a temporary storage instance for testing."""
    return MemoryStorage(tmp_path / "test_memory.db")


@pytest.fixture
def documents(storage):
    return DocumentStore(storage)


@pytest.fixture
def associations(storage):
    return ContextAssociationTable(storage)


@pytest.fixture
def ranker(documents, associations):
    return RelevanceRanker(documents, associations)


@pytest.fixture
def sample_docs(storage) -> dict[str, Document]:
    """Insert the sample documents, keyed by title."""
    return {
        sample["title"]: storage.insert_document(
            sample["title"], sample["content"], sample["metadata"]
        )
        for sample in SAMPLE_DOCUMENTS
    }

