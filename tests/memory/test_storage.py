"""Tests for the SQLite storage backend."""

import sqlite3

import pytest

from ragmem.memory.errors import NotFoundError, StoreError
from ragmem.memory.schema import SENTINEL_TITLE, MessageRecord


def test_initialize_db(storage):
    """Test database initialization creates the file and tables."""
    assert storage.db_path.exists()

    with sqlite3.connect(storage.db_path) as conn:
        tables = {
            row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    assert {"conversations", "messages", "documents", "conversation_context"} <= tables
    assert "documents_fts" in tables


def test_initialize_twice_is_safe(storage):
    """Test reopening an existing database keeps its rows."""
    storage.create_conversation("conv-1")

    reopened = type(storage)(storage.db_path)
    assert reopened.get_conversation("conv-1") is not None


def test_create_conversation_defaults(storage):
    """Test a new conversation gets the placeholder title."""
    conversation, created = storage.create_conversation("conv-1", user_id="alice")

    assert created is True
    assert conversation.id == "conv-1"
    assert conversation.user_id == "alice"
    assert conversation.title == SENTINEL_TITLE
    assert conversation.has_sentinel_title
    assert conversation.context_summary is None


def test_create_conversation_is_idempotent(storage):
    """Test creating an existing conversation returns it unchanged."""
    storage.create_conversation("conv-1")
    storage.update_conversation("conv-1", title="Trip planning")

    conversation, created = storage.create_conversation("conv-1")

    assert created is False
    assert conversation.title == "Trip planning"


def test_get_nonexistent_conversation(storage):
    """Test getting a conversation that doesn't exist."""
    assert storage.get_conversation("nonexistent") is None


def test_update_conversation(storage):
    """Test updating title and summary bumps updated_at."""
    original, _ = storage.create_conversation("conv-1")

    updated = storage.update_conversation("conv-1", title="Hello", context_summary="summary")

    assert updated.title == "Hello"
    assert updated.context_summary == "summary"
    assert updated.updated_at >= original.updated_at


def test_update_conversation_rejects_unknown_fields(storage):
    storage.create_conversation("conv-1")

    with pytest.raises(ValueError):
        storage.update_conversation("conv-1", id="other")


def test_update_missing_conversation(storage):
    with pytest.raises(NotFoundError):
        storage.update_conversation("missing", title="x")


def test_set_title_if_sentinel_is_one_shot(storage):
    """Test the title only changes while it is still the placeholder."""
    storage.create_conversation("conv-1")

    assert storage.set_title_if_sentinel("conv-1", "First") is True
    assert storage.set_title_if_sentinel("conv-1", "Second") is False
    assert storage.get_conversation("conv-1").title == "First"


def test_save_and_load_messages(storage):
    """Test saving and loading messages in chronological order."""
    storage.create_conversation("conv-1")

    id1 = storage.save_message(
        MessageRecord(conversation_id="conv-1", role="user", content="Hello")
    )
    id2 = storage.save_message(
        MessageRecord(
            conversation_id="conv-1",
            role="assistant",
            content="Hi there!",
            context_used=["doc-1"],
            tokens_used=12,
        )
    )

    assert id1 > 0
    assert id2 > id1

    messages = storage.load_messages("conv-1")
    assert [m.role for m in messages] == ["user", "assistant"]
    assert messages[0].content == "Hello"
    assert messages[1].context_used == ["doc-1"]
    assert messages[1].tokens_used == 12


def test_save_message_requires_conversation(storage):
    """Test messages cannot be appended to a missing conversation."""
    with pytest.raises(NotFoundError):
        storage.save_message(MessageRecord(conversation_id="missing", role="user", content="Hi"))


def test_load_messages_with_limit_keeps_most_recent(storage):
    """Test a limit returns the newest messages, still oldest first."""
    storage.create_conversation("conv-1")
    for i in range(10):
        storage.save_message(
            MessageRecord(conversation_id="conv-1", role="user", content=f"Message {i}")
        )

    messages = storage.load_messages("conv-1", limit=3)

    assert [m.content for m in messages] == ["Message 7", "Message 8", "Message 9"]


def test_messages_with_equal_timestamps_order_by_id(storage):
    """Test (created_at, id) ordering when timestamps collide."""
    storage.create_conversation("conv-1")
    first = MessageRecord(conversation_id="conv-1", role="user", content="first")
    second = MessageRecord(
        conversation_id="conv-1", role="assistant", content="second", created_at=first.created_at
    )
    storage.save_message(first)
    storage.save_message(second)

    assert [m.content for m in storage.load_messages("conv-1")] == ["first", "second"]


def test_get_message_count_and_clear(storage):
    """Test counting and clearing messages keeps the conversation."""
    storage.create_conversation("conv-1")
    for i in range(5):
        storage.save_message(
            MessageRecord(conversation_id="conv-1", role="user", content=f"Message {i}")
        )

    assert storage.get_message_count("conv-1") == 5
    assert storage.clear_messages("conv-1") == 5
    assert storage.get_message_count("conv-1") == 0
    assert storage.get_conversation("conv-1") is not None


def test_list_conversations(storage):
    """Test listing conversations with a limit."""
    for i in range(5):
        storage.create_conversation(f"conv-{i}")

    assert len(storage.list_conversations(limit=10)) == 5
    assert len(storage.list_conversations(limit=3)) == 3


def test_insert_and_get_document(storage):
    """Test documents round-trip with their metadata."""
    document = storage.insert_document(
        "Refund policy", "Refunds within 14 days.", {"type": "policy", "nested": {"a": 1}}
    )

    loaded = storage.get_document(document.id)
    assert loaded is not None
    assert loaded.title == "Refund policy"
    assert loaded.metadata == {"type": "policy", "nested": {"a": 1}}


def test_metadata_is_stored_with_sorted_keys(storage):
    document = storage.insert_document("T", "C", {"b": 1, "a": 2})

    with sqlite3.connect(storage.db_path) as conn:
        raw = conn.execute(
            "SELECT metadata FROM documents WHERE id = ?", (document.id,)
        ).fetchone()[0]
    assert raw == '{"a": 2, "b": 1}'


def test_list_documents_newest_first(storage):
    first = storage.insert_document("First", "one", {})
    second = storage.insert_document("Second", "two", {})

    assert [d.id for d in storage.list_documents()] == [second.id, first.id]
    assert len(storage.list_documents(limit=1)) == 1


def test_search_documents_ranks_in_unit_interval(storage, sample_docs):
    """Test FTS ranks are positive, bounded and sorted."""
    results = storage.search_documents(["technical", "issue"], limit=10)

    assert results
    assert results[0][0].id == sample_docs["Technical Support"].id
    ranks = [rank for _, rank in results]
    assert all(0 < rank < 1 for rank in ranks)
    assert ranks == sorted(ranks, reverse=True)


def test_search_documents_quotes_terms(storage, sample_docs):
    assert storage.search_documents(['tech"nical', "OR"], limit=5) == []


def test_search_documents_failure_raises_store_error(storage):
    with storage._connect() as conn:
        conn.execute("DROP TABLE documents_fts")

    with pytest.raises(StoreError):
        storage.search_documents(["technical"], limit=5)


def test_delete_document_removes_index_and_context(storage, sample_docs):
    """Test deleting a document also removes its search entry and associations."""
    document = sample_docs["Technical Support"]
    storage.create_conversation("conv-1")
    storage.upsert_context("conv-1", document.id, 0.7)

    assert storage.delete_document(document.id) is True
    assert storage.delete_document(document.id) is False
    assert storage.get_document(document.id) is None
    assert storage.search_documents(["technical"], limit=5) == []
    assert storage.get_context("conv-1") == []


def test_upsert_context_replaces_score(storage, sample_docs):
    """Test re-attaching overwrites the score and timestamp."""
    document = sample_docs["Company Information"]
    storage.create_conversation("conv-1")

    first = storage.upsert_context("conv-1", document.id, 0.2)
    second = storage.upsert_context("conv-1", document.id, 0.9)

    entries = storage.get_context("conv-1")
    assert len(entries) == 1
    assert entries[0].relevance_score == 0.9
    assert entries[0].added_at == second.added_at
    assert second.added_at >= first.added_at


def test_upsert_context_requires_rows(storage, sample_docs):
    storage.create_conversation("conv-1")

    with pytest.raises(NotFoundError):
        storage.upsert_context("missing", sample_docs["Technical Support"].id, 0.5)
    with pytest.raises(NotFoundError):
        storage.upsert_context("conv-1", "missing-doc", 0.5)


def test_delete_and_clear_context(storage, sample_docs):
    storage.create_conversation("conv-1")
    for document in sample_docs.values():
        storage.upsert_context("conv-1", document.id, 0.5)

    some_id = sample_docs["AI Assistant Guidelines"].id
    assert storage.delete_context("conv-1", some_id) is True
    assert storage.delete_context("conv-1", some_id) is False
    assert some_id not in storage.context_document_ids("conv-1")
    assert storage.clear_context("conv-1") == 2
    assert storage.context_document_ids("conv-1") == set()
