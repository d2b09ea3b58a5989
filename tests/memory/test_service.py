"""Tests for the context service facade."""

from unittest.mock import AsyncMock, patch

import pytest

from ragmem.config.schema import MemoryConfig
from ragmem.memory.errors import RankingUnavailable, StoreError
from ragmem.memory.schema import SENTINEL_TITLE, Document
from ragmem.memory.service import SAMPLE_DOCUMENTS, ContextService


@pytest.fixture
def service(tmp_path):
    return ContextService(tmp_path / "service.db")


@pytest.fixture
def seeded(service):
    """Insert the sample documents and return them keyed by title."""
    return {
        sample["title"]: service.storage.insert_document(
            sample["title"], sample["content"], sample["metadata"]
        )
        for sample in SAMPLE_DOCUMENTS
    }


def test_from_config(tmp_path):
    config = MemoryConfig(
        storage_path=str(tmp_path / "configured.db"),
        context_enabled=False,
        history_limit=7,
        default_attach_score=0.6,
    )

    service = ContextService.from_config(config)

    assert service.storage.db_path == tmp_path / "configured.db"
    assert service.default_attach_score == 0.6
    memory = service.sessions.get_or_create("s")
    assert memory.context_enabled is False
    assert memory.history_limit == 7


@pytest.mark.asyncio
async def test_add_document(service):
    result = await service.add_document(
        "Refund policy", "Refunds within 14 days.", {"type": "policy"}
    )

    assert result.success is True
    assert result.message == "Context document added successfully"
    assert isinstance(result.data, Document)
    assert [d.id for d in await service.list_documents()] == [result.data.id]


@pytest.mark.asyncio
async def test_add_document_validation_failure(service):
    result = await service.add_document("", "content")

    assert result.success is False
    assert "title" in result.error
    assert await service.list_documents() == []


@pytest.mark.asyncio
async def test_seed_sample_documents_once(service):
    assert await service.seed_sample_documents() == 3
    assert await service.seed_sample_documents() == 0
    assert len(await service.list_documents()) == 3


@pytest.mark.asyncio
async def test_search_documents(service, seeded):
    results = await service.search_documents("technical issue", limit=5)

    assert results[0].document.title == "Technical Support"


@pytest.mark.asyncio
async def test_search_documents_degrades_to_empty(service, seeded):
    with patch.object(service.ranker, "rank", AsyncMock(side_effect=RankingUnavailable("down"))):
        assert await service.search_documents("technical", limit=5) == []


@pytest.mark.asyncio
async def test_delete_document(service, seeded):
    document = seeded["Technical Support"]
    await service.attach_context("session-1", [document.id])

    result = await service.delete_document(document.id)
    assert result.success is True
    assert result.message == "Context document deleted successfully"
    assert result.data is True
    assert await service.list_active_context("session-1") == []

    missing = await service.delete_document(document.id)
    assert missing.success is True
    assert missing.message == "Document not found"
    assert missing.data is False


@pytest.mark.asyncio
async def test_attach_context_creates_conversation(service, seeded):
    """Test attaching to an unknown session creates its conversation."""
    ids = [seeded["Technical Support"].id, seeded["Company Information"].id]

    result = await service.attach_context("session-1", ids)

    assert result.success is True
    assert result.message == "Added 2 context document(s) to conversation"
    conversation = await service.get_conversation("session-1")
    assert conversation.title == SENTINEL_TITLE
    entries = await service.list_active_context("session-1")
    assert {entry.document.id for entry in entries} == set(ids)
    assert all(entry.relevance_score == 0.8 for entry in entries)


@pytest.mark.asyncio
async def test_attach_context_custom_score(service, seeded):
    document = seeded["Technical Support"]

    await service.attach_context("session-1", [document.id], relevance_score=0.25)

    entries = await service.list_active_context("session-1")
    assert entries[0].relevance_score == 0.25


@pytest.mark.asyncio
async def test_attach_context_failures(service, seeded):
    unknown = await service.attach_context("session-1", ["no-such-doc"])
    negative = await service.attach_context("session-1", [seeded["Technical Support"].id], -1.0)

    assert unknown.success is False
    assert "not found" in unknown.error
    assert negative.success is False


@pytest.mark.asyncio
async def test_detach_context_is_idempotent(service, seeded):
    document = seeded["Technical Support"]
    await service.attach_context("session-1", [document.id])

    first = await service.detach_context("session-1", document.id)
    second = await service.detach_context("session-1", document.id)

    assert first.success and second.success
    assert first.message == "Context removed from conversation"
    assert (first.data, second.data) == (True, False)


@pytest.mark.asyncio
async def test_support_session_scenario(service, seeded):
    """Test a support question attaches the support document and renders it."""
    session = "support-session"
    support = seeded["Technical Support"]

    assert await service.build_context_prompt(session) == ""

    await service.save_exchange(session, "I have a technical issue", "Can you describe it?")

    context = await service.load_context(session)
    assert support.id in [entry.document.id for entry in context.context]
    prompt = await service.build_context_prompt(session)
    assert "Title: Technical Support" in prompt


@pytest.mark.asyncio
async def test_find_relevant_context_boosts_attached(service, seeded):
    guidelines = seeded["AI Assistant Guidelines"]
    await service.attach_context("session-1", [guidelines.id])

    plain = await service.find_relevant_context("guidelines")
    boosted = await service.find_relevant_context("guidelines", session_id="session-1")

    assert boosted[0].document.id == guidelines.id
    assert boosted[0].rank == pytest.approx(plain[0].rank * 1.5)
    assert not plain[0].boosted


@pytest.mark.asyncio
async def test_find_relevant_context_degrades(service, seeded):
    with patch.object(
        service.ranker, "rank_for_conversation", AsyncMock(side_effect=RankingUnavailable("x"))
    ):
        assert await service.find_relevant_context("guidelines", session_id="s") == []


@pytest.mark.asyncio
async def test_generate_context_summary(service, seeded):
    assert (
        await service.generate_context_summary("session-1")
        == "No context documents attached to this conversation."
    )

    support = seeded["Technical Support"]
    await service.attach_context("session-1", [support.id])

    summary = await service.generate_context_summary("session-1")
    assert summary == (
        "Active Context (1 documents):\n"
        f"• Technical Support: {support.content[:100]}..."
    )


@pytest.mark.asyncio
async def test_clear_evicts_and_resets(service, seeded):
    session = "session-1"
    await service.save_exchange(session, "I have a technical issue", "ok")
    assert session in service.sessions

    result = await service.clear(session)

    assert result.success is True
    assert result.message == "Conversation cleared"
    assert session not in service.sessions
    variables = await service.load_context(session)
    assert variables.history == []
    assert variables.context == []
    conversation = await service.get_conversation(session)
    assert conversation.title == SENTINEL_TITLE


@pytest.mark.asyncio
async def test_clear_failure_still_evicts(service):
    session = "session-1"
    await service.save_exchange(session, "Hello", "Hi")

    with patch.object(service.storage, "clear_messages", side_effect=StoreError("locked")):
        result = await service.clear(session)

    assert result.success is False
    assert result.error == "locked"
    assert session not in service.sessions


@pytest.mark.asyncio
async def test_history_and_listing(service):
    await service.save_exchange("a", "Hello", "Hi")
    await service.save_exchange("b", "Bonjour", "Salut")

    history = await service.get_history("a")
    assert [m.content for m in history] == ["Hello", "Hi"]
    assert await service.get_history("missing") == []
    assert {c.id for c in await service.list_conversations()} == {"a", "b"}
    assert len(await service.list_conversations(limit=1)) == 1


@pytest.mark.asyncio
async def test_conversation_summary(service):
    await service.save_exchange("a", "Hello", "Hi")

    assert await service.get_conversation_summary("a") == "user: Hello...\nassistant: Hi..."


@pytest.mark.asyncio
async def test_save_exchange_records_token_usage(service):
    await service.save_exchange("a", "Hello", "Hi", tokens_used=42)

    history = await service.get_history("a")
    assert [m.tokens_used for m in history] == [None, 42]
