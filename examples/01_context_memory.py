#!/usr/bin/env python3
"""Example: Context Memory

Demonstrates conversation memory with retrieved context documents.

This example shows:
- Seeding a document corpus and ranking it against a query
- Running chat turns that auto-attach relevant documents
- Boosting documents already attached to a conversation
- Clearing a conversation while keeping its row

Usage:
    python examples/01_context_memory.py
"""

import asyncio
import tempfile
from pathlib import Path

from ragmem.llm.ollama import OllamaClient
from ragmem.memory.service import ContextService
from ragmem.memory.turn import ChatTurn


async def main():
    """Run context memory example."""
    # Create a temporary memory database for demo
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "demo_memory.db"

        print("=" * 60)
        print("ragmem Context Memory Example")
        print("=" * 60)
        print()

        service = ContextService(storage_path=db_path)
        inserted = await service.seed_sample_documents()
        print(f"Seeded {inserted} sample documents")
        print()

        # Plain ranking
        print("Search: 'technical issue'")
        print("-" * 60)
        for item in await service.search_documents("technical issue"):
            print(f"  {item.rank:.4f}  {item.document.title}")
        print()

        llm = OllamaClient(
            model="qwen2.5:7b",
            system_prompt="You are a helpful support assistant.",
        )
        turn = ChatTurn(service, llm)
        session_id = "demo-session"

        # First turn: no context yet, relevant documents are attached afterwards
        print("User: I have a technical issue with the app")
        result = await turn.run(session_id, "I have a technical issue with the app")
        print(f"Assistant: {result.response}")
        print()

        print(await service.generate_context_summary(session_id))
        print()

        # Second turn: the attached document is rendered into the prompt
        print("User: It crashes when I open settings")
        result = await turn.run(session_id, "It crashes when I open settings")
        print(f"Assistant: {result.response}")
        print(f"(context documents used: {len(result.document_ids)})")
        print()

        # Conversation-aware ranking
        print("Relevant context for 'technical help' in this session:")
        for item in await service.find_relevant_context("technical help", session_id):
            marker = " (boosted)" if item.boosted else ""
            print(f"  {item.rank:.4f}  {item.document.title}{marker}")
        print()

        conversation = await service.get_conversation(session_id)
        print(f"Conversation title: {conversation.title}")
        print(await service.get_conversation_summary(session_id))
        print()

        # Clear keeps the conversation row but drops messages and context
        print("Clearing conversation...")
        await service.clear(session_id)
        conversation = await service.get_conversation(session_id)
        history = await service.get_history(session_id)
        print(f"Title after clear: {conversation.title}")
        print(f"Messages after clear: {len(history)}")

    print("=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
