"""Document, context and session management commands."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.table import Table

from ragmem.config.loader import load_config
from ragmem.config.schema import RagmemConfig
from ragmem.memory.schema import OperationResult
from ragmem.memory.service import ContextService

console = Console()
logger = logging.getLogger(__name__)


def load_service(config_path: str | None = None) -> tuple[RagmemConfig, ContextService]:
    """Load configuration, set up logging and open the context service.

    Args:
        config_path: Optional path to config file

    Returns:
        Tuple of (config, service)
    """
    config = load_config(Path(config_path) if config_path else None)
    logging.basicConfig(
        level=config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config, ContextService.from_config(config.memory)


def parse_metadata(pairs: list[str] | None) -> dict[str, Any]:
    """Parse ``key=value`` pairs; values are read as YAML scalars.

    Raises:
        typer.BadParameter: If a pair has no ``=`` or an empty key
    """
    metadata: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        try:
            value = yaml.safe_load(raw) if raw else ""
        except yaml.YAMLError:
            value = raw
        # Only scalars; dates, nulls and collections stay as text
        if not isinstance(value, (str, int, float, bool)):
            value = raw
        metadata[key.strip()] = value
    return metadata


def _report(result: OperationResult) -> None:
    if result.success:
        console.print(f"[green]✓[/green] {result.message}")
        return
    console.print(f"[red]✗ {result.error}[/red]")
    raise typer.Exit(code=1)


def add_document(
    title: str, content: str, meta: list[str] | None = None, config_path: str | None = None
) -> None:
    metadata = parse_metadata(meta)
    _, service = load_service(config_path)
    result = asyncio.run(service.add_document(title, content, metadata))
    _report(result)
    console.print(f"  ID: {result.data.id}")


def list_documents(limit: int = 50, config_path: str | None = None) -> None:
    _, service = load_service(config_path)
    documents = asyncio.run(service.list_documents(limit))
    if not documents:
        console.print("[yellow]No context documents[/yellow]")
        return

    table = Table(title=f"Context documents ({len(documents)})")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Created")
    table.add_column("Metadata")
    for document in documents:
        table.add_row(
            document.id,
            document.title,
            document.created_at.strftime("%Y-%m-%d %H:%M"),
            ", ".join(f"{k}={v}" for k, v in document.metadata.items()),
        )
    console.print(table)


def search_documents(query: str, limit: int = 10, config_path: str | None = None) -> None:
    _, service = load_service(config_path)
    results = asyncio.run(service.search_documents(query, limit))
    if not results:
        console.print(f"[yellow]No documents match {query!r}[/yellow]")
        return

    table = Table(title=f"Results for {query!r}")
    table.add_column("Rank", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    for item in results:
        table.add_row(f"{item.rank:.4f}", item.document.id, item.document.title)
    console.print(table)


def delete_document(document_id: str, config_path: str | None = None) -> None:
    _, service = load_service(config_path)
    _report(asyncio.run(service.delete_document(document_id)))


def seed_documents(config_path: str | None = None) -> None:
    _, service = load_service(config_path)
    inserted = asyncio.run(service.seed_sample_documents())
    console.print(f"[green]✓[/green] Inserted {inserted} sample document(s)")


def attach_context(
    session_id: str,
    document_ids: list[str],
    score: float | None = None,
    config_path: str | None = None,
) -> None:
    _, service = load_service(config_path)
    _report(asyncio.run(service.attach_context(session_id, document_ids, score)))


def detach_context(session_id: str, document_id: str, config_path: str | None = None) -> None:
    _, service = load_service(config_path)
    _report(asyncio.run(service.detach_context(session_id, document_id)))


def list_context(session_id: str, config_path: str | None = None) -> None:
    _, service = load_service(config_path)
    entries = asyncio.run(service.list_active_context(session_id))
    if not entries:
        console.print(f"[yellow]No context attached to {session_id}[/yellow]")
        return

    table = Table(title=f"Active context for {session_id}")
    table.add_column("Score", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Added")
    for entry in entries:
        table.add_row(
            f"{entry.relevance_score:.4f}",
            entry.document.id,
            entry.document.title,
            entry.added_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


def show_history(session_id: str, config_path: str | None = None) -> None:
    _, service = load_service(config_path)

    async def _load() -> tuple[Any, list[Any]]:
        return await service.get_conversation(session_id), await service.get_history(session_id)

    conversation, messages = asyncio.run(_load())
    if conversation is None:
        console.print(f"[yellow]No conversation {session_id}[/yellow]")
        return

    console.print(f"[bold]{conversation.title}[/bold] [dim]({conversation.id})[/dim]")
    for message in messages:
        color = "cyan" if message.role == "user" else "green"
        console.print(f"[{color}]{message.role}[/{color}]: {message.content}")


def clear_session(session_id: str, config_path: str | None = None) -> None:
    _, service = load_service(config_path)
    _report(asyncio.run(service.clear(session_id)))


def list_sessions(limit: int = 10, config_path: str | None = None) -> None:
    _, service = load_service(config_path)
    conversations = asyncio.run(service.list_conversations(limit))
    if not conversations:
        console.print("[yellow]No conversations[/yellow]")
        return

    table = Table(title="Conversations")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Updated")
    for conversation in conversations:
        table.add_row(
            conversation.id,
            conversation.title,
            conversation.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)
