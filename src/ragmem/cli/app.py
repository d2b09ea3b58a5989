"""Main CLI application using Typer."""

import sys

import typer
from rich.console import Console

from ragmem import __version__

# Create Typer app
app = typer.Typer(
    name="ragmem",
    help="ragmem - Retrieval-augmented conversation memory",
    no_args_is_help=True,
)

console = Console()

CONFIG_OPTION_HELP = "Path to config file (default: ~/.ragmem/ragmem.yaml)"


@app.command()
def version():
    """Show ragmem version."""
    console.print(f"ragmem version {__version__}")


@app.command()
def chat(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
    session_id: str = typer.Option(None, "--session", "-s", help="Session ID to resume"),
):
    """Start interactive chat session."""
    from ragmem.cli.chat import chat_command

    chat_command(config_path=config_path, session_id=session_id)


@app.command()
def history(
    session_id: str = typer.Argument(..., help="Session ID"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Show the message history of a session."""
    from ragmem.cli.context_cmd import show_history

    show_history(session_id, config_path=config_path)


@app.command()
def clear(
    session_id: str = typer.Argument(..., help="Session ID"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Clear a session's messages and attached context."""
    from ragmem.cli.context_cmd import clear_session

    clear_session(session_id, config_path=config_path)


@app.command()
def sessions(
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum number of sessions"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """List conversations by most recent activity."""
    from ragmem.cli.context_cmd import list_sessions

    list_sessions(limit=limit, config_path=config_path)


# Document commands
docs_app = typer.Typer(help="Manage context documents")
app.add_typer(docs_app, name="docs")


@docs_app.command("add")
def docs_add(
    title: str = typer.Argument(..., help="Document title"),
    content: str = typer.Argument(..., help="Document content"),
    meta: list[str] = typer.Option(None, "--meta", "-m", help="Metadata as key=value"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Add a context document."""
    from ragmem.cli.context_cmd import add_document

    add_document(title, content, meta=meta, config_path=config_path)


@docs_app.command("list")
def docs_list(
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum number of documents"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """List context documents, newest first."""
    from ragmem.cli.context_cmd import list_documents

    list_documents(limit=limit, config_path=config_path)


@docs_app.command("search")
def docs_search(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum number of results"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Rank context documents against a query."""
    from ragmem.cli.context_cmd import search_documents

    search_documents(query, limit=limit, config_path=config_path)


@docs_app.command("delete")
def docs_delete(
    document_id: str = typer.Argument(..., help="Document ID"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Delete a context document."""
    from ragmem.cli.context_cmd import delete_document

    delete_document(document_id, config_path=config_path)


@docs_app.command("seed")
def docs_seed(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Insert the sample context documents."""
    from ragmem.cli.context_cmd import seed_documents

    seed_documents(config_path=config_path)


# Conversation context commands
context_app = typer.Typer(help="Attach and detach context documents for a session")
app.add_typer(context_app, name="context")


@context_app.command("attach")
def context_attach(
    session_id: str = typer.Argument(..., help="Session ID"),
    document_ids: list[str] = typer.Argument(..., help="Document IDs"),
    score: float = typer.Option(None, "--score", help="Relevance score (default from config)"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Attach documents to a session."""
    from ragmem.cli.context_cmd import attach_context

    attach_context(session_id, document_ids, score=score, config_path=config_path)


@context_app.command("detach")
def context_detach(
    session_id: str = typer.Argument(..., help="Session ID"),
    document_id: str = typer.Argument(..., help="Document ID"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Detach a document from a session."""
    from ragmem.cli.context_cmd import detach_context

    detach_context(session_id, document_id, config_path=config_path)


@context_app.command("list")
def context_list(
    session_id: str = typer.Argument(..., help="Session ID"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Show the documents attached to a session."""
    from ragmem.cli.context_cmd import list_context

    list_context(session_id, config_path=config_path)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
