"""Interactive chat REPL command."""

from __future__ import annotations

import asyncio
import logging
import uuid

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from ragmem.cli.context_cmd import load_service
from ragmem.config.schema import RagmemConfig
from ragmem.llm.factory import create_llm_client
from ragmem.memory.service import ContextService
from ragmem.memory.turn import ChatTurn

console = Console()
logger = logging.getLogger(__name__)


def chat_command(config_path: str | None = None, session_id: str | None = None) -> None:
    """Start interactive chat session.

    Args:
        config_path: Optional path to config file
        session_id: Session to resume; a new one is generated if omitted
    """
    try:
        config, service = load_service(config_path)
    except Exception as e:
        console.print(f"[red]Failed to load config: {e}[/red]")
        return

    session_id = session_id or str(uuid.uuid4())

    console.print(
        Panel.fit(
            f"[bold blue]ragmem chat[/bold blue]\n"
            f"Model: {config.model.name}\n"
            f"Session: {session_id}\n"
            f"Type /help for commands, /exit to quit",
            border_style="blue",
        )
    )

    asyncio.run(_async_chat(config, service, session_id))


async def _async_chat(config: RagmemConfig, service: ContextService, session_id: str) -> None:
    """Async chat loop.

    Args:
        config: ragmem configuration
        service: Context service holding the session memory
        session_id: Active session identifier
    """
    llm = create_llm_client(config)
    turn = ChatTurn(service, llm, history_turns=config.chat.history_turns)

    while True:
        try:
            user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

            if not user_input.strip():
                continue

            if user_input.startswith("/"):
                if await _handle_slash_command(user_input, service, session_id):
                    break
                continue

            with console.status("[bold green]Thinking...[/bold green]", spinner="dots"):
                result = await turn.run(session_id, user_input)

            console.print("\n[bold green]assistant[/bold green]")
            console.print(Markdown(result.response))
            if result.context_used:
                console.print(f"[dim]({len(result.document_ids)} context document(s) used)[/dim]")

        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted[/yellow]")
            if Confirm.ask("Exit chat?", default=False):
                break
        except EOFError:
            break
        except Exception as e:
            logger.debug("Chat turn failed", exc_info=True)
            console.print(f"\n[red]Error: {e}[/red]")

    console.print("\n[cyan]Goodbye![/cyan]")


async def _handle_slash_command(command: str, service: ContextService, session_id: str) -> bool:
    """Handle slash commands.

    Args:
        command: Command string starting with /
        service: Context service
        session_id: Active session identifier

    Returns:
        True if should exit chat loop
    """
    cmd = command.lower().strip()

    if cmd in ("/exit", "/quit", "/q"):
        return True

    elif cmd == "/help":
        console.print("\n[bold]Available commands:[/bold]")
        console.print("  /help      - Show this help")
        console.print("  /exit      - Exit chat")
        console.print("  /context   - Show active context documents")
        console.print("  /summary   - Summarize recent messages")
        console.print("  /clear     - Clear this conversation's history and context")

    elif cmd == "/context":
        console.print()
        console.print(await service.generate_context_summary(session_id))

    elif cmd == "/summary":
        summary = await service.get_conversation_summary(session_id)
        console.print()
        console.print(summary or "[dim]No messages yet[/dim]")

    elif cmd == "/clear":
        result = await service.clear(session_id)
        if result.success:
            console.print("[green]Conversation cleared[/green]")
        else:
            console.print(f"[red]Failed to clear conversation: {result.error}[/red]")

    else:
        console.print(f"[red]Unknown command: {command}[/red]")
        console.print("Type /help for available commands")

    return False
