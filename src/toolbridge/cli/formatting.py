"""Rich formatting helpers for the toolbridge CLI.

Provides functions that format SDK data structures for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from toolbridge.mcp.host import CapabilityHost
    from toolbridge.orchestrator.models import StepResult

# Third-party loggers that are too chatty at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore")


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def configure_logging(verbose: bool = False) -> None:
    """Route log records to stderr through Rich.

    WARNING and above by default; DEBUG for toolbridge with ``verbose``.
    """
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


def format_banner(console: Console) -> None:
    """Display the interactive chat greeting."""
    console.print("[bold]toolbridge chat[/bold]")
    console.print("Type 'quit' or 'exit' to end the conversation.")
    console.print("Type 'clear' to clear the conversation history.")
    console.print("=" * 50)


def format_tools(host: CapabilityHost, console: Console) -> None:
    """Display registered capabilities in a table."""
    if len(host) == 0:
        console.print("[dim]No tools registered.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Tool", style="cyan")
    table.add_column("Provider", style="yellow")
    table.add_column("Description")

    for name, entry in host.capabilities.items():
        table.add_row(
            escape(name),
            escape(entry.provider),
            escape(entry.descriptor.description or ""),
        )

    console.print(table)


def format_step(step: StepResult, console: Console) -> None:
    """Display one dispatched tool call."""
    status = "[green]ok[/green]" if step.success else f"[red]failed:[/red] {escape(step.result_error)}"
    console.print(
        f"[dim]  -> {escape(step.tool_call.name)}[/dim] {status}",
        highlight=False,
    )
