"""
Rich-based CLI output.

This is the ONLY place where terminal output happens. main.py decides what
to do; these functions decide how it looks.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from aipim.providers.base import Message, Response

console = Console(legacy_windows=False)


def show_request(provider: str, model: str, message: Message) -> None:
    images = len(message.images)
    suffix = f"  [dim]+{images} image{'s' if images != 1 else ''}[/]" if images else ""
    console.print(f"[dim]→[/] [bold]{provider}[/] [cyan]{model}[/]{suffix}")


def show_response(model: str, response: Response) -> None:
    console.print()
    console.print(
        Panel(
            Text(response.text),
            title=f"[bold green] {model} [/]",
            border_style="green",
            expand=False,
        )
    )


def show_error(exc: Exception) -> None:
    console.print(f"[red]{type(exc).__name__}:[/] {exc}", highlight=False)


def show_models(entries: list[tuple[str, str]]) -> None:
    table = Table(title="Known models", show_lines=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Provider", style="bold")
    table.add_column("Model", style="cyan")
    for i, (provider, model_id) in enumerate(entries, 1):
        table.add_row(str(i), provider, model_id)
    console.print(table)


def show_provider_status(rows: list[tuple[str, bool, bool]]) -> None:
    """rows: (provider, configured, connected)."""
    table = Table(title="Providers")
    table.add_column("Provider", style="bold")
    table.add_column("API key")
    table.add_column("Status")
    for provider, configured, connected in rows:
        key = "[green]set[/]" if configured else "[red]missing[/]"
        if not configured:
            status = "[dim]–[/]"
        elif connected:
            status = "[green]connected[/]"
        else:
            status = "[red]rejected[/]"
        table.add_row(provider, key, status)
    console.print(table)
