"""Rich UI helpers for terminal output."""

from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import Branch

console = Console()
err_console = Console(stderr=True)


def info(message: str) -> None:
    """Print an info message."""
    err_console.print(f"[blue]ℹ[/blue] {escape(message)}")


def success(message: str) -> None:
    """Print a success message."""
    err_console.print(f"[green]✓[/green] {escape(message)}")


def warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[red]✗[/red] {escape(message)}", style="red", highlight=False, soft_wrap=True)


def show_prune_table(merged: dict[str, list[str]], *, deleted: Iterable[str] = (), dry_run: bool = False) -> None:
    deleted_set = set(deleted)
    table = Table(show_header=True, header_style="bold")
    table.add_column("Branch", style="cyan")
    table.add_column("Merged into")
    table.add_column("Status", justify="center")
    for name in sorted(merged):
        if dry_run:
            status = "[yellow]would delete[/yellow]"
        elif name in deleted_set:
            status = "[green]deleted[/green]"
        else:
            status = "[dim]kept[/dim]"
        table.add_row(escape(name), ", ".join(merged[name]), status)
    console.print(table)


def show_branches(names: Iterable[str]) -> None:
    for name in names:
        console.print(escape(name), highlight=False)


def describe_branches(branches: Iterable[Branch]) -> str:
    return ", ".join(branch.name for branch in branches)
