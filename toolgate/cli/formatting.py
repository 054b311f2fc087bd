"""Rich table formatting helpers for the toolgate CLI."""

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
):
    """Print a formatted table."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        border_style="dim",
    )
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    console.print(table)


def enabled_mark(enabled: bool) -> str:
    return "[green]enabled[/green]" if enabled else "[dim]disabled[/dim]"
