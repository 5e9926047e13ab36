"""UI components for the CLI (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Tables and panels are reused by many commands.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text


def print_banner(console: Console) -> None:
    """Print the welcome banner (table output only)."""

    title = Text("tdcli", style="bold cyan")
    subtitle = Text("Treasure Data from the command line", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def build_records_table(
    records: Sequence[Mapping[str, Any]],
    columns: Sequence[str],
    *,
    title: str | None = None,
) -> Table:
    """One row per record, one column per key in `columns`."""

    table = Table(title=title, show_lines=False)
    for i, name in enumerate(columns):
        table.add_column(name, style="cyan" if i == 0 else "white", no_wrap=i == 0)
    for record in records:
        table.add_row(*(cell(record.get(name)) for name in columns))
    return table


def build_kv_table(record: Mapping[str, Any], *, title: str | None = None) -> Table:
    """Two-column view of a single record."""

    table = Table(title=title, show_header=False)
    table.add_column("Field", style="bright_green", no_wrap=True)
    table.add_column("Value", style="white")
    for key, value in record.items():
        table.add_row(key, cell(value))
    return table


def build_checks_table(title: str) -> Table:
    table = Table(title=title)
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")
    return table


def status_label(ok: bool | None) -> str:
    if ok is None:
        return "[yellow]OPTIONAL[/yellow]"
    return "[green]OK[/green]" if ok else "[red]FAIL[/red]"
