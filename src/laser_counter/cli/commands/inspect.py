"""Inspect command: show what the parser makes of a trace file."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from laser_counter.ingestion.parser import TraceParseError, parse_trace

console = Console()


def inspect(
    path: str = typer.Argument(help="Path to a trace file"),
) -> None:
    """Parse a trace file without touching the store."""
    p = Path(path)
    if not p.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    with open(p, "r", encoding="utf-8", errors="replace") as f:
        lines = f.read().splitlines()

    try:
        record = parse_trace(lines)
    except TraceParseError as e:
        console.print(f"[red]Cannot parse {p.name}: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Trace {p.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Board code", record.board_code or "-")
    table.add_row("Canonical code", record.canonical_board_code or "-")
    table.add_row("Index key", record.index_key or "-")
    table.add_row("Machine", record.machine_id or "-")
    table.add_row("Part code", record.part_code or "-")
    table.add_row("Order number", record.order_number)
    table.add_row("Patterns", str(len(record.pattern_codes)))
    table.add_row("Pattern digest", record.pattern_digest or "-")

    if record.pattern_codes:
        table.add_section()
        for i, code in enumerate(record.pattern_codes, start=1):
            table.add_row(f"  Pattern {i}", code)

    console.print(table)

    if not record.is_valid:
        console.print("[yellow]Record is incomplete and would be skipped by the agent.[/yellow]")
