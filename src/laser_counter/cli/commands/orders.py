"""Order commands: list counters and apply operator edits."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from laser_counter.agent.config import CounterConfig
from laser_counter.agent.runtime import open_store, operator_service
from laser_counter.agent.service import CounterService, expiry_seconds
from laser_counter.reporting.formatting import format_elapsed, format_timestamp
from laser_counter.storage.ledger import OrderLedgerEntry

console = Console()

T = TypeVar("T")


def _run_with_service(action: Callable[[CounterService], Awaitable[T]]) -> T:
    """Open Redis from the environment config, run ``action``, close."""

    async def _inner() -> T:
        client = await open_store(CounterConfig.from_env())
        try:
            return await action(operator_service(client))
        finally:
            await client.aclose()

    return asyncio.run(_inner())


def _print_entry(entry: Optional[OrderLedgerEntry], order_number: str, fmt: str) -> None:
    if entry is None:
        console.print(f"[yellow]Order {order_number} not found.[/yellow]")
        return
    console.print(
        f"Order [cyan]{entry.order_number}[/cyan]: counter=[green]{entry.counter}[/green] "
        f"part={entry.part_code} updated={format_timestamp(entry.updated_at, fmt)}"
    )


def status() -> None:
    """Show the board counter of every order."""
    config = CounterConfig.from_env()
    try:
        entries = _run_with_service(lambda service: service.list_orders())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not entries:
        console.print("[yellow]No orders recorded yet.[/yellow]")
        return

    fmt = config.datetime_format
    table = Table(title=f"Orders ({len(entries)})")
    table.add_column("Order", style="cyan")
    table.add_column("Part code")
    table.add_column("Boards", justify="right", style="green")
    table.add_column("Created")
    table.add_column("Updated")
    table.add_column("Modified")
    table.add_column("Elapsed", justify="right")

    for e in entries:
        table.add_row(
            e.order_number,
            e.part_code,
            f"{e.counter:,}",
            format_timestamp(e.created_at, fmt),
            format_timestamp(e.updated_at, fmt),
            format_timestamp(e.modified_at, fmt),
            format_elapsed(e.elapsed_ms),
        )

    console.print(table)


def set_counter(
    order_number: str = typer.Argument(help="Manufacturing order number"),
    value: int = typer.Argument(help="New counter value"),
) -> None:
    """Overwrite the board counter of an order."""
    fmt = CounterConfig.from_env().datetime_format
    try:
        entry = _run_with_service(lambda service: service.admin_set_counter(order_number, value))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    _print_entry(entry, order_number, fmt)


def adjust(
    order_number: str = typer.Argument(help="Manufacturing order number"),
    delta: int = typer.Argument(help="Boards to add (negative to subtract)"),
) -> None:
    """Correct the board counter of an order by a signed amount."""
    if delta == 0:
        console.print("[yellow]Nothing to do for a zero adjustment.[/yellow]")
        return
    fmt = CounterConfig.from_env().datetime_format
    try:
        entry = _run_with_service(lambda service: service.adjust_counter(order_number, delta))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    _print_entry(entry, order_number, fmt)


def create_order(
    order_number: str = typer.Argument(help="Manufacturing order number"),
    part_code: str = typer.Argument(help="Internal part code (smacode)"),
) -> None:
    """Register an order ahead of its first marked board."""
    fmt = CounterConfig.from_env().datetime_format
    try:
        entry = _run_with_service(lambda service: service.create_order(order_number, part_code))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    _print_entry(entry, order_number, fmt)


def expire(
    order_number: str = typer.Argument(help="Manufacturing order number"),
    days: int = typer.Option(0, help="Days until the order is removed"),
    hours: int = typer.Option(0, help="Hours until the order is removed"),
    minutes: int = typer.Option(0, help="Minutes until the order is removed"),
    seconds: int = typer.Option(0, help="Seconds until the order is removed"),
) -> None:
    """Schedule removal of an order from the ledger."""
    ttl = expiry_seconds(days, hours, minutes, seconds)
    if ttl <= 0:
        console.print("[red]Give a positive duration (--days/--hours/--minutes/--seconds).[/red]")
        raise typer.Exit(1)
    try:
        applied = _run_with_service(lambda service: service.expire_order(order_number, ttl))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if applied:
        console.print(f"Order [cyan]{order_number}[/cyan] expires in {format_elapsed(ttl * 1000)}")
    else:
        console.print(f"[yellow]Order {order_number} not found.[/yellow]")
