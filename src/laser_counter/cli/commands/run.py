"""Run and sweep commands: foreground agent and manual index cleanup."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from laser_counter.agent.config import CounterConfig
from laser_counter.agent.runtime import configure_logging, open_store, operator_service, run_agent
from laser_counter.storage.store import StoreUnavailable

console = Console()


def run(
    watch_dir: str = typer.Option("", help="Watch directory. Env: TRACE_TMP_DIR"),
    processed_dir: str = typer.Option("", help="Processed directory. Env: TRACE_SRC_DIR"),
    interval_ms: int = typer.Option(0, help="Poll interval in ms. Env: INTERVAL_DELAY_MS"),
) -> None:
    """Start the ingestion agent in the foreground."""
    config = CounterConfig.from_env()
    if watch_dir:
        config.watch_dir = watch_dir
    if processed_dir:
        config.processed_dir = processed_dir
    if interval_ms:
        config.poll_interval_ms = interval_ms

    errors = config.validate()
    if errors:
        for err in errors:
            console.print(f"[red]Config error: {err}[/red]")
        raise typer.Exit(1)

    configure_logging(config.log_level)
    try:
        asyncio.run(run_agent(config))
    except StoreUnavailable as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def sweep(
    months_ago: int = typer.Option(0, help="Month offset to drop. Env: SWEEP_MONTHS_AGO"),
) -> None:
    """Delete duplicate-index sets from an old month."""
    config = CounterConfig.from_env()
    months = months_ago or config.sweep_months_ago

    async def _sweep() -> int:
        client = await open_store(config)
        try:
            return await operator_service(client).sweep(months)
        finally:
            await client.aclose()

    try:
        deleted = asyncio.run(_sweep())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"Deleted [green]{deleted}[/green] duplicate-index keys ({months} months back).")
