"""Typer CLI application."""

import typer

from laser_counter.cli.commands.inspect import inspect
from laser_counter.cli.commands.orders import adjust, create_order, expire, set_counter, status
from laser_counter.cli.commands.run import run, sweep

app = typer.Typer(
    name="laser-counter",
    help="Laser marker board counter and duplicate detector",
    no_args_is_help=True,
)

app.command()(run)
app.command()(status)
app.command()(inspect)
app.command("set-counter")(set_counter)
app.command()(adjust)
app.command("create-order")(create_order)
app.command()(expire)
app.command()(sweep)
