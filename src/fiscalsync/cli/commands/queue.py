"""Inspection and maintenance of the offline queue.

Subcommands:
- `fiscalsync queue list`        List queued operations in replay order
- `fiscalsync queue show ID`     Show one operation with its payload
- `fiscalsync queue remove ID`   Drop one operation
- `fiscalsync queue clear`       Drop every operation

Replay needs the e-invoice, e-way-bill and TDS services of the host
application, so the CLI never replays operations itself.
"""

from __future__ import annotations

import asyncio
import json

import typer

from ..helpers import build_queue_manager, load_cli_config
from ..output import console, create_operation_panel, create_queue_table

queue_app = typer.Typer(
    name="queue",
    help="Inspect and maintain the offline operation queue.",
    no_args_is_help=True,
)


@queue_app.command("list")
def list_operations(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List queued operations in the order they will be replayed."""
    manager = build_queue_manager(load_cli_config())
    operations = asyncio.run(manager.get_queue())

    if json_output:
        console.print_json(json.dumps([op.to_json() for op in operations]))
        return

    if not operations:
        console.print("[dim]Queue is empty.[/dim]")
        return

    console.print(create_queue_table(operations))
    noun = "operation" if len(operations) == 1 else "operations"
    console.print(f"\n{len(operations)} queued {noun}")


@queue_app.command()
def show(
    operation_id: str = typer.Argument(..., help="Operation id"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show a queued operation."""
    manager = build_queue_manager(load_cli_config())
    operations = asyncio.run(manager.get_queue())

    for position, op in enumerate(operations, start=1):
        if op.id == operation_id:
            if json_output:
                console.print_json(json.dumps(op.to_json()))
            else:
                console.print(create_operation_panel(op, position))
            return

    console.print(f"[red]Operation not found:[/red] {operation_id}")
    raise typer.Exit(1)


@queue_app.command()
def remove(
    operation_id: str = typer.Argument(..., help="Operation id"),
) -> None:
    """Drop a queued operation without replaying it."""
    manager = build_queue_manager(load_cli_config())
    if not asyncio.run(manager.remove_operation(operation_id)):
        console.print(f"[red]Operation not found:[/red] {operation_id}")
        raise typer.Exit(1)
    console.print(f"[green]Removed[/green] {operation_id}")


@queue_app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Drop every queued operation."""
    manager = build_queue_manager(load_cli_config())
    size = asyncio.run(manager.get_queue_size())
    if size == 0:
        console.print("[dim]Queue is already empty.[/dim]")
        return

    if not yes:
        typer.confirm(f"Drop {size} queued operation(s)?", abort=True)

    dropped = asyncio.run(manager.clear_queue())
    console.print(f"[green]Cleared[/green] {dropped} operation(s)")
