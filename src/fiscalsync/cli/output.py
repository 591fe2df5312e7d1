"""Rich output formatting for the fiscalsync CLI."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fiscalsync.connectivity import NetworkState
from fiscalsync.queue import OfflineOperation

# Shared console; commands print through it so tests can capture output.
console = Console()


def format_retry_budget(operation: OfflineOperation) -> str:
    color = "green" if operation.retry_count == 0 else "yellow"
    if not operation.can_retry:
        color = "red"
    return f"[{color}]{operation.retry_count}/{operation.max_retries}[/{color}]"


def create_queue_table(operations: Sequence[OfflineOperation]) -> Table:
    """Table of queued operations in replay order."""
    table = Table(show_header=True, header_style="bold cyan", padding=(0, 1))
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", no_wrap=True)
    table.add_column("Type", style="bold")
    table.add_column("Voucher")
    table.add_column("Retries", justify="center")
    table.add_column("Created", style="dim")

    for position, op in enumerate(operations, start=1):
        table.add_row(
            str(position),
            op.id,
            op.type_name,
            op.target_id,
            format_retry_budget(op),
            op.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    return table


def create_operation_panel(operation: OfflineOperation, position: int) -> Panel:
    """Detail panel for a single queued operation."""
    lines = [
        f"[bold]ID:[/bold] {operation.id}",
        f"[bold]Type:[/bold] {operation.type_name}",
        f"[bold]Voucher:[/bold] {operation.target_id}",
        f"[bold]Position:[/bold] {position}",
        f"[bold]Retries:[/bold] {format_retry_budget(operation)}",
        f"[bold]Created:[/bold] {operation.created_at.isoformat()}",
        "",
        "[bold]Payload:[/bold]",
    ]
    if operation.payload:
        lines.extend(f"  {key}: {value}" for key, value in operation.payload.items())
    else:
        lines.append("  [dim](empty)[/dim]")
    return Panel("\n".join(lines), title="Queued operation", border_style="cyan")


def create_network_table(state: NetworkState) -> Table:
    table = Table(show_header=False, padding=(0, 1))
    table.add_column("Field", style="bold")
    table.add_column("Value")

    def _flag(value: bool | None) -> str:
        if value is None:
            return "[yellow]unknown[/yellow]"
        return "[green]yes[/green]" if value else "[red]no[/red]"

    table.add_row("Type", state.type)
    table.add_row("Connected", _flag(state.is_connected))
    table.add_row("Internet reachable", _flag(state.is_internet_reachable))
    table.add_row("Online", _flag(state.is_online))
    return table


def flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten a nested dict into dot-notation keys."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            result.update(flatten(value, full_key))
        else:
            result[full_key] = value
    return result
