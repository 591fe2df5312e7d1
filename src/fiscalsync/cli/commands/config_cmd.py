"""`fiscalsync config` command group."""

from __future__ import annotations

from typing import Any

import typer
import yaml
from rich.table import Table

from ..helpers import config_path, load_cli_config
from ..output import console, flatten

config_app = typer.Typer(
    name="config",
    help="Inspect fiscalsync configuration.",
    no_args_is_help=True,
)


def _load_file_data() -> dict[str, Any]:
    path = config_path()
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


@config_app.command()
def show() -> None:
    """Display the effective configuration and where each value comes from.

    Examples:
        fiscalsync config show
        fiscalsync --config ./fiscalsync.yaml config show
    """
    effective = load_cli_config()
    file_values = flatten(_load_file_data())
    path = config_path()

    source_label = f"[dim]{path}[/dim]" if path.exists() else "[dim](defaults)[/dim]"
    console.print(f"\nConfiguration: {source_label}\n")

    table = Table(show_header=True, header_style="bold cyan", padding=(0, 1))
    table.add_column("Key", style="white", min_width=30)
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    for key, value in flatten(effective.model_dump(mode="json")).items():
        source = "file" if key in file_values else "[dim]default[/dim]"
        table.add_row(key, str(value), source)

    console.print(table)
