"""fiscalsync CLI.

Developer tooling for the offline queue: inspect and prune queued
operations, probe connectivity and show the effective configuration.

Package structure:
    cli/
    ├── __init__.py        # App assembly and global options
    ├── helpers.py         # Global option state, config and logging setup
    ├── output.py          # Rich formatting
    └── commands/
        ├── queue.py       # queue list/show/remove/clear
        ├── network.py     # network
        └── config_cmd.py  # config show
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from fiscalsync import __version__

from . import helpers as helpers
from .commands import config_app, network, queue_app
from .helpers import configure_cli_logging, load_cli_config, set_config_path, set_log_level
from .output import console

app = typer.Typer(
    name="fiscalsync",
    help="Offline queue and connectivity tooling for fiscal document sync",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"fiscalsync v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def config_callback(value: Path | None) -> Path | None:
    set_config_path(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="FISCALSYNC_LOG_LEVEL",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            callback=config_callback,
            help="Config file (default: ~/.fiscalsync/config.yaml)",
            envvar="FISCALSYNC_CONFIG",
        ),
    ] = None,
) -> None:
    """fiscalsync - offline queue and connectivity tooling."""
    configure_cli_logging(load_cli_config())


app.add_typer(queue_app)
app.command()(network)
app.add_typer(config_app)

__all__ = ["app", "console", "helpers", "main"]
