"""`fiscalsync network`: probe connectivity the way the queue does."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict

import typer

from fiscalsync.connectivity import ConnectivityChecker, NetworkState

from ..helpers import load_cli_config
from ..output import console, create_network_table


async def _probe(checker: ConnectivityChecker) -> NetworkState:
    try:
        return await checker.get_state()
    finally:
        await checker.close()


def network(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the current network state and whether queue replay would run.

    Exits with status 2 when offline.
    """
    config = load_cli_config()
    checker = ConnectivityChecker.from_config(config.connectivity)
    state = asyncio.run(_probe(checker))

    if json_output:
        console.print_json(json.dumps({**asdict(state), "is_online": state.is_online}))
    else:
        console.print(create_network_table(state))
        if config.connectivity.force_offline:
            console.print("[yellow]connectivity.force_offline is set[/yellow]")

    if not state.is_online:
        raise typer.Exit(2)
