"""Shared state and helpers for the fiscalsync CLI.

Global options (``--config``, ``--log-level``) are recorded here by the app
callback and read by the commands.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError as PydanticValidationError

from fiscalsync.core.config import FiscalSyncConfig, load_config, resolve_config_path
from fiscalsync.core.logging import configure_logging
from fiscalsync.queue import OfflineQueueManager

from .output import console

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class CliState:
    config_path: Path | None = None
    log_level: str | None = None
    logging_configured: bool = False


_state = CliState()


def get_state() -> CliState:
    return _state


def reset_cli_state() -> None:
    """Forget global options (used by tests)."""
    global _state
    _state = CliState()


def set_config_path(path: Path | None) -> None:
    _state.config_path = path


def set_log_level(level: str) -> None:
    normalized = level.upper()
    if normalized not in LOG_LEVELS:
        raise typer.BadParameter(f"must be one of {', '.join(LOG_LEVELS)}")
    _state.log_level = normalized


def config_path() -> Path:
    return resolve_config_path(_state.config_path)


def load_cli_config() -> FiscalSyncConfig:
    """Load the config file selected by ``--config``.

    Raises:
        typer.Exit: If the file is not valid YAML or not a valid config.
    """
    try:
        return load_config(_state.config_path)
    except (PydanticValidationError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config {config_path()}:[/red] {e}")
        raise typer.Exit(1) from None


def configure_cli_logging(config: FiscalSyncConfig) -> None:
    """Configure logging once per session from config and ``--log-level``."""
    if _state.logging_configured:
        return
    try:
        configure_logging(
            level=_state.log_level or config.logging.level,  # type: ignore[arg-type]
            format=config.logging.format,
            file_path=config.logging.file_path,
        )
    except ValueError as e:
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None
    _state.logging_configured = True


def build_queue_manager(config: FiscalSyncConfig) -> OfflineQueueManager:
    return OfflineQueueManager.from_config(config)
