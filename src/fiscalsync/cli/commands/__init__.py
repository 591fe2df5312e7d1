"""CLI command modules."""

from .config_cmd import config_app
from .network import network
from .queue import queue_app

__all__ = ["config_app", "network", "queue_app"]
