"""Connectivity detection for queue replay."""

from fiscalsync.connectivity.checker import ConnectivityChecker
from fiscalsync.connectivity.state import (
    OFFLINE_STATE,
    HttpNetworkStateProvider,
    NetworkState,
    NetworkStateProvider,
    StaticNetworkStateProvider,
)

__all__ = [
    "OFFLINE_STATE",
    "ConnectivityChecker",
    "HttpNetworkStateProvider",
    "NetworkState",
    "NetworkStateProvider",
    "StaticNetworkStateProvider",
]
