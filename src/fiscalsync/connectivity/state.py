"""Network state providers.

A provider answers two questions: is there a usable network link, and does
the wider internet answer through it. The queue only replays when both hold.
"""

from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from fiscalsync.core.config import ConnectivityConfig
from fiscalsync.core.logging import get_logger

_logger = get_logger("connectivity")


@dataclass(frozen=True)
class NetworkState:
    """Snapshot of the host's network state.

    Attributes:
        type: Link type as reported by the provider ("none" when there is no
            link, "unknown" when it cannot be told).
        is_connected: A network link exists.
        is_internet_reachable: The wider internet answered. ``None`` means
            reachability was not determined.
    """

    type: str
    is_connected: bool
    is_internet_reachable: bool | None

    @property
    def is_online(self) -> bool:
        return self.is_connected and self.is_internet_reachable is True


OFFLINE_STATE = NetworkState(type="none", is_connected=False, is_internet_reachable=False)


@runtime_checkable
class NetworkStateProvider(Protocol):
    """Anything that can report the current network state."""

    async def get_network_state(self) -> NetworkState: ...


class StaticNetworkStateProvider:
    """Reports a fixed state; ``state`` may be reassigned at any time."""

    def __init__(self, state: NetworkState | None = None) -> None:
        self.state = state or OFFLINE_STATE

    @classmethod
    def online(cls) -> StaticNetworkStateProvider:
        return cls(NetworkState(type="unknown", is_connected=True, is_internet_reachable=True))

    @classmethod
    def offline(cls) -> StaticNetworkStateProvider:
        return cls(OFFLINE_STATE)

    def set_online(self, online: bool) -> None:
        self.state = NetworkState(
            type="unknown" if online else "none",
            is_connected=online,
            is_internet_reachable=online,
        )

    async def get_network_state(self) -> NetworkState:
        return self.state


class HttpNetworkStateProvider:
    """Probes the network with a route lookup and an HTTP request.

    The link check asks the OS for a route to ``route_check_host`` by
    connecting a UDP socket (no packet is sent). Reachability is confirmed by
    fetching ``probe_url``; any HTTP response counts as reachable.
    """

    def __init__(self, config: ConnectivityConfig | None = None) -> None:
        self.config = config or ConnectivityConfig()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                follow_redirects=True,
            )
        return self._client

    def _has_route(self) -> bool:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.settimeout(self.config.timeout_seconds)
                sock.connect((self.config.route_check_host, self.config.route_check_port))
            return True
        except OSError as e:
            _logger.debug("route_check_failed", host=self.config.route_check_host, error=str(e))
            return False

    async def _probe(self) -> bool:
        client = await self._get_client()
        try:
            await client.head(self.config.probe_url)
        except httpx.HTTPError as e:
            _logger.debug(
                "reachability_probe_failed",
                url=self.config.probe_url,
                error_type=type(e).__name__,
            )
            return False
        return True

    async def get_network_state(self) -> NetworkState:
        if not await asyncio.to_thread(self._has_route):
            return OFFLINE_STATE
        reachable = await self._probe()
        return NetworkState(type="unknown", is_connected=True, is_internet_reachable=reachable)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
