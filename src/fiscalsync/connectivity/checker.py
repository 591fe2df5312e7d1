"""Online/offline decision used before replaying the queue."""

from __future__ import annotations

from fiscalsync.connectivity.state import (
    OFFLINE_STATE,
    HttpNetworkStateProvider,
    NetworkState,
    NetworkStateProvider,
    StaticNetworkStateProvider,
)
from fiscalsync.core.config import ConnectivityConfig
from fiscalsync.core.logging import get_logger

_logger = get_logger("connectivity")


class ConnectivityChecker:
    """Decides whether the host is online.

    Online means a link exists and internet reachability is confirmed; an
    undetermined reachability counts as offline. A provider that raises is
    treated as offline.
    """

    def __init__(self, provider: NetworkStateProvider) -> None:
        self.provider = provider

    @classmethod
    def from_config(cls, config: ConnectivityConfig) -> ConnectivityChecker:
        if config.force_offline:
            return cls(StaticNetworkStateProvider.offline())
        return cls(HttpNetworkStateProvider(config))

    async def get_state(self) -> NetworkState:
        try:
            return await self.provider.get_network_state()
        except Exception as e:
            _logger.warning("network_state_unavailable", error=str(e), error_type=type(e).__name__)
            return OFFLINE_STATE

    async def is_online(self) -> bool:
        state = await self.get_state()
        return state.is_online

    async def close(self) -> None:
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()
