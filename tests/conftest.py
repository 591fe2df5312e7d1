"""Pytest fixtures for fiscalsync tests."""

import logging
from collections.abc import Callable
from typing import Any, Generator
from unittest.mock import AsyncMock

import pytest
import structlog

from fiscalsync.connectivity import ConnectivityChecker, StaticNetworkStateProvider
from fiscalsync.core.config import QueueConfig
from fiscalsync.queue import (
    InMemoryQueueStore,
    OfflineOperation,
    OfflineQueueManager,
    OperationType,
    QueueServices,
    reset_offline_queue_manager,
)


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Reset logging, CLI options and the process-wide queue manager.

    Keeps tests isolated from each other's logging configuration.
    """
    import fiscalsync.cli.helpers as cli_helpers

    cli_helpers.reset_cli_state()
    reset_offline_queue_manager()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    cli_helpers.reset_cli_state()
    reset_offline_queue_manager()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def network() -> StaticNetworkStateProvider:
    """Controllable network state, online by default."""
    return StaticNetworkStateProvider.online()


@pytest.fixture
def store() -> InMemoryQueueStore:
    return InMemoryQueueStore()


@pytest.fixture
def manager(store: InMemoryQueueStore, network: StaticNetworkStateProvider) -> OfflineQueueManager:
    return OfflineQueueManager(store, ConnectivityChecker(network), config=QueueConfig(storage="memory"))


@pytest.fixture
def make_operation() -> Callable[..., OfflineOperation]:
    """Factory for offline operations with sensible defaults."""

    def _make(
        type: OperationType = OperationType.E_INVOICE_GENERATE,  # noqa: A002
        target_id: str = "voucher-1",
        payload: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> OfflineOperation:
        return OfflineOperation(
            type=type,
            target_id=target_id,
            payload=payload if payload is not None else {"voucherId": target_id},
            **kwargs,
        )

    return _make


@pytest.fixture
def services() -> QueueServices:
    """Collaborators whose methods all succeed."""
    einvoice = AsyncMock()
    einvoice.generate_einvoice.return_value = {"status": "GENERATED"}
    einvoice.cancel_einvoice.return_value = {"status": "CANCELLED"}
    ewaybill = AsyncMock()
    ewaybill.generate_ewaybill.return_value = {"status": "GENERATED"}
    ewaybill.cancel_ewaybill.return_value = {"status": "CANCELLED"}
    ewaybill.update_vehicle_details.return_value = {"status": "UPDATED"}
    tds = AsyncMock()
    tds.calculate_tds.return_value = {"amount": 1000}
    return QueueServices(einvoice=einvoice, ewaybill=ewaybill, tds=tds)
