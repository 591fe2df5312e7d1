"""Durable FIFO queue of deferred operations.

The manager owns the in-memory queue and keeps the store in step with it:
every mutation writes the complete queue to the store before the mutating
call returns, and the in-memory queue only changes once that write has
succeeded.

Replay (``process_queue``) is single flight. Operations are replayed in
order, one at a time, and a drain stops at the first failure so that a
later operation never overtakes an earlier one for the same document.
A failed operation either has its ``retry_count`` bumped (it stays at the
head for the next drain) or, once its budget is spent, is dropped and
reported through the ``failed`` event.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fiscalsync.connectivity import ConnectivityChecker
from fiscalsync.core.config import FiscalSyncConfig, QueueConfig, load_config
from fiscalsync.core.errors import ErrorClassifier, QueueStorageError, get_default_classifier
from fiscalsync.core.logging import OperationLogContext, get_logger, with_context
from fiscalsync.queue.dispatch import QueueServices, execute_operation
from fiscalsync.queue.operation import OfflineOperation
from fiscalsync.queue.store import QueueStore, create_queue_store

_logger = get_logger("queue")


class QueueEvent(str, Enum):
    """Notifications emitted by the queue manager."""

    ENQUEUED = "enqueued"
    PROCESSED = "processed"
    FAILED = "failed"
    REMOVED = "removed"
    CLEARED = "cleared"


QueueListener = Callable[[QueueEvent, OfflineOperation | None, BaseException | None], None]


class DrainStatus(str, Enum):
    """How a ``process_queue`` call ended."""

    BUSY = "busy"
    """Another drain was already running; nothing was done."""

    EMPTY = "empty"
    """The queue was empty."""

    OFFLINE = "offline"
    """The host was offline; nothing was replayed."""

    COMPLETED = "completed"
    """Every operation was replayed."""

    STOPPED = "stopped"
    """The drain stopped at a failed operation."""


@dataclass
class DrainResult:
    """Outcome of one ``process_queue`` call.

    Attributes:
        status: How the drain ended.
        processed: Ids replayed successfully, in order.
        retried: Ids kept in the queue for a later retry.
        failed: Ids dropped as abandoned.
        pending: Ids still queued when the drain ended.
    """

    status: DrainStatus
    processed: list[str] = field(default_factory=list)
    retried: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)


class OfflineQueueManager:
    """Persists deferred operations and replays them when online.

    Args:
        store: Where the queue is persisted.
        connectivity: Decides whether replay may start.
        classifier: Categorizes replay failures.
        config: Queue settings; defaults when omitted.
    """

    def __init__(
        self,
        store: QueueStore,
        connectivity: ConnectivityChecker,
        classifier: ErrorClassifier | None = None,
        config: QueueConfig | None = None,
    ) -> None:
        self.store = store
        self.connectivity = connectivity
        self.classifier = classifier or get_default_classifier()
        self.config = config or QueueConfig()

        self._queue: list[OfflineOperation] = []
        self._loaded = False
        self._processing = False
        self._lock = asyncio.Lock()
        self._listeners: list[QueueListener] = []

    @classmethod
    def from_config(cls, config: FiscalSyncConfig) -> OfflineQueueManager:
        return cls(
            store=create_queue_store(config.queue),
            connectivity=ConnectivityChecker.from_config(config.connectivity),
            classifier=ErrorClassifier.from_config(config.classifier),
            config=config.queue,
        )

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    async def _load_unlocked(self) -> None:
        try:
            operations = await self.store.load()
        except QueueStorageError as e:
            _logger.warning("queue_load_failed", error=str(e))
            operations = []
        self._queue = operations
        self._loaded = True
        _logger.debug("queue_loaded", size=len(operations))

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._lock:
            if self._loaded:
                return
            await self._load_unlocked()

    async def load(self) -> int:
        """(Re)read the queue from the store, replacing the in-memory queue.

        An unreadable stored queue yields an empty queue.

        Returns:
            Number of operations loaded.
        """
        async with self._lock:
            await self._load_unlocked()
            return len(self._queue)

    async def _commit(self, queue: list[OfflineOperation]) -> None:
        # Caller holds self._lock.
        await self.store.save(queue)
        self._queue = queue

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: QueueListener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: QueueListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(
        self,
        event: QueueEvent,
        operation: OfflineOperation | None = None,
        error: BaseException | None = None,
    ) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, operation, error)
            except Exception:
                _logger.exception("queue_listener_failed", queue_event=event.value)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def enqueue(self, operation: OfflineOperation) -> OfflineOperation:
        """Append an operation and persist the queue.

        Operations created without an explicit ``max_retries`` get the
        configured default.

        Returns:
            The queued operation.

        Raises:
            QueueStorageError: If the queue could not be persisted; the
                operation is then not queued.
        """
        await self._ensure_loaded()
        queued = operation.model_copy(deep=True)
        if "max_retries" not in operation.model_fields_set:
            queued.max_retries = self.config.default_max_retries

        async with self._lock:
            await self._commit([*self._queue, queued])

        _logger.info(
            "operation_enqueued",
            operation_id=queued.id,
            operation_type=queued.type_name,
            target_id=queued.target_id,
            queue_size=len(self._queue),
        )
        self._emit(QueueEvent.ENQUEUED, queued)
        return queued

    async def remove_operation(self, operation_id: str) -> bool:
        """Remove an operation by id.

        Returns:
            True if the operation was queued and has been removed.
        """
        await self._ensure_loaded()
        async with self._lock:
            removed = next((op for op in self._queue if op.id == operation_id), None)
            if removed is None:
                return False
            await self._commit([op for op in self._queue if op.id != operation_id])

        _logger.info("operation_removed", operation_id=operation_id)
        self._emit(QueueEvent.REMOVED, removed)
        return True

    async def clear_queue(self) -> int:
        """Drop every queued operation.

        Returns:
            Number of operations dropped.
        """
        await self._ensure_loaded()
        async with self._lock:
            dropped = len(self._queue)
            await self._commit([])

        _logger.info("queue_cleared", dropped=dropped)
        self._emit(QueueEvent.CLEARED)
        return dropped

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def get_queue(self) -> list[OfflineOperation]:
        """Copies of the queued operations, in queue order."""
        await self._ensure_loaded()
        return [op.model_copy(deep=True) for op in self._queue]

    async def get_queue_size(self) -> int:
        await self._ensure_loaded()
        return len(self._queue)

    async def get_operation(self, operation_id: str) -> OfflineOperation | None:
        await self._ensure_loaded()
        for op in self._queue:
            if op.id == operation_id:
                return op.model_copy(deep=True)
        return None

    async def check_connectivity(self) -> bool:
        return await self.connectivity.is_online()

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    async def execute_operation(
        self,
        operation: OfflineOperation,
        services: QueueServices | Mapping[str, Any] | None,
    ) -> Any:
        """Replay one operation against its collaborator without touching the queue."""
        return await execute_operation(operation, services)

    async def process_queue(
        self,
        services: QueueServices | Mapping[str, Any] | None = None,
        *,
        assume_online: bool = False,
    ) -> DrainResult:
        """Replay queued operations in order while online.

        Does nothing if a drain is already running, the queue is empty or
        the host is offline. Replay failures never propagate; they are
        handled through the operation's retry budget.

        Args:
            services: Collaborators used for replay.
            assume_online: Skip the connectivity check; for callers that
                have just observed the host online.

        Raises:
            DispatchError: If ``services`` is a mapping with unknown keys.
                Raised before any operation is touched.
            QueueStorageError: If the queue could not be persisted.
        """
        services = QueueServices.coerce(services)
        if self._processing:
            _logger.debug("queue_drain_skipped", reason="busy")
            return DrainResult(status=DrainStatus.BUSY)

        self._processing = True
        try:
            await self._ensure_loaded()
            if not self._queue:
                return DrainResult(status=DrainStatus.EMPTY)

            if not assume_online and not await self.check_connectivity():
                _logger.info("queue_drain_skipped", reason="offline", queue_size=len(self._queue))
                return DrainResult(
                    status=DrainStatus.OFFLINE, pending=[op.id for op in self._queue]
                )

            result = await self._drain(services)
            result.pending = [op.id for op in self._queue]
            _logger.info(
                "queue_drain_finished",
                status=result.status.value,
                processed=len(result.processed),
                failed=len(result.failed),
                pending=len(result.pending),
            )
            return result
        finally:
            self._processing = False

    async def _drain(self, services: QueueServices) -> DrainResult:
        result = DrainResult(status=DrainStatus.COMPLETED)
        while self._queue:
            operation = self._queue[0]
            log_ctx = OperationLogContext(
                operation=operation.type_name,
                target_id=operation.target_id,
                component="queue",
            )
            with with_context(log_ctx):
                try:
                    await execute_operation(operation, services)
                except Exception as exc:
                    await self._handle_failure(operation, exc, result)
                    result.status = DrainStatus.STOPPED
                    return result

                async with self._lock:
                    await self._commit([op for op in self._queue if op.id != operation.id])
                _logger.info("operation_processed", operation_id=operation.id)

            result.processed.append(operation.id)
            self._emit(QueueEvent.PROCESSED, operation)
        return result

    async def _handle_failure(
        self, operation: OfflineOperation, error: Exception, result: DrainResult
    ) -> None:
        classified = self.classifier.classify(error)
        permanent = self.config.abandon_non_retryable and classified.is_deterministic

        async with self._lock:
            current = next((op for op in self._queue if op.id == operation.id), None)
            if current is None:
                # Removed while it was being replayed.
                return

            if permanent or not current.can_retry:
                await self._commit([op for op in self._queue if op.id != operation.id])
                abandoned = True
            else:
                updated = current.model_copy(update={"retry_count": current.retry_count + 1})
                await self._commit(
                    [updated if op.id == operation.id else op for op in self._queue]
                )
                abandoned = False

        if abandoned:
            _logger.warning(
                "operation_abandoned",
                operation_id=operation.id,
                category=classified.category.value,
                error_message=classified.message,
                retry_count=current.retry_count,
                max_retries=current.max_retries,
            )
            result.failed.append(operation.id)
            self._emit(QueueEvent.FAILED, current, error)
        else:
            _logger.warning(
                "operation_retry_deferred",
                operation_id=operation.id,
                category=classified.category.value,
                error_message=classified.message,
                retry_count=current.retry_count + 1,
                max_retries=current.max_retries,
            )
            result.retried.append(operation.id)


_manager: OfflineQueueManager | None = None


def get_offline_queue_manager(config: FiscalSyncConfig | None = None) -> OfflineQueueManager:
    """Process-wide manager, built from ``config`` (or the config file) on first use."""
    global _manager
    if _manager is None:
        _manager = OfflineQueueManager.from_config(config or load_config())
    return _manager


def reset_offline_queue_manager() -> None:
    """Forget the process-wide manager."""
    global _manager
    _manager = None
