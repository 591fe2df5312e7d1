"""Offline operation queue: model, storage, dispatch and replay."""

from fiscalsync.queue.auto import QueueAutoProcessor
from fiscalsync.queue.codec import decode_queue, encode_queue
from fiscalsync.queue.dispatch import (
    CANCEL_ROUTES,
    ROUTES,
    EInvoiceService,
    EWayBillService,
    QueueServices,
    TDSService,
    execute_operation,
    resolve_route,
)
from fiscalsync.queue.json_store import JsonFileQueueStore
from fiscalsync.queue.manager import (
    DrainResult,
    DrainStatus,
    OfflineQueueManager,
    QueueEvent,
    QueueListener,
    get_offline_queue_manager,
    reset_offline_queue_manager,
)
from fiscalsync.queue.operation import OfflineOperation, OperationType
from fiscalsync.queue.sqlite_store import SQLiteQueueStore
from fiscalsync.queue.store import InMemoryQueueStore, QueueStore, create_queue_store

__all__ = [
    "CANCEL_ROUTES",
    "ROUTES",
    "DrainResult",
    "DrainStatus",
    "EInvoiceService",
    "EWayBillService",
    "InMemoryQueueStore",
    "JsonFileQueueStore",
    "OfflineOperation",
    "OfflineQueueManager",
    "OperationType",
    "QueueAutoProcessor",
    "QueueEvent",
    "QueueListener",
    "QueueServices",
    "QueueStore",
    "SQLiteQueueStore",
    "TDSService",
    "create_queue_store",
    "decode_queue",
    "encode_queue",
    "execute_operation",
    "get_offline_queue_manager",
    "reset_offline_queue_manager",
    "resolve_route",
]
