"""fiscalsync - resilient execution of fiscal document operations.

Classifies failures, retries transient ones with capped exponential backoff,
and parks operations that cannot complete in a durable offline queue that is
replayed once connectivity returns.
"""

__version__ = "0.3.0"

from fiscalsync.core.errors import (
    ClassifiedError,
    ErrorCategory,
    ErrorClassifier,
    ErrorContext,
    ErrorResponder,
    ErrorResponse,
)
from fiscalsync.execution.retry import BackoffRetrier, retry_with_backoff
from fiscalsync.queue import (
    OfflineOperation,
    OfflineQueueManager,
    OperationType,
    QueueEvent,
    get_offline_queue_manager,
)

__all__ = [
    "__version__",
    "BackoffRetrier",
    "ClassifiedError",
    "ErrorCategory",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorResponder",
    "ErrorResponse",
    "OfflineOperation",
    "OfflineQueueManager",
    "OperationType",
    "QueueEvent",
    "get_offline_queue_manager",
    "retry_with_backoff",
]
