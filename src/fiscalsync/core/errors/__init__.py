"""Error classification and handling.

Re-exports the public error-handling API.
"""

from fiscalsync.core.errors.codes import (
    DETERMINISTIC_CATEGORIES,
    RETRYABLE_CATEGORIES,
    ErrorCategory,
)
from fiscalsync.core.errors.models import (
    BusinessLogicError,
    ClassifiedError,
    DispatchError,
    ErrorContext,
    ErrorResponse,
    FiscalSyncError,
    NetworkError,
    OperationFailedError,
    QueueStorageError,
    RetryAbortedError,
    ServerError,
    ValidationError,
)
from fiscalsync.core.errors.classifier import (
    ErrorClassifier,
    categorize_error,
    get_default_classifier,
    is_retryable,
)
from fiscalsync.core.errors.responder import (
    ErrorReporter,
    ErrorResponder,
    UserNotifier,
    format_error_for_logging,
    get_user_friendly_message,
    handle_error,
    respond_to_error,
)

__all__ = [
    "DETERMINISTIC_CATEGORIES",
    "RETRYABLE_CATEGORIES",
    "ErrorCategory",
    "BusinessLogicError",
    "ClassifiedError",
    "DispatchError",
    "ErrorContext",
    "ErrorResponse",
    "FiscalSyncError",
    "NetworkError",
    "OperationFailedError",
    "QueueStorageError",
    "RetryAbortedError",
    "ServerError",
    "ValidationError",
    "ErrorClassifier",
    "categorize_error",
    "get_default_classifier",
    "is_retryable",
    "ErrorReporter",
    "ErrorResponder",
    "UserNotifier",
    "format_error_for_logging",
    "get_user_friendly_message",
    "handle_error",
    "respond_to_error",
]
