"""Data models and exception types for error handling.

This module provides:
- FiscalSyncError and its category-tagged subclasses (NetworkError,
  ServerError, ValidationError, BusinessLogicError)
- OperationFailedError: a failure wrapped with the decision made about it
- DispatchError, QueueStorageError, RetryAbortedError: internal failures
- ClassifiedError: the result of classifying any raised exception
- ErrorContext: which operation and document a failure belongs to
- ErrorResponse: the decision record produced for a failure
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .codes import DETERMINISTIC_CATEGORIES, RETRYABLE_CATEGORIES, ErrorCategory


class FiscalSyncError(Exception):
    """Base class for errors raised by fiscalsync and its service layer.

    Subclasses carry a fixed ``category`` so that classifying them again (for
    instance after they have been re-raised by a caller) returns the same
    category. Untagged instances are classified from their message.
    """

    category: ErrorCategory | None = None

    def __init__(self, message: str, original_error: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class NetworkError(FiscalSyncError):
    """The request could not reach the server."""

    category = ErrorCategory.NETWORK


class ServerError(FiscalSyncError):
    """The server failed to process the request."""

    category = ErrorCategory.SERVER

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code


class ValidationError(FiscalSyncError):
    """The request was rejected as invalid.

    ``details`` holds field-level information from the server, if any.
    """

    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.details = details or {}


class BusinessLogicError(FiscalSyncError):
    """A business rule forbids the operation (e.g. invoice below threshold)."""

    category = ErrorCategory.BUSINESS_LOGIC

    def __init__(
        self,
        message: str,
        code: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.code = code


class DispatchError(FiscalSyncError):
    """An offline operation cannot be routed to a collaborator.

    Raised for an unknown operation type or a missing service. Replaying the
    same operation fails identically, so it is never retried.
    """

    category = ErrorCategory.VALIDATION


class QueueStorageError(FiscalSyncError):
    """The queue store failed to persist or read the queue."""


class RetryAbortedError(FiscalSyncError):
    """A backoff wait was aborted before the next attempt.

    ``last_error`` is the failure that triggered the aborted wait.
    """

    def __init__(self, message: str, last_error: BaseException | None = None) -> None:
        super().__init__(message, last_error)
        self.last_error = last_error
        if last_error is not None:
            self.category = getattr(last_error, "category", None)


class OperationFailedError(FiscalSyncError):
    """A failed call together with the decision made about it.

    The exception message is the user-facing message; the triggering error
    is available as ``original_error`` and as ``__cause__``.
    """

    def __init__(self, response: ErrorResponse, original_error: BaseException) -> None:
        super().__init__(response.message, original_error)
        self.response = response
        self.category = response.category


@dataclass(frozen=True)
class ClassifiedError:
    """A raised exception with its category and extracted signals.

    Built once by ``ErrorClassifier.classify()``; downstream code branches on
    ``category`` instead of probing attributes of the raw exception.
    """

    category: ErrorCategory
    message: str
    original_error: BaseException
    status_code: int | None = None
    error_code: str | None = None
    server_message: str | None = None

    @property
    def is_retryable(self) -> bool:
        """True for categories the backoff retrier retries."""
        return self.category in RETRYABLE_CATEGORIES

    @property
    def is_deterministic(self) -> bool:
        """True when resending the same input is certain to fail again."""
        return self.category in DETERMINISTIC_CATEGORIES

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            "status_code": self.status_code,
            "error_code": self.error_code,
            "error_type": type(self.original_error).__name__,
        }


@dataclass(frozen=True)
class ErrorContext:
    """Identifies the business action and document a failure occurred on.

    Attributes:
        operation: Operation name, usually an OperationType value.
        target_id: Identifier of the target document (e.g. a voucher id).
        retryable_hint: Caller's hint that the action is safe to repeat.
    """

    operation: str
    target_id: str | None = None
    retryable_hint: bool = True


@dataclass(frozen=True)
class ErrorResponse:
    """Decision record for a failure.

    Attributes:
        message: Text shown to the user.
        display_to_user: Whether the message should be surfaced.
        allow_retry: Whether the user is offered a retry.
        log_remotely: Whether the failure is forwarded to the remote error log.
        notify_user: Whether a user notification is raised.
        category: Category of the triggering error.
    """

    message: str
    display_to_user: bool = True
    allow_retry: bool = False
    log_remotely: bool = False
    notify_user: bool = False
    category: ErrorCategory = ErrorCategory.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "display_to_user": self.display_to_user,
            "allow_retry": self.allow_retry,
            "log_remotely": self.log_remotely,
            "notify_user": self.notify_user,
            "category": self.category.value,
        }
