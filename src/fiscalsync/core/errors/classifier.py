"""ErrorClassifier: maps raised exceptions to an ErrorCategory.

Signals are checked in a fixed precedence order, first match wins:

1. An explicit ``category`` already attached to the error (fiscalsync
   exceptions, or errors classified earlier and re-raised).
2. Transport failures: httpx transport exceptions, builtin connection and
   timeout errors, known network error codes, or a message mentioning
   "network" / "connection".
3. HTTP status >= 500.
4. HTTP status in [400, 500) other than 401/403/404.
5. Business-rule signals: a ``BL_`` code or a configured business code, then
   eligibility/threshold wording in the message as a last resort.
6. Anything else is UNKNOWN.
"""

from __future__ import annotations

import errno
import re
import socket
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import httpx

from fiscalsync.core.constants import (
    BUSINESS_ERROR_CODE_PREFIX,
    NETWORK_ERROR_CODES,
    NON_VALIDATION_CLIENT_STATUSES,
)
from fiscalsync.core.logging import get_logger

from .codes import ErrorCategory
from .models import ClassifiedError, ValidationError

if TYPE_CHECKING:
    from fiscalsync.core.config import ClassifierConfig

_logger = get_logger("errors.classifier")


_DEFAULT_BUSINESS_PATTERNS: list[str] = [
    r"not\s+eligible",
    r"ineligible",
    r"threshold\s+not\s+(met|reached)",
    r"below\s+(the\s+)?(e-?invoice\s+|e-?way\s*bill\s+)?threshold",
]

_NETWORK_MESSAGE_PATTERN = re.compile(r"network|connection", re.IGNORECASE)

_TRANSPORT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    ConnectionError,
    TimeoutError,
    socket.gaierror,
)

_SERVER_MESSAGE_KEYS = ("message", "error", "detail")


def _compile_patterns(strings: Iterable[str]) -> list[re.Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in strings]


def _response_of(error: BaseException) -> Any:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response
    return getattr(error, "response", None)


def extract_status_code(error: BaseException) -> int | None:
    """Find the HTTP status carried by an error, if any."""
    response = _response_of(error)
    candidates: list[Any] = []
    if isinstance(response, Mapping):
        candidates.append(response.get("status"))
        candidates.append(response.get("status_code"))
    elif response is not None:
        candidates.append(getattr(response, "status_code", None))
        candidates.append(getattr(response, "status", None))
    candidates.append(getattr(error, "status_code", None))
    for value in candidates:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def extract_error_code(error: BaseException) -> str | None:
    """Find a symbolic error code (``ECONNREFUSED``, ``BL_001``...)."""
    for attr in ("code", "error_code"):
        value = getattr(error, attr, None)
        if isinstance(value, str) and value:
            return value
    if isinstance(error, OSError) and error.errno is not None:
        return errno.errorcode.get(error.errno)
    return None


def _body_of(response: Any) -> Any:
    if isinstance(response, httpx.Response):
        try:
            return response.json()
        except (ValueError, httpx.ResponseNotRead):
            return None
    if isinstance(response, Mapping):
        return response.get("data")
    return getattr(response, "data", None)


def extract_server_message(error: BaseException) -> str | None:
    """Find the human-readable message the server sent with a rejection."""
    body = _body_of(_response_of(error))
    if isinstance(body, Mapping):
        for key in _SERVER_MESSAGE_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    if isinstance(error, ValidationError) and error.message:
        return error.message
    return None


def _explicit_category(error: BaseException) -> ErrorCategory | None:
    value = getattr(error, "category", None)
    if isinstance(value, ErrorCategory):
        return value
    if isinstance(value, str):
        try:
            return ErrorCategory(value)
        except ValueError:
            return None
    return None


class ErrorClassifier:
    """Assigns an ErrorCategory to any exception.

    ``categorize()`` and ``classify()`` are pure and total: the same error
    always yields the same category and no exception escapes them.
    """

    def __init__(
        self,
        business_codes: Iterable[str] | None = None,
        business_patterns: Iterable[str] | None = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            business_codes: Exact error codes treated as business-rule
                rejections in addition to the ``BL_`` prefix.
            business_patterns: Extra message regexes for business-rule
                rejections, appended to the defaults.
        """
        self.business_codes = frozenset(c.upper() for c in (business_codes or ()))
        self.business_patterns = _compile_patterns(
            [*_DEFAULT_BUSINESS_PATTERNS, *(business_patterns or ())]
        )

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> ErrorClassifier:
        return cls(
            business_codes=config.business_error_codes,
            business_patterns=config.business_message_patterns,
        )

    def categorize(self, error: BaseException) -> ErrorCategory:
        """Return the category of an error."""
        return self.classify(error).category

    def is_retryable(self, error: BaseException) -> bool:
        """True when the backoff retrier should retry this error."""
        return self.classify(error).is_retryable

    def classify(self, error: BaseException) -> ClassifiedError:
        """Classify an error and capture the signals used for the decision."""
        message = type(error).__name__
        try:
            message = str(error) or message
            status_code = extract_status_code(error)
            error_code = extract_error_code(error)
            server_message = extract_server_message(error)
            category = self._categorize(error, message, status_code, error_code)
        except Exception:
            # Misbehaving duck-typed attributes must not break error handling
            _logger.exception("classification_failed", error_type=type(error).__name__)
            return ClassifiedError(
                category=ErrorCategory.UNKNOWN,
                message=message,
                original_error=error,
            )

        return ClassifiedError(
            category=category,
            message=message,
            original_error=error,
            status_code=status_code,
            error_code=error_code,
            server_message=server_message,
        )

    def _categorize(
        self,
        error: BaseException,
        message: str,
        status_code: int | None,
        error_code: str | None,
    ) -> ErrorCategory:
        explicit = _explicit_category(error)
        if explicit is not None:
            return explicit

        if self._is_network(error, message, error_code):
            return ErrorCategory.NETWORK

        if status_code is not None and status_code >= 500:
            return ErrorCategory.SERVER

        if (
            status_code is not None
            and 400 <= status_code < 500
            and status_code not in NON_VALIDATION_CLIENT_STATUSES
        ):
            return ErrorCategory.VALIDATION

        if self._is_business_logic(message, error_code):
            return ErrorCategory.BUSINESS_LOGIC

        return ErrorCategory.UNKNOWN

    def _is_network(
        self,
        error: BaseException,
        message: str,
        error_code: str | None,
    ) -> bool:
        if isinstance(error, _TRANSPORT_EXCEPTIONS):
            return True
        if error_code is not None and error_code.upper() in NETWORK_ERROR_CODES:
            return True
        return bool(_NETWORK_MESSAGE_PATTERN.search(message))

    def _is_business_logic(self, message: str, error_code: str | None) -> bool:
        if error_code is not None:
            code = error_code.upper()
            if code.startswith(BUSINESS_ERROR_CODE_PREFIX) or code in self.business_codes:
                return True
        return any(p.search(message) for p in self.business_patterns)


_default_classifier = ErrorClassifier()


def get_default_classifier() -> ErrorClassifier:
    """Classifier with the built-in business signals only."""
    return _default_classifier


def categorize_error(error: BaseException) -> ErrorCategory:
    """Categorize an error with the default classifier."""
    return _default_classifier.categorize(error)


def is_retryable(error: BaseException) -> bool:
    """Whether the default classifier considers an error retryable."""
    return _default_classifier.is_retryable(error)
