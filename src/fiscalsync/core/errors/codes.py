"""Error categories used for retry and user-messaging decisions.

Every failure that passes through fiscalsync is assigned exactly one
ErrorCategory. The category alone determines whether an automatic retry is
attempted and how the failure is presented to the user.

| Category       | Auto retry | Typical origin                               |
|----------------|------------|----------------------------------------------|
| NETWORK        | Yes        | refused/aborted/timed-out connections         |
| SERVER         | Yes        | HTTP 5xx                                      |
| VALIDATION     | No         | HTTP 4xx other than 401/403/404               |
| BUSINESS_LOGIC | No         | BL_* codes, eligibility/threshold rejections  |
| UNKNOWN        | No         | anything else                                 |
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """High-level error category."""

    NETWORK = "network"
    """Transport failure; the request may never have reached the server."""

    SERVER = "server"
    """The server failed while handling a well-formed request."""

    VALIDATION = "validation"
    """The request was rejected as invalid; resending it unchanged fails again."""

    BUSINESS_LOGIC = "business_logic"
    """A business rule forbids the operation for this document."""

    UNKNOWN = "unknown"
    """Unrecognized failure."""

    @property
    def is_retryable(self) -> bool:
        """Whether failures in this category are retried automatically."""
        return self in RETRYABLE_CATEGORIES


RETRYABLE_CATEGORIES = frozenset({ErrorCategory.NETWORK, ErrorCategory.SERVER})
"""Categories the backoff retrier will retry."""

DETERMINISTIC_CATEGORIES = frozenset({ErrorCategory.VALIDATION, ErrorCategory.BUSINESS_LOGIC})
"""Categories that fail identically when the same input is resent."""
