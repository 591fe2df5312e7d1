"""Execution helpers: backoff retry and error-handled calls."""

from fiscalsync.execution.retry import BackoffRetrier, retry_with_backoff, with_error_handling

__all__ = ["BackoffRetrier", "retry_with_backoff", "with_error_handling"]
