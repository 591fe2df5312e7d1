"""Exponential backoff retry for async operations.

Retries an operation while it fails with a retryable error (NETWORK or
SERVER), waiting between attempts with a delay that starts at the policy's
``initial_delay_ms``, is multiplied by ``backoff_multiplier`` after every
retry, and never exceeds ``max_delay_ms``.

Example usage:
    from fiscalsync.execution.retry import retry_with_backoff

    result = await retry_with_backoff(
        lambda: client.generate_einvoice(payload),
        RetryPolicy(max_retries=2, initial_delay_ms=500),
    )

Non-retryable errors and the last error after the budget is spent are
re-raised unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from fiscalsync.core.config import DEFAULT_RETRY_POLICY, RetryPolicy
from fiscalsync.core.errors import (
    ErrorClassifier,
    ErrorContext,
    ErrorResponder,
    OperationFailedError,
    RetryAbortedError,
    get_default_classifier,
)
from fiscalsync.core.logging import get_logger

_logger = get_logger("retry")

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]
RetryCallback = Callable[[int, BaseException, float], None]


class BackoffRetrier:
    """Runs async operations with classified, capped exponential backoff.

    Args:
        policy: Retry policy; the default policy when omitted.
        classifier: Decides which failures are retryable.
        sleep: Coroutine function taking seconds. Replaceable for tests.
        abort_event: When set during a wait, the wait ends and
            RetryAbortedError is raised instead of retrying.
        on_retry: Called with (attempt, error, delay_ms) before each wait.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        classifier: ErrorClassifier | None = None,
        sleep: SleepFn = asyncio.sleep,
        abort_event: asyncio.Event | None = None,
        on_retry: RetryCallback | None = None,
    ) -> None:
        self.policy = policy or DEFAULT_RETRY_POLICY
        self.classifier = classifier or get_default_classifier()
        self.sleep = sleep
        self.abort_event = abort_event
        self.on_retry = on_retry

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` until it succeeds or retrying stops.

        Returns:
            The operation's result.

        Raises:
            BaseException: The operation's last error, unchanged, when it is
                not retryable or ``max_retries`` retries have been spent.
            RetryAbortedError: If ``abort_event`` is set during a wait.
        """
        policy = self.policy
        delay_ms: float = policy.initial_delay_ms
        attempt = 0

        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as exc:
                classified = self.classifier.classify(exc)
                if not classified.is_retryable:
                    _logger.debug(
                        "retry_not_attempted",
                        attempt=attempt,
                        category=classified.category.value,
                    )
                    raise
                if attempt > policy.max_retries:
                    _logger.warning(
                        "retry_exhausted",
                        attempts=attempt,
                        category=classified.category.value,
                        error_message=classified.message,
                    )
                    raise

                _logger.info(
                    "retry_scheduled",
                    attempt=attempt,
                    delay_ms=delay_ms,
                    category=classified.category.value,
                )
                if self.on_retry is not None:
                    self.on_retry(attempt, exc, delay_ms)
                await self._wait(delay_ms, exc)
                delay_ms = policy.next_delay_ms(delay_ms)

    async def _wait(self, delay_ms: float, last_error: BaseException) -> None:
        seconds = delay_ms / 1000
        if self.abort_event is None:
            await self.sleep(seconds)
            return

        if self.abort_event.is_set():
            raise RetryAbortedError("Retry aborted before waiting", last_error) from last_error
        sleeper = asyncio.ensure_future(self.sleep(seconds))
        aborter = asyncio.ensure_future(self.abort_event.wait())
        try:
            await asyncio.wait({sleeper, aborter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, aborter):
                if not task.done():
                    task.cancel()
        if self.abort_event.is_set():
            _logger.info("retry_aborted", delay_ms=delay_ms)
            raise RetryAbortedError("Retry aborted during backoff wait", last_error) from last_error


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    classifier: ErrorClassifier | None = None,
    abort_event: asyncio.Event | None = None,
) -> T:
    """Run an async operation with exponential backoff.

    Total attempts are at most ``policy.max_retries + 1``. Only NETWORK and
    SERVER failures are retried; anything else is re-raised immediately.
    """
    retrier = BackoffRetrier(policy, classifier=classifier, abort_event=abort_event)
    return await retrier.run(operation)


async def with_error_handling(
    call: Callable[[], Awaitable[T]],
    context: ErrorContext,
    policy: RetryPolicy | None = None,
    *,
    responder: ErrorResponder | None = None,
) -> T:
    """Run a call and translate its failure into an OperationFailedError.

    When ``policy`` is given the call goes through the backoff retrier first.
    The raised OperationFailedError carries the ErrorResponse and its message
    is the user-facing message.
    """
    responder = responder or ErrorResponder()
    try:
        if policy is not None:
            retrier = BackoffRetrier(policy, classifier=responder.classifier)
            return await retrier.run(call)
        return await call()
    except Exception as exc:
        response = await responder.handle(exc, context)
        raise OperationFailedError(response, exc) from exc
