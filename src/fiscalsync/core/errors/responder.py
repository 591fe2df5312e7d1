"""ErrorResponder: turns a classified failure into a decision record.

The decision depends only on the error's category:

| Category       | Message                         | Retry | Remote log | Notify |
|----------------|---------------------------------|-------|------------|--------|
| NETWORK        | connectivity advisory           | yes   | no         | no     |
| SERVER         | "try again"                     | yes   | yes        | yes    |
| VALIDATION     | server message, else fallback   | no    | yes        | no     |
| BUSINESS_LOGIC | the error's own message         | no    | yes        | no     |
| UNKNOWN        | contact support                 | yes   | yes        | yes    |

Network failures are frequent and transient, so they are not forwarded to
the remote error log. Validation and business-rule failures repeat for the
same input, so no retry is offered but the specific reason is kept.
"""

from __future__ import annotations

import traceback
from typing import Any, Protocol

from fiscalsync.core.constants import (
    MESSAGE_BUSINESS_FALLBACK,
    MESSAGE_NETWORK,
    MESSAGE_SERVER,
    MESSAGE_UNKNOWN,
    MESSAGE_VALIDATION_FALLBACK,
    TRUNCATE_STACK_CHARS,
)
from fiscalsync.core.logging import get_logger
from fiscalsync.utils.time import utc_now

from .classifier import ErrorClassifier, get_default_classifier
from .codes import ErrorCategory
from .models import ClassifiedError, ErrorContext, ErrorResponse

_logger = get_logger("errors.responder")


class ErrorReporter(Protocol):
    """Sink for failures that warrant operational visibility."""

    async def report(self, record: dict[str, Any]) -> None: ...


class UserNotifier(Protocol):
    """Raises a user-visible notification for a failure."""

    async def notify(self, response: ErrorResponse, context: ErrorContext) -> None: ...


class ErrorResponder:
    """Produces ErrorResponse decisions and structured log records."""

    def __init__(self, classifier: ErrorClassifier | None = None) -> None:
        self.classifier = classifier or get_default_classifier()

    def respond(self, error: BaseException, context: ErrorContext) -> ErrorResponse:
        """Decide how a failure is presented and handled.

        Args:
            error: The raised exception.
            context: Operation and target the failure belongs to.

        Returns:
            ErrorResponse whose category equals ``classifier.categorize(error)``.
        """
        return self.respond_classified(self.classifier.classify(error))

    def respond_classified(self, classified: ClassifiedError) -> ErrorResponse:
        """Build the decision for an already classified error."""
        category = classified.category
        if category is ErrorCategory.NETWORK:
            return ErrorResponse(
                message=MESSAGE_NETWORK,
                allow_retry=True,
                log_remotely=False,
                notify_user=False,
                category=category,
            )
        if category is ErrorCategory.SERVER:
            return ErrorResponse(
                message=MESSAGE_SERVER,
                allow_retry=True,
                log_remotely=True,
                notify_user=True,
                category=category,
            )
        if category is ErrorCategory.VALIDATION:
            return ErrorResponse(
                message=classified.server_message or MESSAGE_VALIDATION_FALLBACK,
                allow_retry=False,
                log_remotely=True,
                notify_user=False,
                category=category,
            )
        if category is ErrorCategory.BUSINESS_LOGIC:
            return ErrorResponse(
                message=str(classified.original_error) or MESSAGE_BUSINESS_FALLBACK,
                allow_retry=False,
                log_remotely=True,
                notify_user=False,
                category=category,
            )
        return ErrorResponse(
            message=MESSAGE_UNKNOWN,
            allow_retry=True,
            log_remotely=True,
            notify_user=True,
            category=ErrorCategory.UNKNOWN,
        )

    def user_message(self, error: BaseException) -> str:
        """The message a user would see for this error."""
        return self.respond_classified(self.classifier.classify(error)).message

    def format_for_logging(
        self,
        error: BaseException,
        context: ErrorContext,
    ) -> dict[str, Any]:
        """Structured record for the remote error log.

        Always contains: category, message, operation, voucher_id,
        status_code, error_code, timestamp, stack.
        """
        classified = self.classifier.classify(error)
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        return {
            "category": classified.category.value,
            "message": classified.message,
            "operation": context.operation,
            "voucher_id": context.target_id,
            "status_code": classified.status_code,
            "error_code": classified.error_code,
            "error_type": type(error).__name__,
            "timestamp": utc_now().isoformat(),
            "stack": stack[-TRUNCATE_STACK_CHARS:],
        }

    async def handle(
        self,
        error: BaseException,
        context: ErrorContext,
        reporter: ErrorReporter | None = None,
        notifier: UserNotifier | None = None,
    ) -> ErrorResponse:
        """Respond to a failure and carry out its side effects.

        Logs the failure, forwards it to ``reporter`` when the decision asks
        for remote logging and to ``notifier`` when it asks for a user
        notification. Failures of the reporter or notifier are logged and do
        not replace the original decision.
        """
        classified = self.classifier.classify(error)
        response = self.respond_classified(classified)
        log = _logger.bind(
            operation=context.operation,
            target_id=context.target_id,
            category=classified.category.value,
        )

        if response.log_remotely:
            log.error("operation_error", error_message=classified.message,
                      status_code=classified.status_code, error_code=classified.error_code)
        else:
            log.warning("operation_error", error_message=classified.message)

        if response.log_remotely and reporter is not None:
            try:
                await reporter.report(self.format_for_logging(error, context))
            except Exception as exc:
                log.warning("error_report_failed", reporter_error=str(exc))

        if response.notify_user and notifier is not None:
            try:
                await notifier.notify(response, context)
            except Exception as exc:
                log.warning("error_notification_failed", notifier_error=str(exc))

        return response


_default_responder = ErrorResponder()


def respond_to_error(error: BaseException, context: ErrorContext) -> ErrorResponse:
    """Respond with the default classifier."""
    return _default_responder.respond(error, context)


def get_user_friendly_message(error: BaseException) -> str:
    """User-facing message for an error, using the default classifier."""
    return _default_responder.user_message(error)


def format_error_for_logging(error: BaseException, context: ErrorContext) -> dict[str, Any]:
    """Structured log record for an error, using the default classifier."""
    return _default_responder.format_for_logging(error, context)


async def handle_error(
    error: BaseException,
    context: ErrorContext,
    reporter: ErrorReporter | None = None,
    notifier: UserNotifier | None = None,
) -> ErrorResponse:
    """Respond to an error and perform logging / notification side effects."""
    return await _default_responder.handle(error, context, reporter, notifier)
