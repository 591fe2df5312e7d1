"""Structured logging infrastructure for fiscalsync.

Provides structured logging using structlog with operation-level context such
as the business operation name and the voucher it targets. Supports console
and JSON output, optionally mirrored to a rotating log file.

Example usage:
    from fiscalsync.core.logging import get_logger, configure_logging, with_context

    configure_logging(level="DEBUG", format="console")

    logger = get_logger("queue")
    logger.info("operation_enqueued", operation_id="abc")

    ctx = OperationLogContext(operation="E_INVOICE_GENERATE", target_id="v-1")
    with with_context(ctx):
        logger.info("replay_started")  # includes operation, target_id, run_id
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Field names whose values never reach a log sink
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "credential",
    "auth",
    "bearer",
    "authorization",
    "pan_number",
    "gstin",
})


@dataclass(frozen=True)
class OperationLogContext:
    """Immutable correlation fields for one business operation.

    Attributes:
        operation: Operation name (e.g. "E_INVOICE_GENERATE").
        target_id: Identifier of the document the operation acts on.
        run_id: Unique id for this attempt sequence.
        component: Component performing the work.
    """

    operation: str
    target_id: str | None = None
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    component: str = "unknown"

    def with_component(self, component: str) -> OperationLogContext:
        """Return a copy bound to another component."""
        return OperationLogContext(
            operation=self.operation,
            target_id=self.target_id,
            run_id=self.run_id,
            component=component,
        )

    def to_dict(self) -> dict[str, Any]:
        """Context fields for a log entry (None values omitted)."""
        result: dict[str, Any] = {
            "operation": self.operation,
            "run_id": self.run_id,
            "component": self.component,
        }
        if self.target_id is not None:
            result["target_id"] = self.target_id
        return result


# ContextVar keeps concurrent asyncio tasks isolated from each other
_current_context: ContextVar[OperationLogContext | None] = ContextVar(
    "fiscalsync_context", default=None
)


def get_current_context() -> OperationLogContext | None:
    """Get the active OperationLogContext, if any."""
    return _current_context.get()


@contextmanager
def with_context(ctx: OperationLogContext) -> Iterator[OperationLogContext]:
    """Set the OperationLogContext for the duration of a block.

    Every log call inside the block carries the context fields.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _sanitize_value(key: str, value: Any) -> Any:
    key_lower = key.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in key_lower:
            return "[REDACTED]"
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts sensitive fields (one level deep)."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, dict):
            sanitized[key] = {k: _sanitize_value(k, v) for k, v in value.items()}
        else:
            sanitized[key] = _sanitize_value(key, value)
    return sanitized


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that merges the active OperationLogContext.

    Explicitly passed fields take precedence over context fields.
    """
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            event_dict.setdefault(key, value)
    return event_dict


class FiscalSyncLogger:
    """Component logger wrapping structlog.

    The structlog logger is fetched on every call so that loggers created at
    import time still honor a later ``configure_logging()``.
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> FiscalSyncLogger:
        """Return a new logger with additional bound context."""
        new_logger = FiscalSyncLogger.__new__(FiscalSyncLogger)
        new_logger._component = self._component
        new_logger._context = {**self._context, **context}
        return new_logger

    def unbind(self, *keys: str) -> FiscalSyncLogger:
        """Return a new logger without the given keys."""
        new_logger = FiscalSyncLogger.__new__(FiscalSyncLogger)
        new_logger._component = self._component
        new_logger._context = {k: v for k, v in self._context.items() if k not in keys}
        return new_logger

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        self._get_logger().critical(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an error with traceback; call from an exception handler."""
        self._get_logger().exception(event, **kw)


def _build_processors(
    renderer: Processor,
    include_timestamps: bool,
    include_context: bool,
) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
    ]
    if include_context:
        processors.append(_add_context)
    if include_timestamps:
        processors.append(_add_timestamp)
    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ])
    return processors


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    format: Literal["json", "console", "both"] = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
    include_context: bool = True,
) -> None:
    """Configure fiscalsync structured logging.

    Call once at application startup.

    Args:
        level: Minimum log level to capture.
        format: "console" for human-readable stderr output, "json" for
            structured output (to file_path, or stdout without one), "both"
            for console on stderr plus a file (requires file_path).
        file_path: Optional log file, rotated by size.
        max_file_size_mb: Size in MB that triggers rotation.
        backup_count: Rotated files kept.
        include_timestamps: Add ISO-8601 UTC timestamps.
        include_context: Merge the active OperationLogContext.

    Raises:
        ValueError: If format="both" but file_path is not provided.
    """
    if format == "both" and file_path is None:
        raise ValueError("file_path is required when format='both'")

    log_level = getattr(logging, level)
    handlers: list[logging.Handler] = []

    if format in ("console", "both"):
        handlers.append(logging.StreamHandler(sys.stderr))

    if format in ("json", "both"):
        if file_path is not None:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    file_path,
                    maxBytes=max_file_size_mb * 1024 * 1024,
                    backupCount=backup_count,
                    encoding="utf-8",
                )
            )
        else:
            handlers.append(logging.StreamHandler(sys.stdout))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    renderer: Processor
    if format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # cache_logger_on_first_use=False keeps import-time loggers reconfigurable
    structlog.configure(
        processors=_build_processors(renderer, include_timestamps, include_context),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> FiscalSyncLogger:
    """Get a logger bound to a component name.

    Example:
        logger = get_logger("retry")
        logger.warning("retry_scheduled", attempt=2, delay_ms=2000)
    """
    return FiscalSyncLogger(component, **initial_context)


__all__ = [
    "FiscalSyncLogger",
    "OperationLogContext",
    "SENSITIVE_PATTERNS",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "with_context",
]
