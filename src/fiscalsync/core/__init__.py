"""Core building blocks: configuration, logging and error handling."""

from fiscalsync.core.config import (
    DEFAULT_RETRY_POLICY,
    ClassifierConfig,
    ConnectivityConfig,
    FiscalSyncConfig,
    LogConfig,
    QueueConfig,
    RetryPolicy,
    load_config,
)

__all__ = [
    "DEFAULT_RETRY_POLICY",
    "ClassifierConfig",
    "ConnectivityConfig",
    "FiscalSyncConfig",
    "LogConfig",
    "QueueConfig",
    "RetryPolicy",
    "load_config",
]
