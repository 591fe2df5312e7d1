"""Configuration models for fiscalsync.

Defines Pydantic v2 models for retry behavior, offline queue storage,
connectivity probing, error classification and logging, plus loading of the
YAML configuration file.

Example config.yaml:
    retry:
      max_retries: 3
      initial_delay_ms: 1000
      max_delay_ms: 10000
      backoff_multiplier: 2
    queue:
      storage: sqlite
      path: ~/.fiscalsync/queue.db
    connectivity:
      probe_url: https://api.example.com/health
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from fiscalsync.core.constants import (
    DEFAULT_AUTO_PROCESS_INTERVAL_SECONDS,
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_OPERATION_MAX_RETRIES,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    DEFAULT_PROBE_URL,
    DEFAULT_QUEUE_STORAGE_KEY,
    DEFAULT_ROUTE_CHECK_HOST,
    DEFAULT_ROUTE_CHECK_PORT,
)


class RetryPolicy(BaseModel):
    """Exponential backoff policy for inline retries.

    Delays grow from ``initial_delay_ms`` by ``backoff_multiplier`` after each
    retry and are capped at ``max_delay_ms``.
    """

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retries after the first attempt (total attempts = max_retries + 1)",
    )
    initial_delay_ms: int = Field(
        default=DEFAULT_INITIAL_DELAY_MS, gt=0, description="Delay before the first retry"
    )
    max_delay_ms: int = Field(
        default=DEFAULT_MAX_DELAY_MS, gt=0, description="Cap for any single delay"
    )
    backoff_multiplier: float = Field(
        default=DEFAULT_BACKOFF_MULTIPLIER, gt=1, description="Delay growth factor"
    )

    @model_validator(mode="after")
    def _validate_delay_range(self) -> RetryPolicy:
        if self.initial_delay_ms > self.max_delay_ms:
            raise ValueError(
                f"initial_delay_ms ({self.initial_delay_ms}) must not exceed "
                f"max_delay_ms ({self.max_delay_ms})"
            )
        return self

    def next_delay_ms(self, delay_ms: float) -> float:
        """Delay that follows ``delay_ms``."""
        return min(delay_ms * self.backoff_multiplier, self.max_delay_ms)

    def delays(self) -> Iterator[float]:
        """Yield the delay (ms) waited before each of the ``max_retries`` retries."""
        delay: float = self.initial_delay_ms
        for _ in range(self.max_retries):
            yield delay
            delay = self.next_delay_ms(delay)


DEFAULT_RETRY_POLICY = RetryPolicy()


class QueueConfig(BaseModel):
    """Offline queue storage and replay settings."""

    storage: Literal["json", "sqlite", "memory"] = Field(
        default="json",
        description="Backend holding the persisted queue",
    )
    path: Path = Field(
        default=DEFAULT_CONFIG_DIR / "queue",
        description="Directory (json) or database file (sqlite) for the queue",
    )
    storage_key: str = Field(
        default=DEFAULT_QUEUE_STORAGE_KEY,
        min_length=1,
        description="Key under which the queue is stored",
    )
    default_max_retries: int = Field(
        default=DEFAULT_OPERATION_MAX_RETRIES,
        ge=0,
        description="Replay retry budget given to operations created without one",
    )
    abandon_non_retryable: bool = Field(
        default=True,
        description="Drop an operation at once when replay fails with a validation "
        "or business-rule error instead of spending its retry budget",
    )
    auto_process_interval_seconds: float = Field(
        default=DEFAULT_AUTO_PROCESS_INTERVAL_SECONDS,
        gt=0,
        description="Connectivity poll interval of the auto processor",
    )


class ConnectivityConfig(BaseModel):
    """How connectivity and reachability are determined."""

    probe_url: str = Field(
        default=DEFAULT_PROBE_URL,
        description="URL fetched to confirm the wider network is reachable",
    )
    timeout_seconds: float = Field(
        default=DEFAULT_PROBE_TIMEOUT_SECONDS, gt=0, description="Probe request timeout"
    )
    route_check_host: str = Field(
        default=DEFAULT_ROUTE_CHECK_HOST,
        description="Address used for the local route lookup",
    )
    route_check_port: int = Field(default=DEFAULT_ROUTE_CHECK_PORT, ge=1, le=65535)
    force_offline: bool = Field(
        default=False,
        description="Report offline without probing (pauses queue replay)",
    )


class ClassifierConfig(BaseModel):
    """Additional business-rule signals recognized by the classifier."""

    business_error_codes: list[str] = Field(
        default_factory=list,
        description="Exact error codes treated as business-rule rejections",
    )
    business_message_patterns: list[str] = Field(
        default_factory=list,
        description="Extra regexes matched against error messages (last resort)",
    )


class LogConfig(BaseModel):
    """Logging output settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console", "both"] = "console"
    file_path: Path | None = None

    @model_validator(mode="after")
    def _validate_file_for_both(self) -> LogConfig:
        if self.format == "both" and self.file_path is None:
            raise ValueError("logging.file_path is required when format is 'both'")
        return self


class FiscalSyncConfig(BaseModel):
    """Root configuration."""

    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    connectivity: ConnectivityConfig = Field(default_factory=ConnectivityConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    logging: LogConfig = Field(default_factory=LogConfig)


def resolve_config_path(path: Path | None = None) -> Path:
    """Resolve the config file path, expanding ``~``."""
    return (path or DEFAULT_CONFIG_FILE).expanduser()


def load_config(path: Path | None = None) -> FiscalSyncConfig:
    """Load configuration from YAML.

    A missing file yields the defaults.

    Raises:
        pydantic.ValidationError: If the file content is not a valid config.
        yaml.YAMLError: If the file is not parseable YAML.
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        return FiscalSyncConfig()
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    return FiscalSyncConfig.model_validate(data)
