"""Tests for structured logging configuration and processors."""

import json
import logging
from pathlib import Path

import pytest

from fiscalsync.core.logging import (
    OperationLogContext,
    configure_logging,
    get_current_context,
    get_logger,
    with_context,
)


def _read_entries(path: Path) -> list[dict]:
    for handler in logging.getLogger().handlers:
        handler.flush()
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    path = tmp_path / "logs" / "fiscalsync.jsonl"
    configure_logging(level="DEBUG", format="json", file_path=path)
    return path


class TestConfigureLogging:
    def test_both_requires_file(self):
        with pytest.raises(ValueError, match="file_path is required"):
            configure_logging(format="both")

    def test_json_entries(self, log_file: Path):
        get_logger("queue").info("operation_enqueued", operation_id="op-1", queue_size=2)

        entries = _read_entries(log_file)
        assert len(entries) == 1
        entry = entries[0]
        assert entry["event"] == "operation_enqueued"
        assert entry["component"] == "queue"
        assert entry["operation_id"] == "op-1"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_level_filtering(self, tmp_path: Path):
        path = tmp_path / "warn.jsonl"
        configure_logging(level="WARNING", format="json", file_path=path)
        logger = get_logger("retry")
        logger.info("retry_scheduled")
        logger.warning("retry_exhausted")

        assert [e["event"] for e in _read_entries(path)] == ["retry_exhausted"]

    def test_creates_log_directory(self, log_file: Path):
        assert log_file.parent.is_dir()


class TestRedaction:
    def test_sensitive_keys_are_redacted(self, log_file: Path):
        get_logger("auth").info(
            "session_started",
            access_token="abc123",
            buyer_gstin="29ABCDE1234F1Z5",
            company="Acme Traders",
        )

        entry = _read_entries(log_file)[0]
        assert entry["access_token"] == "[REDACTED]"
        assert entry["buyer_gstin"] == "[REDACTED]"
        assert entry["company"] == "Acme Traders"

    def test_nested_dict_is_redacted(self, log_file: Path):
        get_logger("api").info("request_sent", headers={"Authorization": "Bearer x", "Accept": "json"})

        entry = _read_entries(log_file)[0]
        assert entry["headers"] == {"Authorization": "[REDACTED]", "Accept": "json"}


class TestOperationContext:
    def test_context_fields_are_merged(self, log_file: Path):
        ctx = OperationLogContext(operation="E_INVOICE_GENERATE", target_id="v-1")
        with with_context(ctx):
            get_logger("queue").info("operation_processed")

        entry = _read_entries(log_file)[0]
        assert entry["operation"] == "E_INVOICE_GENERATE"
        assert entry["target_id"] == "v-1"
        assert entry["run_id"] == ctx.run_id
        assert entry["component"] == "queue"

    def test_explicit_fields_win(self, log_file: Path):
        with with_context(OperationLogContext(operation="TDS_CALCULATE", target_id="v-1")):
            get_logger("queue").info("operation_processed", target_id="v-override")

        assert _read_entries(log_file)[0]["target_id"] == "v-override"

    def test_context_is_restored(self):
        assert get_current_context() is None
        ctx = OperationLogContext(operation="UPDATE_VEHICLE")
        with with_context(ctx):
            assert get_current_context() is ctx
        assert get_current_context() is None

    def test_with_component_keeps_run_id(self):
        ctx = OperationLogContext(operation="CANCEL_DOCUMENT", component="queue")
        moved = ctx.with_component("retry")
        assert moved.run_id == ctx.run_id
        assert moved.component == "retry"
        assert "target_id" not in ctx.to_dict()


class TestLoggerBinding:
    def test_bind_and_unbind(self, log_file: Path):
        base = get_logger("queue")
        bound = base.bind(storage="sqlite")
        bound.info("queue_loaded")
        bound.unbind("storage").info("queue_loaded")

        first, second = _read_entries(log_file)
        assert first["storage"] == "sqlite"
        assert "storage" not in second
