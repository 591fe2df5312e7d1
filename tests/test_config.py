"""Tests for configuration models and YAML loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError as PydanticValidationError

from fiscalsync.core.config import (
    FiscalSyncConfig,
    LogConfig,
    QueueConfig,
    load_config,
    resolve_config_path,
)


class TestDefaults:
    def test_root_defaults(self):
        config = FiscalSyncConfig()
        assert config.retry.max_retries == 3
        assert config.queue.storage == "json"
        assert config.queue.storage_key == "offline_operations_queue"
        assert config.queue.default_max_retries == 3
        assert config.queue.abandon_non_retryable is True
        assert config.connectivity.force_offline is False
        assert config.classifier.business_error_codes == []
        assert config.logging.level == "INFO"

    def test_resolve_default_path(self):
        assert resolve_config_path() == Path("~/.fiscalsync/config.yaml").expanduser()


class TestValidation:
    def test_unknown_storage_rejected(self):
        with pytest.raises(PydanticValidationError):
            QueueConfig(storage="redis")

    def test_negative_budget_rejected(self):
        with pytest.raises(PydanticValidationError):
            QueueConfig(default_max_retries=-1)

    def test_both_log_format_requires_file(self, tmp_path: Path):
        with pytest.raises(PydanticValidationError):
            LogConfig(format="both")
        assert LogConfig(format="both", file_path=tmp_path / "log.jsonl").file_path is not None


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path):
        assert load_config(tmp_path / "missing.yaml") == FiscalSyncConfig()

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == FiscalSyncConfig()

    def test_values_from_file(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({
            "retry": {"max_retries": 5, "initial_delay_ms": 500},
            "queue": {"storage": "sqlite", "path": str(tmp_path / "queue.db")},
            "classifier": {"business_error_codes": ["GST_2150"]},
        }))

        config = load_config(path)

        assert config.retry.max_retries == 5
        assert config.retry.initial_delay_ms == 500
        assert config.queue.storage == "sqlite"
        assert config.queue.path == tmp_path / "queue.db"
        assert config.classifier.business_error_codes == ["GST_2150"]

    def test_invalid_values_raise(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"retry": {"backoff_multiplier": 0.5}}))
        with pytest.raises(PydanticValidationError):
            load_config(path)

    def test_invalid_yaml_raises(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("retry: [unclosed")
        with pytest.raises(yaml.YAMLError):
            load_config(path)
