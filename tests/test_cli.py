"""Tests for the fiscalsync CLI."""

import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from fiscalsync import __version__
from fiscalsync.cli import app
from fiscalsync.connectivity import NetworkState
from fiscalsync.core.config import load_config
from fiscalsync.queue import OfflineOperation, OfflineQueueManager, OperationType

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Config pointing the queue at a JSON store under tmp_path."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "queue": {"storage": "json", "path": str(tmp_path / "queue")},
        "connectivity": {"force_offline": True},
    }))
    return path


def _seed(config_file: Path, *operations: OfflineOperation) -> None:
    manager = OfflineQueueManager.from_config(load_config(config_file))

    async def _enqueue() -> None:
        for op in operations:
            await manager.enqueue(op)

    asyncio.run(_enqueue())


def _op(target_id: str, op_type: OperationType = OperationType.E_INVOICE_GENERATE, **kw):
    return OfflineOperation(type=op_type, target_id=target_id,
                            payload={"voucherId": target_id}, **kw)


class TestGlobalOptions:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_log_level(self, config_file: Path):
        result = runner.invoke(app, ["--config", str(config_file), "--log-level", "LOUD",
                                     "queue", "list"])
        assert result.exit_code != 0

    def test_invalid_config_file(self, tmp_path: Path):
        bad = tmp_path / "bad.yaml"
        bad.write_text(yaml.dump({"queue": {"storage": "redis"}}))
        result = runner.invoke(app, ["--config", str(bad), "queue", "list"])
        assert result.exit_code == 1
        assert "Error loading config" in result.output


class TestQueueCommands:
    def test_list_empty(self, config_file: Path):
        result = runner.invoke(app, ["--config", str(config_file), "queue", "list"])
        assert result.exit_code == 0
        assert "Queue is empty" in result.output

    def test_list_summary(self, config_file: Path):
        _seed(config_file, _op("v-1"), _op("v-2"))
        result = runner.invoke(app, ["--config", str(config_file), "queue", "list"])
        assert result.exit_code == 0
        assert "2 queued operations" in result.output

    def test_list_json(self, config_file: Path):
        first, second = _op("v-1"), _op("v-2", OperationType.TDS_CALCULATE)
        _seed(config_file, first, second)

        result = runner.invoke(app, ["--config", str(config_file), "--log-level", "ERROR",
                                     "queue", "list", "--json"])

        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert [r["id"] for r in records] == [first.id, second.id]
        assert records[1]["type"] == "TDS_CALCULATE"
        assert records[0]["voucherId"] == "v-1"

    def test_show(self, config_file: Path):
        op = _op("v-9", OperationType.CANCEL_DOCUMENT)
        _seed(config_file, op)

        result = runner.invoke(app, ["--config", str(config_file), "--log-level", "ERROR",
                                     "queue", "show", op.id, "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["type"] == "CANCEL_DOCUMENT"

    def test_show_missing(self, config_file: Path):
        result = runner.invoke(app, ["--config", str(config_file), "queue", "show", "nope"])
        assert result.exit_code == 1
        assert "Operation not found" in result.output

    def test_remove(self, config_file: Path):
        keep, drop = _op("v-1"), _op("v-2")
        _seed(config_file, keep, drop)

        result = runner.invoke(app, ["--config", str(config_file), "queue", "remove", drop.id])

        assert result.exit_code == 0
        remaining = asyncio.run(
            OfflineQueueManager.from_config(load_config(config_file)).get_queue()
        )
        assert [op.id for op in remaining] == [keep.id]

    def test_remove_missing(self, config_file: Path):
        result = runner.invoke(app, ["--config", str(config_file), "queue", "remove", "nope"])
        assert result.exit_code == 1

    def test_clear_with_yes(self, config_file: Path):
        _seed(config_file, _op("v-1"), _op("v-2"))
        result = runner.invoke(app, ["--config", str(config_file), "queue", "clear", "--yes"])
        assert result.exit_code == 0
        assert "Cleared" in result.output
        size = asyncio.run(
            OfflineQueueManager.from_config(load_config(config_file)).get_queue_size()
        )
        assert size == 0

    def test_clear_declined(self, config_file: Path):
        _seed(config_file, _op("v-1"))
        result = runner.invoke(app, ["--config", str(config_file), "queue", "clear"], input="n\n")
        assert result.exit_code == 1
        size = asyncio.run(
            OfflineQueueManager.from_config(load_config(config_file)).get_queue_size()
        )
        assert size == 1


class TestNetworkCommand:
    def test_forced_offline_exits_2(self, config_file: Path):
        result = runner.invoke(app, ["--config", str(config_file), "network"])
        assert result.exit_code == 2
        assert "force_offline" in result.output

    def test_online_json(self, tmp_path: Path):
        online = NetworkState(type="unknown", is_connected=True, is_internet_reachable=True)
        with patch(
            "fiscalsync.connectivity.checker.ConnectivityChecker.get_state",
            return_value=online,
        ):
            result = runner.invoke(app, ["--config", str(tmp_path / "none.yaml"),
                                         "--log-level", "ERROR", "network", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "type": "unknown",
            "is_connected": True,
            "is_internet_reachable": True,
            "is_online": True,
        }


class TestConfigShow:
    def test_defaults(self, tmp_path: Path):
        result = runner.invoke(app, ["--config", str(tmp_path / "none.yaml"), "config", "show"])
        assert result.exit_code == 0
        assert "(defaults)" in result.output
        assert "retry.max_retries" in result.output

    def test_file_values(self, config_file: Path):
        result = runner.invoke(app, ["--config", str(config_file), "config", "show"])
        assert result.exit_code == 0
        assert "queue.storage" in result.output
        assert "file" in result.output
