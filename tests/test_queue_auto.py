"""Tests for QueueAutoProcessor."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from fiscalsync.queue import DrainStatus, QueueAutoProcessor


@pytest.mark.asyncio
class TestCheckNow:
    async def test_drains_when_online_with_work(self, manager, services, make_operation):
        await manager.enqueue(make_operation())
        processor = QueueAutoProcessor(manager, services, interval_seconds=60)

        result = await processor.check_now()

        assert result is not None
        assert result.status == DrainStatus.COMPLETED

    async def test_skips_empty_queue(self, manager, services):
        processor = QueueAutoProcessor(manager, services, interval_seconds=60)
        assert await processor.check_now() is None

    async def test_skips_when_offline(self, manager, network, services, make_operation):
        await manager.enqueue(make_operation())
        network.set_online(False)
        processor = QueueAutoProcessor(manager, services, interval_seconds=60)

        assert await processor.check_now() is None
        services.einvoice.generate_einvoice.assert_not_awaited()

    async def test_probes_connectivity_once(self, manager, services, make_operation,
                                            monkeypatch):
        check = AsyncMock(return_value=True)
        monkeypatch.setattr(manager, "check_connectivity", check)
        await manager.enqueue(make_operation())
        processor = QueueAutoProcessor(manager, services, interval_seconds=60)

        result = await processor.check_now()

        assert result.status == DrainStatus.COMPLETED
        check.assert_awaited_once()


@pytest.mark.asyncio
class TestConnectivityChange:
    async def test_reconnect_triggers_drain(self, manager, network, services, make_operation):
        processor = QueueAutoProcessor(manager, services, interval_seconds=60)
        network.set_online(False)
        assert await processor.notify_connectivity_change(False) is None

        await manager.enqueue(make_operation())
        network.set_online(True)
        result = await processor.notify_connectivity_change(True)

        assert result is not None
        assert result.processed
        services.einvoice.generate_einvoice.assert_awaited_once()

    async def test_reported_reconnect_is_confirmed(self, manager, network, services,
                                                   make_operation):
        await manager.enqueue(make_operation())
        network.set_online(False)
        processor = QueueAutoProcessor(manager, services, interval_seconds=60)
        await processor.notify_connectivity_change(False)

        result = await processor.notify_connectivity_change(True)

        assert result.status == DrainStatus.OFFLINE
        services.einvoice.generate_einvoice.assert_not_awaited()

    async def test_going_offline_does_nothing(self, manager, services, make_operation):
        await manager.enqueue(make_operation())
        processor = QueueAutoProcessor(manager, services, interval_seconds=60)
        assert await processor.notify_connectivity_change(False) is None
        assert await manager.get_queue_size() == 1


@pytest.mark.asyncio
class TestLoop:
    async def test_start_and_stop(self, manager, services, make_operation):
        await manager.enqueue(make_operation())
        processor = QueueAutoProcessor(manager, services, interval_seconds=0.01)

        await processor.start()
        assert processor.is_running
        for _ in range(100):
            if await manager.get_queue_size() == 0:
                break
            await asyncio.sleep(0.01)
        await processor.stop()

        assert not processor.is_running
        assert await manager.get_queue_size() == 0

    async def test_start_twice_keeps_one_task(self, manager, services):
        processor = QueueAutoProcessor(manager, services, interval_seconds=0.01)
        await processor.start()
        task = processor._task
        await processor.start()
        assert processor._task is task
        await processor.stop()

    async def test_loop_survives_check_errors(self, manager, services, make_operation, monkeypatch):
        calls = 0
        original = manager.check_connectivity

        async def flaky() -> bool:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("probe crashed")
            return await original()

        monkeypatch.setattr(manager, "check_connectivity", flaky)
        await manager.enqueue(make_operation())
        processor = QueueAutoProcessor(manager, services, interval_seconds=0.01)

        await processor.start()
        for _ in range(100):
            if await manager.get_queue_size() == 0:
                break
            await asyncio.sleep(0.01)
        await processor.stop()

        assert calls >= 2
        assert await manager.get_queue_size() == 0


def test_interval_defaults_to_config(manager, services):
    processor = QueueAutoProcessor(manager, services)
    assert processor.interval_seconds == manager.config.auto_process_interval_seconds
