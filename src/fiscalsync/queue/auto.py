"""Background replay of the offline queue.

Polls connectivity at a fixed interval and drains the queue whenever the
host is online with work queued. Hosts that receive connectivity callbacks
(for example from a network-change listener) can push them through
``notify_connectivity_change`` instead of waiting for the next poll.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from fiscalsync.core.logging import get_logger
from fiscalsync.queue.dispatch import QueueServices
from fiscalsync.queue.manager import DrainResult, OfflineQueueManager

_logger = get_logger("queue.auto")


class QueueAutoProcessor:
    """Drains an OfflineQueueManager when connectivity allows.

    Args:
        manager: Queue to drain.
        services: Collaborators used for replay.
        interval_seconds: Poll interval; the queue config's interval when
            omitted.
    """

    def __init__(
        self,
        manager: OfflineQueueManager,
        services: QueueServices | Mapping[str, Any] | None,
        interval_seconds: float | None = None,
    ) -> None:
        self.manager = manager
        self.services = services
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else manager.config.auto_process_interval_seconds
        )
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._was_online: bool | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the polling loop. Calling it again while running does nothing."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        self._task.add_done_callback(self._on_loop_done)
        _logger.info("auto_processor_started", interval=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the polling loop and wait for it to finish."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        _logger.info("auto_processor_stopped")

    async def check_now(self) -> DrainResult | None:
        """Probe connectivity once and drain if online with work queued.

        Returns:
            The drain result, or None when no drain was attempted.
        """
        online = await self.manager.check_connectivity()
        return await self._on_state(online, probed=True)

    async def notify_connectivity_change(self, online: bool) -> DrainResult | None:
        """Record an externally observed connectivity change.

        Going from offline to online triggers a drain right away. The drain
        still confirms connectivity itself before replaying anything.
        """
        return await self._on_state(online, probed=False)

    async def _on_state(self, online: bool, probed: bool) -> DrainResult | None:
        came_online = online and self._was_online is False
        self._was_online = online
        if not online:
            return None
        if came_online:
            _logger.info("connectivity_restored")
        elif await self.manager.get_queue_size() == 0:
            return None
        return await self.manager.process_queue(self.services, assume_online=probed)

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error(
                "auto_processor_died",
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.check_now()
            except asyncio.CancelledError:
                break
            except Exception:
                _logger.exception("auto_processor_check_failed")
            await asyncio.sleep(self.interval_seconds)
