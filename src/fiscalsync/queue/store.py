"""Storage port for the offline queue.

The queue manager reads the queue once at startup and writes the complete
queue after every mutation. Stores only ever see the whole queue, never
individual operations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

from fiscalsync.queue.codec import decode_queue, encode_queue
from fiscalsync.queue.operation import OfflineOperation

if TYPE_CHECKING:
    from fiscalsync.core.config import QueueConfig


class QueueStore(ABC):
    """Abstract base class for queue persistence."""

    @abstractmethod
    async def load(self) -> list[OfflineOperation]:
        """Load the persisted queue.

        Returns:
            Operations in queue order; empty when nothing is stored.

        Raises:
            QueueStorageError: If the stored queue is unreadable.
        """
        ...

    @abstractmethod
    async def save(self, operations: Sequence[OfflineOperation]) -> None:
        """Replace the persisted queue with ``operations``.

        Raises:
            QueueStorageError: If the queue could not be written.
        """
        ...

    async def close(self) -> None:
        """Release resources held by the store."""
        return None


class InMemoryQueueStore(QueueStore):
    """Queue store holding the encoded queue in a dict.

    Values are stored encoded, so a second manager built on the same store
    goes through the same decode path as a real restart.
    """

    def __init__(self, key: str = "offline_operations_queue") -> None:
        self.key = key
        self.data: dict[str, str] = {}
        self.save_count = 0

    async def load(self) -> list[OfflineOperation]:
        text = self.data.get(self.key)
        if text is None:
            return []
        return decode_queue(text)

    async def save(self, operations: Sequence[OfflineOperation]) -> None:
        self.data[self.key] = encode_queue(operations)
        self.save_count += 1


def create_queue_store(config: QueueConfig) -> QueueStore:
    """Build the store selected by ``config.storage``."""
    if config.storage == "memory":
        return InMemoryQueueStore(config.storage_key)
    if config.storage == "sqlite":
        from fiscalsync.queue.sqlite_store import SQLiteQueueStore

        return SQLiteQueueStore(config.path.expanduser(), config.storage_key)

    from fiscalsync.queue.json_store import JsonFileQueueStore

    return JsonFileQueueStore(config.path.expanduser(), config.storage_key)
