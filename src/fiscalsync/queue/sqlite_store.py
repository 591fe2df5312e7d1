"""SQLite key/value queue store.

Keeps the encoded queue in a small ``kv_store`` table so that several
storage keys (for example one per signed-in company) can share a database.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from fiscalsync.core.errors import QueueStorageError
from fiscalsync.core.logging import get_logger
from fiscalsync.queue.codec import decode_queue, encode_queue
from fiscalsync.queue.operation import OfflineOperation
from fiscalsync.queue.store import QueueStore
from fiscalsync.utils.time import utc_now

_logger = get_logger("queue.sqlite_store")


class SQLiteQueueStore(QueueStore):
    """Stores the queue as one row of a key/value table."""

    def __init__(self, db_path: str | Path, key: str = "offline_operations_queue") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.key = key
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(self.db_path) as db:
            yield db

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            async with self._connect() as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
                await db.commit()
            self._initialized = True
            _logger.debug("queue_db_initialized", db_path=str(self.db_path))

    async def load(self) -> list[OfflineOperation]:
        try:
            await self._ensure_initialized()
            async with self._connect() as db:
                cursor = await db.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (self.key,)
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise QueueStorageError(f"Failed to read queue from {self.db_path}: {e}") from e
        if row is None:
            return []
        return decode_queue(row[0])

    async def save(self, operations: Sequence[OfflineOperation]) -> None:
        try:
            await self._ensure_initialized()
            async with self._connect() as db:
                await db.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (self.key, encode_queue(operations), utc_now().isoformat()),
                )
                await db.commit()
        except aiosqlite.Error as e:
            _logger.error("queue_save_failed", db_path=str(self.db_path), error=str(e))
            raise QueueStorageError(f"Failed to write queue to {self.db_path}: {e}") from e
