"""JSON file-based queue store.

The queue lives in ``{directory}/{storage_key}.json`` and is replaced
atomically (temp file + rename) on every save.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from fiscalsync.core.errors import QueueStorageError
from fiscalsync.core.logging import get_logger
from fiscalsync.queue.codec import decode_queue, encode_queue
from fiscalsync.queue.operation import OfflineOperation
from fiscalsync.queue.store import QueueStore

_logger = get_logger("queue.json_store")


class JsonFileQueueStore(QueueStore):
    """Stores the queue as a JSON array in a single file."""

    def __init__(self, directory: Path, key: str = "offline_operations_queue") -> None:
        """Initialize the store.

        Args:
            directory: Directory holding the queue file; created if missing.
            key: Storage key, used as the file name.
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.key = key

    @property
    def file_path(self) -> Path:
        safe_key = "".join(c if c.isalnum() or c in "-_" else "_" for c in self.key)
        return self.directory / f"{safe_key}.json"

    async def load(self) -> list[OfflineOperation]:
        path = self.file_path
        if not path.exists():
            return []
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise QueueStorageError(f"Failed to read queue file {path}: {e}") from e
        return decode_queue(text)

    async def save(self, operations: Sequence[OfflineOperation]) -> None:
        path = self.file_path
        temp_path = path.with_suffix(".json.tmp")
        try:
            temp_path.write_text(encode_queue(operations), encoding="utf-8")
            temp_path.replace(path)
        except OSError as e:
            _logger.error("queue_save_failed", path=str(path), error=str(e))
            raise QueueStorageError(f"Failed to write queue file {path}: {e}") from e
