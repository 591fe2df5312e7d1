"""Encoding of the whole queue as one JSON array."""

from __future__ import annotations

import json
from collections.abc import Sequence

from pydantic import ValidationError as PydanticValidationError

from fiscalsync.core.errors import QueueStorageError
from fiscalsync.core.logging import get_logger
from fiscalsync.queue.operation import OfflineOperation

_logger = get_logger("queue.codec")


def encode_queue(operations: Sequence[OfflineOperation]) -> str:
    """Serialize operations, in order, to a JSON array."""
    return json.dumps([op.to_json() for op in operations])


def decode_queue(text: str) -> list[OfflineOperation]:
    """Parse a persisted JSON array back into operations.

    Entries that are not valid operations are skipped and logged; the rest
    keep their order.

    Raises:
        QueueStorageError: If the text is not a JSON array.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        raise QueueStorageError(f"Persisted queue is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise QueueStorageError(
            f"Persisted queue must be a JSON array, got {type(data).__name__}"
        )

    operations: list[OfflineOperation] = []
    for index, record in enumerate(data):
        if not isinstance(record, dict):
            _logger.warning("queue_record_skipped", index=index, reason="not an object")
            continue
        try:
            operations.append(OfflineOperation.from_json(record))
        except PydanticValidationError as e:
            _logger.warning(
                "queue_record_skipped",
                index=index,
                record_id=record.get("id"),
                reason=str(e.errors()[0]["msg"]) if e.errors() else "invalid",
            )
    return operations
