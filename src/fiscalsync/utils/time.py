"""Time utilities for fiscalsync.

Queued operations carry timezone-aware timestamps; everything that creates or
parses one goes through these helpers.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Accepts the trailing ``Z`` form written by JavaScript clients
    (``2024-01-01T00:00:00.000Z``). Naive values are assumed to be UTC.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
