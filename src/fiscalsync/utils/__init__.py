"""Utility modules for fiscalsync."""

from fiscalsync.utils.time import parse_timestamp, utc_now

__all__ = ["parse_timestamp", "utc_now"]
