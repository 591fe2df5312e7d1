"""Global constants for fiscalsync.

Centralizes the defaults and fixed strings used throughout the package so
they are discoverable and consistent.
"""

from pathlib import Path

# =============================================================================
# Retry Defaults
# =============================================================================

DEFAULT_MAX_RETRIES = 3
"""Default number of retries after the first attempt."""

DEFAULT_INITIAL_DELAY_MS = 1000
"""Delay before the first retry (milliseconds)."""

DEFAULT_MAX_DELAY_MS = 10000
"""Upper bound for any single backoff delay (milliseconds)."""

DEFAULT_BACKOFF_MULTIPLIER = 2.0
"""Factor applied to the delay after each retry."""

# =============================================================================
# Offline Queue
# =============================================================================

DEFAULT_QUEUE_STORAGE_KEY = "offline_operations_queue"
"""Key under which the whole queue is persisted as one JSON array."""

DEFAULT_OPERATION_MAX_RETRIES = 3
"""Replay retry budget for a newly created offline operation."""

DEFAULT_AUTO_PROCESS_INTERVAL_SECONDS = 30.0
"""Interval between connectivity polls of the auto processor."""

DEFAULT_CONFIG_DIR = Path("~/.fiscalsync")
"""Directory holding the config file and default queue storage."""

DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
"""Default location of the YAML configuration file."""

# =============================================================================
# Connectivity
# =============================================================================

DEFAULT_PROBE_URL = "https://clients3.google.com/generate_204"
"""Endpoint fetched to confirm reachability of the wider network."""

DEFAULT_PROBE_TIMEOUT_SECONDS = 5.0
"""Timeout for the reachability probe."""

DEFAULT_ROUTE_CHECK_HOST = "8.8.8.8"
"""Address used for the local route lookup (no packets are sent)."""

DEFAULT_ROUTE_CHECK_PORT = 53

# =============================================================================
# User-facing messages
# =============================================================================

MESSAGE_NETWORK = "Unable to connect. Please check your internet connection."
MESSAGE_SERVER = "Server error occurred. Please try again."
MESSAGE_VALIDATION_FALLBACK = "Invalid data provided. Please check your input."
MESSAGE_BUSINESS_FALLBACK = "This operation is not allowed for the selected document."
MESSAGE_UNKNOWN = "An unexpected error occurred. Please contact support."

# =============================================================================
# Classification signals
# =============================================================================

NETWORK_ERROR_CODES = frozenset({
    "ERR_NETWORK",
    "ECONNREFUSED",
    "ECONNABORTED",
    "ECONNRESET",
    "ETIMEDOUT",
    "ENETUNREACH",
})
"""Transport error codes that always indicate a network failure."""

BUSINESS_ERROR_CODE_PREFIX = "BL_"
"""Reserved prefix for business-rule error codes issued by the services."""

NON_VALIDATION_CLIENT_STATUSES = frozenset({401, 403, 404})
"""4xx statuses that belong to the auth / routing layer, not validation."""

TRUNCATE_STACK_CHARS = 4000
"""Maximum characters of traceback kept in a formatted error record."""
