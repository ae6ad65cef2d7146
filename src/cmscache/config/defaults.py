"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Default policy cache settings
DEFAULT_BACKEND = "memory"
DEFAULT_MAX_ENTRIES = 1000
DEFAULT_TTL_SECONDS = 0  # 0 = no expiry
DEFAULT_SLIDING = False
DEFAULT_DB_PATH = str(Path.home() / ".cmscache" / "cache.db")

# Default registry settings
DEFAULT_REGISTRY_SHARDS = 16

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "backend": DEFAULT_BACKEND,
        "max_entries": DEFAULT_MAX_ENTRIES,
        "default_ttl": DEFAULT_TTL_SECONDS,
        "sliding": DEFAULT_SLIDING,
        "db_path": DEFAULT_DB_PATH,
        "registry_shards": DEFAULT_REGISTRY_SHARDS,
        "log_level": DEFAULT_LOG_LEVEL,
    }
