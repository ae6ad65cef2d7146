"""Cache entry and statistics models."""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """A single value held by a policy cache."""

    key: str
    value: Any = None
    created_at: float = Field(default_factory=time.time)
    last_accessed: float = Field(default_factory=time.time)
    ttl_seconds: float | None = None  # None = never expires
    sliding: bool = False

    @property
    def expires_at(self) -> float | None:
        if self.ttl_seconds is None:
            return None
        base = self.last_accessed if self.sliding else self.created_at
        return base + self.ttl_seconds

    @property
    def is_expired(self) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and time.time() > expires_at

    def touch(self) -> None:
        """Record an access; renews the expiry of sliding entries."""
        self.last_accessed = time.time()


class CacheStats(BaseModel):
    """Statistics for one policy cache."""

    name: str = ""
    entries: int = 0
    size_mb: float = 0.0
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class RegistryStats(BaseModel):
    """Lifecycle counters for a cache registry."""

    name: str = ""
    regions: int = 0
    created: int = 0
    discarded_on_race: int = 0
    removed: int = 0
    disposed: bool = False
