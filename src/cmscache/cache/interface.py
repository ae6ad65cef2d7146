"""Policy cache interface — what a registry composes over."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from cmscache.cache.stats import CacheStats

logger = logging.getLogger(__name__)


@runtime_checkable
class SupportsDispose(Protocol):
    def dispose(self) -> None: ...


def dispose_if_disposable(obj: object) -> bool:
    """Dispose ``obj`` if it supports disposal. Returns True if it did."""
    if isinstance(obj, SupportsDispose):
        obj.dispose()
        return True
    return False


class AppPolicyCache(ABC):
    """A named cache with its own content and expiry policy.

    Keys are strings scoped to this cache. ``timeout`` arguments are in
    seconds: None uses the cache default, 0 means the entry never expires.
    A factory returning None is never cached.
    """

    name: str = ""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss or expiry."""

    @abstractmethod
    def get_or_add(
        self,
        key: str,
        factory: Callable[[], Any],
        timeout: float | None = None,
        is_sliding: bool = False,
    ) -> Any | None:
        """Return the cached value, creating it with ``factory`` on a miss."""

    @abstractmethod
    def insert(
        self,
        key: str,
        factory: Callable[[], Any],
        timeout: float | None = None,
        is_sliding: bool = False,
    ) -> None:
        """Replace the entry for ``key`` with ``factory()``."""

    @abstractmethod
    def search_by_key(self, prefix: str) -> list[Any]:
        """Values of all live entries whose key starts with ``prefix``."""

    @abstractmethod
    def search_by_regex(self, pattern: str) -> list[Any]:
        """Values of all live entries whose key matches ``pattern``."""

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Remove the entry for exactly ``key``. Returns True if it existed."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry. The cache stays usable."""

    @abstractmethod
    def clear_by_key(self, prefix: str) -> int:
        """Remove entries whose key starts with ``prefix``."""

    @abstractmethod
    def clear_by_regex(self, pattern: str) -> int:
        """Remove entries whose key matches ``pattern``."""

    @abstractmethod
    def clear_of_type(self, value_type: type) -> int:
        """Remove entries whose value is an instance of ``value_type``."""

    @abstractmethod
    def stats(self) -> CacheStats: ...

    def __len__(self) -> int:
        return self.stats().entries
