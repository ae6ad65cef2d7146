"""Cache factory — builds policy caches from settings.

This is the one place that maps a configured backend to a concrete policy
cache. Registries receive the callable returned by ``policy_cache_factory``
and never construct caches themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from cmscache.cache.disk import SqliteAppCache
from cmscache.cache.interface import AppPolicyCache
from cmscache.cache.keys import region_name
from cmscache.cache.memory import MemoryAppCache
from cmscache.cache.null import NoAppCache
from cmscache.config.schema import CacheSettings
from cmscache.errors.exceptions import CacheConfigError
from cmscache.types import CacheBackend

logger = logging.getLogger(__name__)


def create_policy_cache(settings: CacheSettings, region: str = "default") -> AppPolicyCache:
    """Create one policy cache for ``region`` using the configured backend.

    Raises:
        CacheConfigError: If the backend is not supported.
    """
    logger.debug("Creating %s policy cache for region '%s'", settings.backend, region)

    if settings.backend == CacheBackend.MEMORY:
        return MemoryAppCache(
            max_entries=settings.max_entries,
            default_ttl=settings.ttl_or_none,
            name=region,
        )
    if settings.backend == CacheBackend.SQLITE:
        return SqliteAppCache(
            db_path=settings.db_path,
            region=region,
            default_ttl=settings.ttl_or_none,
            max_entries=settings.max_entries,
        )
    if settings.backend == CacheBackend.NONE:
        return NoAppCache(name=region)

    raise CacheConfigError(
        f"Unknown cache backend: {settings.backend}",
        field="backend",
    )


def policy_cache_factory(settings: CacheSettings) -> Callable[[Any], AppPolicyCache]:
    """Return a registry factory mapping each key to its own region."""

    def factory(key: Any) -> AppPolicyCache:
        return create_policy_cache(settings, region_name(key))

    return factory
