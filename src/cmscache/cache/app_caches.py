"""Application caches — the process-wide cache composition root."""

from __future__ import annotations

import logging
import threading

from cmscache.cache.factory import create_policy_cache, policy_cache_factory
from cmscache.cache.interface import AppPolicyCache, dispose_if_disposable
from cmscache.cache.isolated import IsolatedCaches
from cmscache.cache.null import NoAppCache
from cmscache.config.schema import CacheSettings, load_settings

logger = logging.getLogger(__name__)

_RUNTIME_REGION = "runtime"


class AppCaches:
    """Runtime cache plus per-type isolated caches.

    Build one at startup, pass it explicitly to the services that need
    caching, and dispose it at shutdown.
    """

    def __init__(
        self,
        runtime_cache: AppPolicyCache,
        isolated_caches: IsolatedCaches,
    ) -> None:
        self._runtime_cache = runtime_cache
        self._isolated_caches = isolated_caches
        self._lock = threading.Lock()
        self._disposed = False

    @classmethod
    def from_settings(cls, settings: CacheSettings | None = None) -> AppCaches:
        """Build caches from settings (resolved from config if not given)."""
        settings = settings or load_settings()
        logger.info(
            "Initializing app caches: backend=%s shards=%d",
            settings.backend,
            settings.registry_shards,
        )
        return cls(
            runtime_cache=create_policy_cache(settings, _RUNTIME_REGION),
            isolated_caches=IsolatedCaches(
                policy_cache_factory(settings),
                shards=settings.registry_shards,
            ),
        )

    @classmethod
    def disabled(cls) -> AppCaches:
        """Caches that store nothing."""
        return cls(
            runtime_cache=NoAppCache(name=_RUNTIME_REGION),
            isolated_caches=IsolatedCaches(lambda t: NoAppCache(name=t.__name__)),
        )

    @property
    def runtime_cache(self) -> AppPolicyCache:
        return self._runtime_cache

    @property
    def isolated_caches(self) -> IsolatedCaches:
        return self._isolated_caches

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Dispose isolated caches, then the runtime cache. Idempotent."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
        try:
            self._isolated_caches.dispose()
        finally:
            dispose_if_disposable(self._runtime_cache)
        logger.info("App caches disposed")

    def __enter__(self) -> AppCaches:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()
