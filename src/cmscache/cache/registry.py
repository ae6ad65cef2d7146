"""Policed cache registry — lazily created, independently disposed cache regions.

Each key maps to its own policy cache built by a caller-supplied factory.
Keys are spread over lock-striped shards so that creating or removing one
region never waits on an unrelated one. Lookups of existing regions take no
lock at all. Clears run under the shard lock, so a region cannot be disposed
while it is being cleared.

Lifecycle is ``Active -> Disposed``. Once disposed, every operation except
``dispose()`` raises RegistryDisposedError.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable
from typing import Any, Generic, TypeVar

from cmscache.cache.interface import AppPolicyCache, dispose_if_disposable
from cmscache.cache.stats import RegistryStats
from cmscache.config.defaults import DEFAULT_REGISTRY_SHARDS
from cmscache.errors.exceptions import (
    CacheDisposalError,
    FactoryError,
    RegistryDisposedError,
)
from cmscache.types import Attempt

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


class _Shard:
    """One lock stripe: its own lock, map and lifecycle counters."""

    __slots__ = ("lock", "caches", "created", "discarded", "removed")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.caches: dict[Any, AppPolicyCache] = {}
        self.created = 0
        self.discarded = 0
        self.removed = 0

    def detach_all(self, count_removed: bool = True) -> list[tuple[Any, AppPolicyCache]]:
        with self.lock:
            detached = list(self.caches.items())
            self.caches.clear()
            if count_removed:
                self.removed += len(detached)
        return detached


class PolicedCacheRegistry(Generic[K]):
    """Concurrent map of key -> policy cache, created on first use.

    The registry owns every cache it creates. Removing a region, sweeping
    the registry or disposing it disposes the affected caches, so callers
    should re-fetch through the registry instead of holding on to a cache.
    """

    def __init__(
        self,
        cache_factory: Callable[[K], AppPolicyCache],
        shards: int = DEFAULT_REGISTRY_SHARDS,
        name: str | None = None,
    ) -> None:
        if shards < 1:
            raise ValueError(f"shards must be >= 1, got {shards}")
        self._cache_factory = cache_factory
        self._shards = tuple(_Shard() for _ in range(shards))
        self._name = name or type(self).__name__
        self._state_lock = threading.Lock()
        self._disposed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ── Lookup and creation ──

    def get_or_create(self, key: K) -> AppPolicyCache:
        """Return the cache for ``key``, creating it on first use.

        Concurrent callers racing on an absent key all receive the same
        instance. The factory may run more than once under contention; the
        instances that lose the insert are disposed and never returned.

        Raises FactoryError if the factory fails, leaving the registry
        unchanged.
        """
        self._ensure_active()
        shard = self._shard_for(key)
        cache = shard.caches.get(key)
        if cache is not None:
            return cache

        candidate = self._create(key)
        with shard.lock:
            if self._disposed:
                winner = None
            else:
                winner = shard.caches.setdefault(key, candidate)
                if winner is candidate:
                    shard.created += 1
                else:
                    shard.discarded += 1

        if winner is None:
            self._discard(key, candidate)
            raise RegistryDisposedError(registry=self._name)
        if winner is not candidate:
            logger.debug("Discarding cache built for %r in %s: lost creation race", key, self._name)
            self._discard(key, candidate)
        else:
            logger.info("Created cache region %r in %s", key, self._name)
        return winner

    def try_get(self, key: K) -> Attempt[AppPolicyCache]:
        """Look up an existing cache without creating one."""
        self._ensure_active()
        cache = self._shard_for(key).caches.get(key)
        if cache is None:
            return Attempt.fail()
        return Attempt.succeed(cache)

    # ── Removal ──

    def remove(self, key: K) -> None:
        """Detach and dispose the cache for ``key``. No-op when absent."""
        self._ensure_active()
        shard = self._shard_for(key)
        with shard.lock:
            cache = shard.caches.pop(key, None)
            if cache is not None:
                shard.removed += 1
        if cache is None:
            return
        dispose_if_disposable(cache)
        logger.info("Removed cache region %r from %s", key, self._name)

    def remove_all(self) -> None:
        """Detach and dispose every cache.

        Each shard is emptied atomically; a region created concurrently in
        a shard that was already swept survives.
        """
        self._ensure_active()
        detached: list[tuple[Any, AppPolicyCache]] = []
        for shard in self._shards:
            detached.extend(shard.detach_all())
        logger.info("Removed %d cache region(s) from %s", len(detached), self._name)
        self._dispose_caches(detached)

    # ── Clearing ──

    def apply(self, key: K, action: Callable[[AppPolicyCache], Any]) -> bool:
        """Run ``action`` on the cache for ``key`` if it exists.

        The shard lock is held for the duration, so the cache cannot be
        removed or disposed while ``action`` runs. ``action`` must be short
        and must not call back into this registry. Returns False when no
        cache is registered for ``key``.
        """
        self._ensure_active()
        shard = self._shard_for(key)
        with shard.lock:
            cache = shard.caches.get(key)
            if cache is None:
                return False
            action(cache)
        return True

    def clear_cache(self, key: K) -> None:
        """Empty the cache for ``key`` if it exists; it stays registered."""
        self.apply(key, lambda cache: cache.clear())

    def clear_all_caches(self) -> None:
        """Empty every registered cache without removing any."""
        self._ensure_active()
        for shard in self._shards:
            with shard.lock:
                for cache in shard.caches.values():
                    cache.clear()

    # ── Lifecycle ──

    def dispose(self) -> None:
        """Dispose every cache and mark the registry disposed.

        Only the first call does anything. If some caches fail to dispose,
        the rest are still disposed and a CacheDisposalError is raised.
        """
        with self._state_lock:
            if self._disposed:
                return
            self._disposed = True

        detached: list[tuple[Any, AppPolicyCache]] = []
        for shard in self._shards:
            detached.extend(shard.detach_all(count_removed=False))
        try:
            self._dispose_caches(detached)
        finally:
            logger.info("Disposed %s (%d region(s))", self._name, len(detached))

    def __enter__(self) -> PolicedCacheRegistry[K]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    # ── Introspection ──

    def keys(self) -> list[K]:
        """Snapshot of the currently registered keys."""
        result: list[K] = []
        for shard in self._shards:
            with shard.lock:
                result.extend(shard.caches)
        return result

    def stats(self) -> RegistryStats:
        regions = created = discarded = removed = 0
        for shard in self._shards:
            with shard.lock:
                regions += len(shard.caches)
                created += shard.created
                discarded += shard.discarded
                removed += shard.removed
        return RegistryStats(
            name=self._name,
            regions=regions,
            created=created,
            discarded_on_race=discarded,
            removed=removed,
            disposed=self._disposed,
        )

    def __len__(self) -> int:
        return sum(len(shard.caches) for shard in self._shards)

    def __contains__(self, key: object) -> bool:
        return key in self._shard_for(key).caches  # type: ignore[arg-type]

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"<{type(self).__name__} {self._name!r} regions={len(self)} {state}>"

    # ── Internals ──

    def _shard_for(self, key: Any) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    def _ensure_active(self) -> None:
        if self._disposed:
            raise RegistryDisposedError(registry=self._name)

    def _create(self, key: K) -> AppPolicyCache:
        try:
            cache = self._cache_factory(key)
        except Exception as e:
            logger.error("Cache factory failed for %r in %s: %s", key, self._name, e)
            raise FactoryError(f"Cache factory failed for key {key!r}: {e}", key=key) from e
        if cache is None:
            raise FactoryError(f"Cache factory returned None for key {key!r}", key=key)
        return cache

    def _discard(self, key: K, candidate: AppPolicyCache) -> None:
        try:
            dispose_if_disposable(candidate)
        except Exception:
            logger.exception("Failed to dispose discarded cache for %r in %s", key, self._name)

    def _dispose_caches(self, caches: list[tuple[Any, AppPolicyCache]]) -> None:
        errors: list[tuple[Any, BaseException]] = []
        for key, cache in caches:
            try:
                dispose_if_disposable(cache)
            except Exception as e:
                logger.exception("Failed to dispose cache region %r in %s", key, self._name)
                errors.append((key, e))
        if errors:
            raise CacheDisposalError(
                f"{len(errors)} cache region(s) failed to dispose in {self._name}",
                errors=errors,
            )
