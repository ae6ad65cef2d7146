"""Cache subsystem — policy caches and the registries that own them."""

from cmscache.cache.app_caches import AppCaches
from cmscache.cache.disk import SqliteAppCache
from cmscache.cache.factory import create_policy_cache, policy_cache_factory
from cmscache.cache.interface import AppPolicyCache, SupportsDispose, dispose_if_disposable
from cmscache.cache.isolated import IsolatedCaches
from cmscache.cache.memory import MemoryAppCache
from cmscache.cache.null import NoAppCache
from cmscache.cache.refresher import CacheNotification, CacheRefresher, RefreshKind
from cmscache.cache.registry import PolicedCacheRegistry
from cmscache.cache.repository import RepositoryCachePolicy
from cmscache.cache.stats import CacheEntry, CacheStats, RegistryStats

__all__ = [
    "AppCaches",
    "AppPolicyCache",
    "CacheEntry",
    "CacheNotification",
    "CacheRefresher",
    "CacheStats",
    "IsolatedCaches",
    "MemoryAppCache",
    "NoAppCache",
    "PolicedCacheRegistry",
    "RefreshKind",
    "RegistryStats",
    "RepositoryCachePolicy",
    "SqliteAppCache",
    "SupportsDispose",
    "create_policy_cache",
    "dispose_if_disposable",
    "policy_cache_factory",
]
