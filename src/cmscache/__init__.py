"""cmscache — policy-driven cache registry for a content management system."""

from cmscache.cache.app_caches import AppCaches
from cmscache.cache.interface import AppPolicyCache, dispose_if_disposable
from cmscache.cache.isolated import IsolatedCaches
from cmscache.cache.memory import MemoryAppCache
from cmscache.cache.registry import PolicedCacheRegistry
from cmscache.config.schema import CacheSettings, load_settings
from cmscache.errors import (
    CacheConfigError,
    CacheDisposalError,
    CmsCacheError,
    FactoryError,
    RegistryDisposedError,
)
from cmscache.types import Attempt, CacheBackend

__version__ = "0.1.0"

__all__ = [
    "AppCaches",
    "AppPolicyCache",
    "Attempt",
    "CacheBackend",
    "CacheConfigError",
    "CacheDisposalError",
    "CacheSettings",
    "CmsCacheError",
    "FactoryError",
    "IsolatedCaches",
    "MemoryAppCache",
    "PolicedCacheRegistry",
    "RegistryDisposedError",
    "dispose_if_disposable",
    "load_settings",
]
