"""Error handling — exception hierarchy for the cache layer."""

from cmscache.errors.exceptions import (
    CacheConfigError,
    CacheDisposalError,
    CacheNotificationError,
    CmsCacheError,
    FactoryError,
    RegistryDisposedError,
)

__all__ = [
    "CmsCacheError",
    "FactoryError",
    "RegistryDisposedError",
    "CacheDisposalError",
    "CacheConfigError",
    "CacheNotificationError",
]
