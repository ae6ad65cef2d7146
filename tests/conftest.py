import threading

import pytest

from cmscache.cache.memory import MemoryAppCache
from cmscache.config.schema import CacheSettings


class TrackingCache(MemoryAppCache):
    """Memory cache that records how often it was disposed."""

    def __init__(self, key: object = None) -> None:
        super().__init__(name=str(key))
        self.key = key
        self.dispose_count = 0
        self._dispose_lock = threading.Lock()

    def dispose(self) -> None:
        with self._dispose_lock:
            self.dispose_count += 1


class TrackingFactory:
    """Cache factory that remembers every cache it built."""

    def __init__(self) -> None:
        self.created: list[TrackingCache] = []
        self._lock = threading.Lock()

    def __call__(self, key: object) -> TrackingCache:
        cache = TrackingCache(key)
        with self._lock:
            self.created.append(cache)
        return cache

    def calls_for(self, key: object) -> int:
        return sum(1 for c in self.created if c.key == key)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user/global config and CMSCACHE_* env vars out of tests."""
    for name in (
        "CMSCACHE_BACKEND",
        "CMSCACHE_MAX_ENTRIES",
        "CMSCACHE_DEFAULT_TTL",
        "CMSCACHE_SLIDING",
        "CMSCACHE_DB_PATH",
        "CMSCACHE_REGISTRY_SHARDS",
        "CMSCACHE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    config_dir = tmp_path / "global_config"
    config_dir.mkdir()
    monkeypatch.setenv("CMSCACHE_CONFIG_DIR", str(config_dir))
    monkeypatch.chdir(tmp_path)
    return config_dir


@pytest.fixture
def tracking_factory():
    return TrackingFactory()


@pytest.fixture
def memory_settings():
    return CacheSettings(backend="memory", max_entries=100)


@pytest.fixture
def sqlite_settings(tmp_path):
    return CacheSettings(backend="sqlite", db_path=tmp_path / "cache.db", max_entries=100)
