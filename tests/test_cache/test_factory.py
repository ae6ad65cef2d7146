"""Tests for the settings-driven cache factory."""

import time

from cmscache.cache.disk import SqliteAppCache
from cmscache.cache.factory import create_policy_cache, policy_cache_factory
from cmscache.cache.memory import MemoryAppCache
from cmscache.cache.null import NoAppCache
from cmscache.cache.registry import PolicedCacheRegistry
from cmscache.config.schema import CacheSettings


class Content:
    pass


class TestCreatePolicyCache:
    def test_memory_backend(self, memory_settings):
        cache = create_policy_cache(memory_settings, "runtime")
        assert isinstance(cache, MemoryAppCache)
        assert cache.name == "runtime"

    def test_sqlite_backend(self, sqlite_settings):
        cache = create_policy_cache(sqlite_settings, "en-US")
        try:
            assert isinstance(cache, SqliteAppCache)
            assert cache.region == "en-US"
        finally:
            cache.dispose()

    def test_none_backend(self):
        cache = create_policy_cache(CacheSettings(backend="none"))
        assert isinstance(cache, NoAppCache)

    def test_default_ttl_passed_through(self):
        settings = CacheSettings(backend="memory", default_ttl=0.01)
        cache = create_policy_cache(settings)
        cache.insert("k", lambda: "v")
        time.sleep(0.05)
        assert cache.get("k") is None


class TestPolicyCacheFactory:
    def test_region_follows_key(self, memory_settings):
        factory = policy_cache_factory(memory_settings)
        assert factory("fr-FR").name == "fr-FR"
        assert factory(Content).name == f"{__name__}.Content"

    def test_drives_registry(self, sqlite_settings):
        registry = PolicedCacheRegistry(policy_cache_factory(sqlite_settings))
        en = registry.get_or_create("en-US")
        fr = registry.get_or_create("fr-FR")
        en.insert("k", lambda: "Hello")
        fr.insert("k", lambda: "Bonjour")
        assert en.get("k") == "Hello"
        registry.dispose()
        assert en.closed and fr.closed
