"""Thread-safety tests for PolicedCacheRegistry."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

from cmscache.cache.disk import SqliteAppCache
from cmscache.cache.memory import MemoryAppCache
from cmscache.cache.registry import PolicedCacheRegistry
from cmscache.errors.exceptions import RegistryDisposedError

_THREADS = 16


def _slow(factory, delay=0.01):
    def wrapped(key):
        time.sleep(delay)
        return factory(key)

    return wrapped


class TestConcurrentCreation:
    def test_same_key_yields_single_instance(self, tracking_factory):
        registry = PolicedCacheRegistry(_slow(tracking_factory))
        barrier = threading.Barrier(_THREADS)

        def worker(_):
            barrier.wait()
            return registry.get_or_create("en-US")

        with ThreadPoolExecutor(max_workers=_THREADS) as pool:
            results = list(pool.map(worker, range(_THREADS)))

        winner = results[0]
        assert all(r is winner for r in results)
        assert registry.stats().created == 1
        assert len(registry) == 1

    def test_race_losers_are_disposed(self, tracking_factory):
        registry = PolicedCacheRegistry(_slow(tracking_factory))
        barrier = threading.Barrier(_THREADS)

        def worker(_):
            barrier.wait()
            return registry.get_or_create("en-US")

        with ThreadPoolExecutor(max_workers=_THREADS) as pool:
            results = list(pool.map(worker, range(_THREADS)))

        winner = results[0]
        losers = [c for c in tracking_factory.created if c is not winner]
        assert winner.dispose_count == 0
        assert all(c.dispose_count == 1 for c in losers)
        assert registry.stats().discarded_on_race == len(losers)

    def test_many_keys_in_parallel(self, tracking_factory):
        registry = PolicedCacheRegistry(tracking_factory)
        keys = [f"culture-{i}" for i in range(200)]

        def worker(key):
            return key, registry.get_or_create(key)

        with ThreadPoolExecutor(max_workers=_THREADS) as pool:
            results = list(pool.map(worker, keys * 3))

        by_key = {}
        for key, cache in results:
            by_key.setdefault(key, set()).add(id(cache))
        assert all(len(ids) == 1 for ids in by_key.values())
        assert len(registry) == len(keys)

    def test_slow_factory_does_not_block_other_keys(self):
        release = threading.Event()
        started = threading.Event()

        def factory(key):
            if key == "slow":
                started.set()
                release.wait(timeout=5)
            return MemoryAppCache(name=key)

        registry = PolicedCacheRegistry(factory, shards=1)
        thread = threading.Thread(target=registry.get_or_create, args=("slow",))
        thread.start()
        try:
            assert started.wait(timeout=5)
            fast = registry.get_or_create("fast")
            assert fast is not None
            assert "slow" not in registry
        finally:
            release.set()
            thread.join(timeout=5)
        assert "slow" in registry


class TestConcurrentLifecycle:
    def test_concurrent_dispose_disposes_once(self, tracking_factory):
        registry = PolicedCacheRegistry(tracking_factory)
        caches = [registry.get_or_create(i) for i in range(50)]
        barrier = threading.Barrier(_THREADS)

        def worker(_):
            barrier.wait()
            registry.dispose()

        with ThreadPoolExecutor(max_workers=_THREADS) as pool:
            list(pool.map(worker, range(_THREADS)))

        assert all(c.dispose_count == 1 for c in caches)

    def test_creation_racing_dispose_never_leaks(self, tracking_factory):
        registry = PolicedCacheRegistry(_slow(tracking_factory, delay=0.001))
        barrier = threading.Barrier(_THREADS + 1)
        outcomes = []
        lock = threading.Lock()

        def worker(i):
            barrier.wait()
            for j in range(20):
                try:
                    registry.get_or_create((i, j))
                    outcome = "ok"
                except RegistryDisposedError:
                    outcome = "disposed"
                with lock:
                    outcomes.append(outcome)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(_THREADS)]
        for t in threads:
            t.start()
        barrier.wait()
        time.sleep(0.01)
        registry.dispose()
        for t in threads:
            t.join(timeout=10)

        assert len(outcomes) == _THREADS * 20
        assert len(registry) == 0
        assert all(c.dispose_count == 1 for c in tracking_factory.created)

    def test_clear_and_remove_alongside_creation(self, tracking_factory):
        registry = PolicedCacheRegistry(tracking_factory)
        stop = threading.Event()
        errors = []

        def creator():
            i = 0
            while not stop.is_set():
                try:
                    cache = registry.get_or_create(i % 20)
                    cache.insert("k", lambda: i)
                except Exception as e:  # noqa: BLE001
                    errors.append(e)
                i += 1

        def invalidator():
            while not stop.is_set():
                try:
                    registry.clear_all_caches()
                    registry.clear_cache(3)
                    registry.remove(5)
                    registry.remove_all()
                except Exception as e:  # noqa: BLE001
                    errors.append(e)

        threads = [threading.Thread(target=creator) for _ in range(4)]
        threads.append(threading.Thread(target=invalidator))
        for t in threads:
            t.start()
        time.sleep(0.2)
        stop.set()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        live = {id(registry.try_get(k).result) for k in registry.keys()}
        for cache in tracking_factory.created:
            if id(cache) in live:
                assert cache.dispose_count == 0
            else:
                assert cache.dispose_count == 1


class _BlockingSqliteCache(SqliteAppCache):
    """SQLite region whose clear() waits until the test lets it finish."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.clearing = threading.Event()
        self.release = threading.Event()

    def clear(self):
        self.clearing.set()
        self.release.wait(timeout=5)
        super().clear()


class TestClearAlongsideRemoval:
    def test_clear_all_survives_concurrent_remove(self, tmp_path):
        db_path = tmp_path / "cache.db"

        def factory(key):
            if key == "a":
                return _BlockingSqliteCache(db_path=db_path, region=key)
            return SqliteAppCache(db_path=db_path, region=key)

        registry = PolicedCacheRegistry(factory, shards=1)
        a = registry.get_or_create("a")
        b = registry.get_or_create("b")
        b.insert("k", lambda: "v")
        errors = []

        def clear_all():
            try:
                registry.clear_all_caches()
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        clearer = threading.Thread(target=clear_all)
        remover = threading.Thread(target=registry.remove, args=("b",))
        clearer.start()
        try:
            assert a.clearing.wait(timeout=5)
            remover.start()
            time.sleep(0.05)
            assert not b.closed
        finally:
            a.release.set()
            clearer.join(timeout=5)
            remover.join(timeout=5)

        assert errors == []
        assert b.closed
        assert registry.keys() == ["a"]
        registry.dispose()

    def test_clear_cache_and_remove_race_on_sqlite(self, tmp_path):
        db_path = tmp_path / "cache.db"
        registry = PolicedCacheRegistry(
            lambda key: SqliteAppCache(db_path=db_path, region=str(key)), shards=2
        )
        stop = threading.Event()
        errors = []

        def clearer():
            while not stop.is_set():
                try:
                    registry.clear_all_caches()
                    registry.clear_cache(1)
                except Exception as e:  # noqa: BLE001
                    errors.append(e)

        def churn():
            i = 0
            while not stop.is_set():
                try:
                    registry.get_or_create(i % 4).insert("k", lambda: i)
                    registry.remove(i % 4)
                except Exception as e:  # noqa: BLE001
                    errors.append(e)
                i += 1

        threads = [threading.Thread(target=clearer) for _ in range(2)]
        threads.append(threading.Thread(target=churn))
        for t in threads:
            t.start()
        time.sleep(0.2)
        stop.set()
        for t in threads:
            t.join(timeout=10)
        registry.dispose()

        assert errors == []


class TestRaceLoserDisposeFailure:
    def test_every_racer_gets_winner_when_loser_dispose_fails(self):
        class BrokenCache(MemoryAppCache):
            def dispose(self):
                raise OSError("handle already closed")

        registry = PolicedCacheRegistry(_slow(lambda key: BrokenCache(name=key)))
        barrier = threading.Barrier(_THREADS)

        def worker(_):
            barrier.wait()
            return registry.get_or_create("en-US")

        with ThreadPoolExecutor(max_workers=_THREADS) as pool:
            results = list(pool.map(worker, range(_THREADS)))

        winner = results[0]
        assert all(r is winner for r in results)
        assert registry.try_get("en-US").result is winner
