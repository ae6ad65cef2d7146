"""SQLite-backed policy cache — one region per instance, many per database."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import threading
import time
from collections.abc import Callable
from contextlib import closing
from pathlib import Path
from typing import Any

from cmscache.cache.interface import AppPolicyCache
from cmscache.cache.stats import CacheEntry, CacheStats
from cmscache.errors.exceptions import CmsCacheError

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ENTRIES = 10_000
_DEFAULT_DB_PATH = Path.home() / ".cmscache" / "cache.db"

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS cache (
        region TEXT NOT NULL,
        key TEXT NOT NULL,
        value TEXT,
        created_at REAL,
        last_accessed REAL,
        ttl_seconds REAL,
        sliding INTEGER,
        size_bytes INTEGER,
        PRIMARY KEY (region, key)
    )
"""

_EXPIRED_CLAUSE = (
    "ttl_seconds IS NOT NULL AND "
    "(CASE WHEN sliding THEN last_accessed ELSE created_at END) + ttl_seconds < ?"
)


class SqliteAppCache(AppPolicyCache):
    """Persistent policy cache stored as one region of a SQLite database.

    Values must be JSON-serializable. The instance owns an open connection
    and must be disposed; registries do this when the region is removed or
    the registry itself is disposed.
    """

    def __init__(
        self,
        db_path: Path | None = None,
        region: str = "default",
        default_ttl: float | None = None,
        max_entries: int = _DEFAULT_MAX_ENTRIES,
    ) -> None:
        self.name = region
        self._region = region
        self._db_path = db_path or _DEFAULT_DB_PATH
        self._default_ttl = default_ttl or None
        self._max_entries = max_entries
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = _connect(self._db_path)
        logger.debug("Opened SQLite cache region '%s' at %s", region, self._db_path)

    @property
    def closed(self) -> bool:
        return self._conn is None

    @property
    def region(self) -> str:
        return self._region

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._get_entry(key)
            if entry is None or entry.value is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def get_or_add(
        self,
        key: str,
        factory: Callable[[], Any],
        timeout: float | None = None,
        is_sliding: bool = False,
    ) -> Any | None:
        value = self.get(key)
        if value is not None:
            return value

        value = factory()
        if value is None:
            return None

        with self._lock:
            existing = self._get_entry(key)
            if existing is not None and existing.value is not None:
                # First insert wins
                return existing.value
            self._set(key, value, timeout, is_sliding)
        return value

    def insert(
        self,
        key: str,
        factory: Callable[[], Any],
        timeout: float | None = None,
        is_sliding: bool = False,
    ) -> None:
        value = factory()
        with self._lock:
            if value is None:
                self._delete_keys([key])
                return
            self._set(key, value, timeout, is_sliding)

    def search_by_key(self, prefix: str) -> list[Any]:
        return [e.value for e in self._live_entries() if e.key.startswith(prefix)]

    def search_by_regex(self, pattern: str) -> list[Any]:
        compiled = re.compile(pattern)
        return [e.value for e in self._live_entries() if compiled.search(e.key)]

    def remove(self, key: str) -> bool:
        with self._lock:
            conn = self._ensure_open()
            cursor = conn.execute(
                "DELETE FROM cache WHERE region = ? AND key = ?", (self._region, key)
            )
            conn.commit()
            return cursor.rowcount > 0

    def clear(self) -> None:
        with self._lock:
            conn = self._ensure_open()
            conn.execute("DELETE FROM cache WHERE region = ?", (self._region,))
            conn.commit()

    def clear_by_key(self, prefix: str) -> int:
        return self._remove_where(lambda e: e.key.startswith(prefix))

    def clear_by_regex(self, pattern: str) -> int:
        compiled = re.compile(pattern)
        return self._remove_where(lambda e: compiled.search(e.key) is not None)

    def clear_of_type(self, value_type: type) -> int:
        return self._remove_where(lambda e: isinstance(e.value, value_type))

    def stats(self) -> CacheStats:
        with self._lock:
            row = self._ensure_open().execute(
                "SELECT COUNT(*), COALESCE(SUM(size_bytes), 0) FROM cache WHERE region = ?",
                (self._region,),
            ).fetchone()
            return CacheStats(
                name=self._region,
                entries=row[0],
                size_mb=row[1] / (1024 * 1024),
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def dispose(self) -> None:
        """Close the connection. Safe to call more than once."""
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.debug("Closed SQLite cache region '%s'", self._region)

    def _ensure_open(self) -> sqlite3.Connection:
        if self._conn is None:
            raise CmsCacheError(f"SQLite cache region '{self._region}' is closed")
        return self._conn

    def _get_entry(self, key: str) -> CacheEntry | None:
        conn = self._ensure_open()
        row = conn.execute(
            "SELECT * FROM cache WHERE region = ? AND key = ?", (self._region, key)
        ).fetchone()
        if row is None:
            return None
        entry = _row_to_entry(row)
        if entry.is_expired:
            self._delete_keys([key])
            return None
        # Update last_accessed for LRU and sliding expiry
        conn.execute(
            "UPDATE cache SET last_accessed = ? WHERE region = ? AND key = ?",
            (time.time(), self._region, key),
        )
        conn.commit()
        return entry

    def _set(self, key: str, value: Any, timeout: float | None, is_sliding: bool) -> None:
        conn = self._ensure_open()
        serialized = json.dumps(value)
        self._evict_if_needed(key)
        now = time.time()
        conn.execute(
            """INSERT OR REPLACE INTO cache
               (region, key, value, created_at, last_accessed,
                ttl_seconds, sliding, size_bytes)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                self._region, key, serialized, now, now,
                self._resolve_ttl(timeout), int(is_sliding),
                len(serialized.encode("utf-8")),
            ),
        )
        conn.commit()

    def _resolve_ttl(self, timeout: float | None) -> float | None:
        if timeout is None:
            return self._default_ttl
        return timeout or None

    def _evict_if_needed(self, incoming_key: str) -> None:
        conn = self._ensure_open()
        # First remove expired entries
        conn.execute(
            f"DELETE FROM cache WHERE region = ? AND {_EXPIRED_CLAUSE}",
            (self._region, time.time()),
        )
        conn.commit()

        # Then LRU evict if still over limit
        while True:
            count = conn.execute(
                "SELECT COUNT(*) FROM cache WHERE region = ? AND key != ?",
                (self._region, incoming_key),
            ).fetchone()[0]
            if count < self._max_entries:
                break
            oldest = conn.execute(
                "SELECT key FROM cache WHERE region = ? AND key != ? "
                "ORDER BY last_accessed ASC LIMIT 1",
                (self._region, incoming_key),
            ).fetchone()
            if oldest is None:
                break
            self._delete_keys([oldest[0]])
            self._evictions += 1

    def _live_entries(self) -> list[CacheEntry]:
        with self._lock:
            rows = self._ensure_open().execute(
                "SELECT * FROM cache WHERE region = ?", (self._region,)
            ).fetchall()
            entries = [_row_to_entry(r) for r in rows]
            expired = [e.key for e in entries if e.is_expired]
            if expired:
                self._delete_keys(expired)
            return [e for e in entries if not e.is_expired]

    def _remove_where(self, match: Callable[[CacheEntry], bool]) -> int:
        with self._lock:
            to_remove = [e.key for e in self._live_entries() if match(e)]
            self._delete_keys(to_remove)
        return len(to_remove)

    def _delete_keys(self, keys: list[str]) -> None:
        conn = self._ensure_open()
        conn.executemany(
            "DELETE FROM cache WHERE region = ? AND key = ?",
            [(self._region, k) for k in keys],
        )
        conn.commit()


def list_region_stats(db_path: Path) -> list[CacheStats]:
    """Per-region entry counts and sizes for an existing cache database."""
    if not db_path.exists():
        return []
    with closing(_connect(db_path)) as conn:
        rows = conn.execute(
            "SELECT region, COUNT(*), COALESCE(SUM(size_bytes), 0) "
            "FROM cache GROUP BY region ORDER BY region"
        ).fetchall()
    return [
        CacheStats(name=region, entries=count, size_mb=size / (1024 * 1024))
        for region, count, size in rows
    ]


def purge(db_path: Path, region: str | None = None) -> int:
    """Delete all entries, or one region's entries. Returns rows deleted."""
    if not db_path.exists():
        return 0
    with closing(_connect(db_path)) as conn:
        if region is None:
            cursor = conn.execute("DELETE FROM cache")
        else:
            cursor = conn.execute("DELETE FROM cache WHERE region = ?", (region,))
        conn.commit()
        return cursor.rowcount


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False, timeout=30.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_SCHEMA)
    conn.commit()
    return conn


def _row_to_entry(row: sqlite3.Row) -> CacheEntry:
    value = None
    try:
        value = json.loads(row["value"]) if row["value"] is not None else None
    except (json.JSONDecodeError, TypeError):
        logger.warning("Dropping undecodable value for key '%s'", row["key"])

    return CacheEntry(
        key=row["key"],
        value=value,
        created_at=row["created_at"],
        last_accessed=row["last_accessed"],
        ttl_seconds=row["ttl_seconds"],
        sliding=bool(row["sliding"]),
    )
