"""Two-tier caching for translation results.

Local tier: in-process TTL cache for fast access (default: 10000 entries, 1 hour)
Shared tier: SQLite persistent cache with TTL (default: 24 hours), shared by
every worker process that points at the same database file.
"""

import asyncio
import hashlib
import logging
import sqlite3
import threading
import time
import unicodedata
from pathlib import Path
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)


def make_cache_key(text: str, source_lang: str, target_lang: str) -> str:
    """Build the content-addressed cache key for a translation.

    The text is NFC-normalized so that visually identical inputs share an
    entry; language codes are lower-cased.

    Args:
        text: Text being translated.
        source_lang: Source language code.
        target_lang: Target language code.

    Returns:
        Hex digest identifying the translation.
    """
    normalized = unicodedata.normalize("NFC", text)
    raw = f"{source_lang.lower()}:{target_lang.lower()}:{normalized}"
    return hashlib.md5(raw.encode()).hexdigest()


class LocalCache:
    """In-memory TTL cache (node-local tier).

    Bounded by entry count and expires entries after a fixed time. All access
    goes through a lock because cachetools caches are not thread safe.
    """

    def __init__(self, maxsize: int = 10000, ttl: int = 3600):
        """Initialize the local cache.

        Args:
            maxsize: Maximum number of entries to store.
            ttl: Seconds an entry stays valid.
        """
        self.cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self.maxsize = maxsize
        self.ttl = ttl
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self.cache.get(key)
            if value is not None:
                self.hits += 1
            else:
                self.misses += 1
            return value

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self.cache[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self.cache.pop(key, None)

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self.cache

    def clear(self) -> None:
        """Clear all entries from the cache."""
        with self._lock:
            self.cache.clear()
            self.hits = 0
            self.misses = 0

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dict with hits, misses, size, and hit_ratio.
        """
        with self._lock:
            total = self.hits + self.misses
            return {
                "hits": self.hits,
                "misses": self.misses,
                "size": len(self.cache),
                "maxsize": self.maxsize,
                "ttl_seconds": self.ttl,
                "hit_ratio": self.hits / total if total > 0 else 0,
            }


class SQLiteCache:
    """Persistent SQLite cache with TTL support (shared tier).

    Stores translations in SQLite for persistence across restarts.
    Automatically expires entries based on TTL. A new connection is opened
    per operation so the cache can be used from any thread.
    """

    DEFAULT_TTL = 86400  # 24 hours in seconds

    def __init__(
        self,
        db_path: str = "/data/translation_cache.db",
        ttl: int = DEFAULT_TTL,
    ):
        """Initialize the SQLite cache.

        Args:
            db_path: Path to SQLite database file.
            ttl: Default time-to-live in seconds.
        """
        self.db_path = db_path
        self.ttl = ttl
        self.hits = 0
        self.misses = 0
        self._counter_lock = threading.Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=10)

    def _init_db(self) -> None:
        """Initialize the database schema."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS translations (
                    cache_key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    expires_at INTEGER NOT NULL
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_expires_at
                ON translations(expires_at)
            """)
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        """Get a value from the cache.

        Args:
            key: Cache key to look up.

        Returns:
            Cached value if found and not expired, None otherwise.
        """
        now = int(time.time())
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT value FROM translations WHERE cache_key = ? AND expires_at > ?",
                (key, now),
            )
            row = cursor.fetchone()
        finally:
            conn.close()

        with self._counter_lock:
            if row:
                self.hits += 1
            else:
                self.misses += 1
        return row[0] if row else None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Set a value in the cache.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Time-to-live in seconds (default: the cache's TTL).
        """
        now = int(time.time())
        expires_at = now + (ttl if ttl is not None else self.ttl)
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO translations
                (cache_key, value, created_at, expires_at)
                VALUES (?, ?, ?, ?)
                """,
                (key, value, now, expires_at),
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, key: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM translations WHERE cache_key = ?", (key,))
            deleted = cursor.rowcount > 0
            conn.commit()
            return deleted
        finally:
            conn.close()

    def contains(self, key: str) -> bool:
        now = int(time.time())
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT 1 FROM translations WHERE cache_key = ? AND expires_at > ?",
                (key, now),
            )
            return cursor.fetchone() is not None
        finally:
            conn.close()

    def cleanup_expired(self) -> int:
        """Remove expired entries from the cache.

        Returns:
            Number of entries removed.
        """
        now = int(time.time())
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM translations WHERE expires_at <= ?", (now,))
            deleted = cursor.rowcount
            conn.commit()
            return deleted
        finally:
            conn.close()

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dict with entry counts and hit/miss counters.
        """
        now = int(time.time())
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM translations")
            total = cursor.fetchone()[0]
            cursor.execute(
                "SELECT COUNT(*) FROM translations WHERE expires_at <= ?", (now,)
            )
            expired = cursor.fetchone()[0]
        finally:
            conn.close()

        with self._counter_lock:
            hits, misses = self.hits, self.misses
        return {
            "hits": hits,
            "misses": misses,
            "total_entries": total,
            "expired_entries": expired,
            "active_entries": total - expired,
            "ttl_seconds": self.ttl,
        }


class TieredCache:
    """Two-tier cache combining a local TTL cache and SQLite.

    Local: Fast in-memory access for hot entries
    Shared: Persistent storage for all translations

    On a local miss, promotes shared hits into the local tier.
    On put, writes to both tiers. Any tier error is logged and treated
    as a miss, so the cache can never fail a request.
    """

    def __init__(
        self,
        local_maxsize: int = 10000,
        local_ttl: int = 3600,
        db_path: str = "/data/translation_cache.db",
        shared_ttl: int = SQLiteCache.DEFAULT_TTL,
    ):
        """Initialize the tiered cache.

        Args:
            local_maxsize: Maximum entries in the local tier.
            local_ttl: Seconds an entry stays in the local tier.
            db_path: Path to the shared-tier SQLite database.
            shared_ttl: Seconds an entry stays in the shared tier.
        """
        self.local = LocalCache(maxsize=local_maxsize, ttl=local_ttl)
        self.shared = SQLiteCache(db_path=db_path, ttl=shared_ttl)

    @classmethod
    def from_settings(cls, settings) -> "TieredCache":
        return cls(
            local_maxsize=settings.CACHE_LOCAL_MAXSIZE,
            local_ttl=settings.CACHE_LOCAL_TTL_SECONDS,
            db_path=settings.CACHE_DB_PATH,
            shared_ttl=settings.CACHE_SHARED_TTL_SECONDS,
        )

    async def get(self, key: str) -> Optional[str]:
        """Get a value from the cache.

        Checks the local tier first, then the shared tier. Promotes shared
        hits to the local tier.

        Args:
            key: Cache key to look up.

        Returns:
            Cached value if found, None otherwise.
        """
        try:
            result = self.local.get(key)
        except Exception as e:
            logger.warning(f"Local cache read failed for {key}: {e}")
            result = None
        if result is not None:
            return result

        try:
            result = await asyncio.to_thread(self.shared.get, key)
        except Exception as e:
            logger.warning(f"Shared cache read failed for {key}: {e}")
            return None

        if result is not None:
            try:
                self.local.set(key, result)
            except Exception as e:
                logger.warning(f"Cache promotion failed for {key}: {e}")
        return result

    async def put(self, key: str, value: str) -> None:
        """Write a value to both tiers.

        Args:
            key: Cache key.
            value: Value to cache.
        """
        try:
            self.local.set(key, value)
        except Exception as e:
            logger.warning(f"Local cache write failed for {key}: {e}")
        try:
            await asyncio.to_thread(self.shared.set, key, value)
        except Exception as e:
            logger.warning(f"Shared cache write failed for {key}: {e}")

    async def evict(self, key: str) -> None:
        """Remove a key from both tiers."""
        try:
            self.local.delete(key)
        except Exception as e:
            logger.warning(f"Local cache evict failed for {key}: {e}")
        try:
            await asyncio.to_thread(self.shared.delete, key)
        except Exception as e:
            logger.warning(f"Shared cache evict failed for {key}: {e}")

    async def exists(self, key: str) -> bool:
        try:
            if self.local.contains(key):
                return True
        except Exception as e:
            logger.warning(f"Local cache lookup failed for {key}: {e}")
        try:
            return await asyncio.to_thread(self.shared.contains, key)
        except Exception as e:
            logger.warning(f"Shared cache lookup failed for {key}: {e}")
            return False

    def get_stats(self) -> dict:
        """Get combined cache statistics.

        Returns:
            Dict with local and shared stats, plus combined metrics.
        """
        local_stats = self.local.get_stats()
        try:
            shared_stats = self.shared.get_stats()
        except Exception as e:
            logger.warning(f"Shared cache stats unavailable: {e}")
            shared_stats = {"error": str(e)}

        # Every lookup reaches the local tier; shared hits are local misses
        # that were rescued by promotion.
        total_requests = local_stats["hits"] + local_stats["misses"]
        combined_hits = local_stats["hits"] + shared_stats.get("hits", 0)

        return {
            "local": local_stats,
            "shared": shared_stats,
            "total_requests": total_requests,
            "combined_hit_ratio": (
                combined_hits / total_requests if total_requests > 0 else 0
            ),
        }

    def cleanup(self) -> int:
        """Cleanup expired entries from the shared tier.

        The local tier expires its own entries.

        Returns:
            Number of entries removed.
        """
        return self.shared.cleanup_expired()
