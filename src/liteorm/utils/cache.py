"""
Query Result Cache with TTL
===========================

A simple, thread-safe in-memory cache for query results.

Features:
- Disabled unless explicitly enabled
- Configurable TTL and maximum size
- Automatic expiration, oldest-first eviction when full
- Per-table invalidation after writes

Usage:
    from liteorm.utils.cache import QueryCache, generate_cache_key

    cache = QueryCache(enabled=True, ttl_seconds=60)
    key = generate_cache_key("user", "SELECT * FROM user WHERE age >= ?", [18])

    rows = cache.get_or_compute(key=key, compute_fn=lambda: run_query())

    # after any INSERT/UPDATE/DELETE on "user"
    cache.invalidate_by_table("user")
"""

import hashlib
import json
import time
from threading import Lock
from typing import Any, Callable, Optional, Sequence, TypeVar

T = TypeVar('T')


class QueryCache:
    """
    Thread-safe in-memory cache with configurable TTL.

    Attributes:
        _cache: Dictionary storing (value, timestamp) tuples, insertion ordered
        _lock: Threading lock for thread safety
        _ttl: Time-to-live in seconds
        _max_size: Entry count that triggers eviction
    """

    def __init__(self, enabled: bool = False, ttl_seconds: int = 60, max_size: int = 1000):
        """
        Initialize cache.

        Args:
            enabled: Whether get/set do anything at all
            ttl_seconds: Time-to-live for cached entries
            max_size: Maximum number of entries kept
        """
        self._cache: dict[str, tuple[Any, float]] = {}
        self._lock = Lock()
        self._ttl = ttl_seconds
        self._max_size = max_size
        self.enabled = enabled
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """
        Get cached value if valid.

        Args:
            key: Cache key

        Returns:
            Cached value if valid, None otherwise
        """
        if not self.enabled:
            return None
        with self._lock:
            if key in self._cache:
                value, timestamp = self._cache[key]
                if time.time() - timestamp < self._ttl:
                    self._hits += 1
                    return value
                del self._cache[key]
            self._misses += 1
        return None

    def set(self, key: str, value: Any) -> None:
        """
        Store value in cache, evicting the oldest entry when full.

        Args:
            key: Cache key
            value: Value to cache
        """
        if not self.enabled:
            return
        with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_size:
                oldest = next(iter(self._cache))
                del self._cache[oldest]
            self._cache[key] = (value, time.time())

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        """
        Get cached value or compute and cache new value.

        The value is computed outside the lock so a slow query does not block
        other readers.

        Args:
            key: Cache key
            compute_fn: Function to compute value if not cached

        Returns:
            Cached or computed value
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        result = compute_fn()
        self.set(key, result)
        return result

    def invalidate(self, key: Optional[str] = None) -> None:
        """
        Clear cache entry or all entries.

        Args:
            key: Specific key to invalidate, or None to clear all
        """
        with self._lock:
            if key is not None:
                self._cache.pop(key, None)
            else:
                self._cache.clear()

    def invalidate_by_table(self, table_name: str) -> int:
        """
        Drop every entry generated for a table.

        Args:
            table_name: Table whose cached results are stale

        Returns:
            Number of entries removed
        """
        prefix = f"{table_name}:"
        with self._lock:
            stale = [k for k in self._cache if k.startswith(prefix)]
            for k in stale:
                del self._cache[k]
        return len(stale)

    def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics for monitoring.

        Returns:
            Dictionary with cache stats
        """
        with self._lock:
            now = time.time()
            valid_entries = sum(
                1 for _, (_, ts) in self._cache.items()
                if now - ts < self._ttl
            )
            return {
                "enabled": self.enabled,
                "total_entries": len(self._cache),
                "valid_entries": valid_entries,
                "ttl_seconds": self._ttl,
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses
            }


def generate_cache_key(table_name: str, sql: str, params: Optional[Sequence[Any]] = None) -> str:
    """
    Generate consistent cache key for a statement against a table.

    Args:
        table_name: Table the statement reads (used for invalidation)
        sql: Rendered statement text
        params: Positional parameters

    Returns:
        Cache key string in format "table:hash"

    Example:
        >>> generate_cache_key("user", "SELECT * FROM user WHERE id = ?", [1])
        'user:5f0c...'
    """
    payload = json.dumps([sql, list(params or [])], default=str)
    # MD5 for compact key (not for security, just uniqueness)
    hash_value = hashlib.md5(payload.encode()).hexdigest()[:16]
    return f"{table_name}:{hash_value}"
