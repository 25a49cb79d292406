"""
Query Cache Tests
=================

Tests for the in-memory result cache with TTL.

The cache provides:
- No-op behaviour unless enabled
- Configurable TTL with automatic expiration
- Oldest-first eviction at max size
- Per-table invalidation
- Key generation from table, statement and parameters
"""

import pytest
from freezegun import freeze_time

from liteorm.utils.cache import QueryCache, generate_cache_key


class TestQueryCache:
    """Test the QueryCache class functionality."""

    def test_disabled_cache_stores_nothing(self):
        """A disabled cache should never return stored values."""
        cache = QueryCache(enabled=False)
        cache.set('user:abc', [1])

        assert cache.get('user:abc') is None
        assert cache.get_stats()['total_entries'] == 0

    def test_cache_returns_same_result_within_ttl(self):
        """Same key within TTL should return cached result."""
        cache = QueryCache(enabled=True, ttl_seconds=300)
        call_count = 0

        def expensive_query():
            nonlocal call_count
            call_count += 1
            return [{'id': call_count}]

        result1 = cache.get_or_compute(key='user:1', compute_fn=expensive_query)
        result2 = cache.get_or_compute(key='user:1', compute_fn=expensive_query)

        assert result1 == result2
        assert call_count == 1, "Query should only be executed once"

    def test_empty_result_is_cached(self):
        """An empty list is a valid cached result."""
        cache = QueryCache(enabled=True)
        calls = []

        cache.get_or_compute('user:empty', lambda: calls.append(1) or [])
        cache.get_or_compute('user:empty', lambda: calls.append(1) or [])

        assert len(calls) == 1

    def test_cache_expires_after_ttl(self):
        """Cache should expire and recompute after TTL."""
        with freeze_time("2024-06-01 12:00:00") as frozen:
            cache = QueryCache(enabled=True, ttl_seconds=60)
            cache.set('user:1', 'stale')

            frozen.tick(59)
            assert cache.get('user:1') == 'stale'

            frozen.tick(2)
            assert cache.get('user:1') is None

    def test_eviction_removes_oldest_entry(self):
        """A full cache should evict the oldest entry first."""
        cache = QueryCache(enabled=True, max_size=2)
        cache.set('t:a', 1)
        cache.set('t:b', 2)
        cache.set('t:c', 3)

        assert cache.get('t:a') is None
        assert cache.get('t:b') == 2
        assert cache.get('t:c') == 3

    def test_invalidate_single_key_and_all(self):
        """invalidate(key) should drop one entry, invalidate() all of them."""
        cache = QueryCache(enabled=True)
        cache.set('t:a', 1)
        cache.set('t:b', 2)

        cache.invalidate('t:a')
        assert cache.get('t:a') is None
        assert cache.get('t:b') == 2

        cache.invalidate()
        assert cache.get('t:b') is None

    def test_invalidate_by_table(self):
        """invalidate_by_table() should only drop keys generated for that table."""
        cache = QueryCache(enabled=True)
        cache.set(generate_cache_key('user', 'SELECT 1'), 1)
        cache.set(generate_cache_key('user', 'SELECT 2'), 2)
        cache.set(generate_cache_key('user_profile', 'SELECT 3'), 3)

        removed = cache.invalidate_by_table('user')

        assert removed == 2
        assert cache.get_stats()['total_entries'] == 1

    def test_get_stats(self):
        """get_stats() should report configuration and entry counts."""
        cache = QueryCache(enabled=True, ttl_seconds=30, max_size=10)
        cache.set('t:a', 1)

        assert cache.get_stats() == {
            'enabled': True,
            'total_entries': 1,
            'valid_entries': 1,
            'ttl_seconds': 30,
            'max_size': 10,
            'hits': 0,
            'misses': 0,
        }

    def test_get_stats_counts_hits_and_misses(self):
        """Lookups should be counted as hits or misses."""
        cache = QueryCache(enabled=True, ttl_seconds=30)
        cache.get('t:a')
        cache.set('t:a', 1)
        cache.get('t:a')
        cache.get('t:a')

        stats = cache.get_stats()
        assert stats['hits'] == 2
        assert stats['misses'] == 1


class TestGenerateCacheKey:
    """Test cache key generation."""

    def test_key_is_prefixed_with_table(self):
        """Keys should start with the table name and carry a 16-char hash."""
        key = generate_cache_key('user', 'SELECT * FROM "user" WHERE "id" = ?', [1])

        table, digest = key.split(':')
        assert table == 'user'
        assert len(digest) == 16

    def test_key_is_deterministic(self):
        """The same statement and params should produce the same key."""
        sql = 'SELECT * FROM "user" WHERE "age" >= ?'

        assert generate_cache_key('user', sql, [18]) == generate_cache_key('user', sql, [18])

    @pytest.mark.parametrize("params", [[19], [], None])
    def test_key_depends_on_params(self, params):
        """Different parameters should produce different keys."""
        sql = 'SELECT * FROM "user" WHERE "age" >= ?'

        assert generate_cache_key('user', sql, [18]) != generate_cache_key('user', sql, params)
