"""
Cache layer for search results.

Design:
  - In-memory dict cache keyed by the normalized query
  - TTL-based expiration (5 minutes), checked lazily on read
  - Expired entries swept on every write
  - LRU eviction when cache size exceeds limit
  - No locking: only the orchestrator touches it, on one event loop

Usage:
    cache = SearchCache(ttl=300, max_size=1000)

    # Store results
    cache.set("zelda", results)

    # Retrieve results
    cached = cache.get("Zelda ")  # same entry

    # Cache stats
    stats = cache.stats()
"""

import time
import logging
from typing import Optional, Dict, Any, List, Callable
from collections import OrderedDict

from .. import config

logger = logging.getLogger(__name__)


class SearchCache:
    """In-memory cache for ranked search results."""

    def __init__(
        self,
        ttl: float = config.SEARCH_CACHE_TTL,
        max_size: int = config.SEARCH_CACHE_SIZE,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize cache.

        Args:
            ttl: Time-to-live in seconds (default: 5 minutes)
            max_size: Maximum cache entries (default: 1000)
            clock: Time source (tests pass a fake one)
        """
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._cache: OrderedDict = OrderedDict()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(query: str) -> str:
        return query.lower().strip()

    def _is_expired(self, entry: Dict, now: float) -> bool:
        return now - entry['timestamp'] > self.ttl

    def get(self, query: str) -> Optional[List[Any]]:
        """
        Get cached results if not expired.

        Args:
            query: Search query string

        Returns:
            Cached result list or None if not found/expired
        """
        key = self.make_key(query)

        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._is_expired(entry, self._clock()):
            del self._cache[key]
            self._misses += 1
            logger.debug(f"Cache EXPIRED: '{key}'")
            return None

        # Move to end (LRU)
        self._cache.move_to_end(key)
        self._hits += 1

        return entry['results']

    def set(self, query: str, results: List[Any]):
        """
        Cache search results.

        Args:
            query: Search query string
            results: Ranked results to cache
        """
        key = self.make_key(query)

        # Evict oldest if at capacity
        if len(self._cache) >= self.max_size and key not in self._cache:
            self._cache.popitem(last=False)

        self._cache[key] = {
            'results': list(results),
            'timestamp': self._clock()
        }
        self._cache.move_to_end(key)

        self.evict_expired()

    def clear(self):
        """Clear all cache entries and reset statistics."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with cache metrics:
                - size: Current number of entries
                - max_size: Maximum capacity
                - ttl: Time-to-live in seconds
                - hits: Cache hit count
                - misses: Cache miss count
                - hit_rate: Percentage of cache hits
        """
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

        return {
            'size': len(self._cache),
            'max_size': self.max_size,
            'ttl': self.ttl,
            'hits': self._hits,
            'misses': self._misses,
            'hit_rate': round(hit_rate, 2)
        }

    def evict_expired(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries evicted
        """
        now = self._clock()

        expired_keys = [
            key for key, entry in self._cache.items()
            if self._is_expired(entry, now)
        ]
        for key in expired_keys:
            del self._cache[key]

        return len(expired_keys)
