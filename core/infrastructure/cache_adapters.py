"""
Cache adapter implementations.

Provides the Django cache implementation of CachePort.
"""

import logging
from typing import Any, Optional

from django.core.cache import cache

from core.infrastructure.cache import CachePort
from core.metrics import cache_hits_total, cache_misses_total

logger = logging.getLogger(__name__)


class DjangoCacheAdapter(CachePort):
    """
    Django cache adapter implementing CachePort.

    Uses Django's cache framework (can be Redis, Memcached, etc.).
    Read failures degrade to a miss; delete failures propagate, since a
    stale entry left behind after a write would serve wrong license data.
    """

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        prefix = key.split(":", 2)[:2]
        metric_key = ":".join(prefix)
        try:
            value = cache.get(key)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error getting from cache: %s", e, exc_info=True)
            return None
        if value is not None:
            cache_hits_total.labels(cache_key=metric_key).inc()
            logger.debug("Cache hit: %s", key)
        else:
            cache_misses_total.labels(cache_key=metric_key).inc()
            logger.debug("Cache miss: %s", key)
        return value

    def set(self, key: str, value: Any, timeout: Optional[int] = None) -> None:
        """
        Set a value in cache.

        Args:
            key: Cache key
            value: Value to cache
            timeout: Timeout in seconds (None for no expiration)
        """
        try:
            cache.set(key, value, timeout=timeout)
            logger.debug("Cache set: %s (timeout=%s)", key, timeout)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error setting cache: %s", e, exc_info=True)

    def delete(self, key: str) -> None:
        """
        Delete a value from cache.

        Args:
            key: Cache key
        """
        cache.delete(key)
        logger.debug("Cache delete: %s", key)


# Global cache instance
cache_adapter = DjangoCacheAdapter()
