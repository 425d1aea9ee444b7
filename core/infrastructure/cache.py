"""
Cache abstraction (port).

This module defines the cache interface that can be implemented
with different backends (Redis, Memcached, in-memory, etc.).

The TTL passed to ``set`` is a hint for eviction only; correctness
relies on callers deleting entries when the underlying data changes.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional


class CachePort(ABC):
    """
    Abstract cache port.

    This defines the interface for caching operations.
    Implementations can use Redis, Memcached, or in-memory cache.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any, timeout: Optional[int] = None) -> None:
        """
        Set a value in cache.

        Args:
            key: Cache key
            value: Value to cache
            timeout: Timeout in seconds (None for no expiration)
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Delete a value from cache.

        Args:
            key: Cache key
        """
        pass

    def get_or_set(
        self, key: str, default: Callable[[], Any], timeout: Optional[int] = None
    ) -> Any:
        """
        Read-through lookup.

        Args:
            key: Cache key
            default: Callable producing the value on a miss
            timeout: Timeout in seconds

        Returns:
            Cached or freshly computed value
        """
        value = self.get(key)
        if value is not None:
            return value
        value = default()
        if value is not None:
            self.set(key, value, timeout=timeout)
        return value
