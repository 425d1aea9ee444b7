"""
License cache service.

Read-through caching for the current license and key existence checks.
Every mutating license operation must call ``invalidate_current_license``
before it returns.
"""
import hashlib
import logging
from datetime import datetime
from typing import Optional

from core.infrastructure.cache import CachePort
from core.infrastructure.cache_adapters import cache_adapter
from licenses.conf import license_settings
from licenses.domain.license import License
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)

CURRENT_LICENSE_KEY = "license:current"


class LicenseCacheService:
    """Service for caching license-related data."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        cache: Optional[CachePort] = None,
    ):
        """
        Initialize the cache service.

        Args:
            license_repository: Source of truth on cache misses
            cache: Cache port (defaults to the Django cache adapter)
        """
        self.license_repository = license_repository
        self.cache = cache or cache_adapter

    @staticmethod
    def _key_exists_key(license_key: str) -> str:
        """Generate cache key for a key existence check."""
        key_hash = hashlib.sha256(license_key.encode()).hexdigest()[:16]
        return f"license:exists:{key_hash}"

    def get_current_license(self, now: datetime) -> Optional[License]:
        """
        Get the current license through the cache.

        Args:
            now: Reference time used on a miss

        Returns:
            Current License entity or None
        """
        return self.cache.get_or_set(
            CURRENT_LICENSE_KEY,
            lambda: self.license_repository.find_current(now),
            timeout=license_settings()["CURRENT_LICENSE_TTL"],
        )

    def invalidate_current_license(self) -> None:
        self.cache.delete(CURRENT_LICENSE_KEY)
        logger.debug("Invalidated current license cache")

    def key_exists(self, license_key: str) -> bool:
        """
        Memoized existence check used by the key generator.

        Only positive answers are cached; an unused key is always
        re-checked against the repository.
        """
        cache_key = self._key_exists_key(license_key)
        if self.cache.get(cache_key):
            return True
        exists = self.license_repository.exists_key(license_key)
        if exists:
            self.cache.set(cache_key, True, timeout=license_settings()["KEY_EXISTS_TTL"])
        return exists
