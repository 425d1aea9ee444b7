"""
License repository port (interface).

This defines the contract for license persistence operations.
Implementations are in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from core.domain.value_objects import LicenseStatus, LicenseType
from licenses.domain.license import License


class LicenseRepository(ABC):
    """
    Abstract repository for License entities.

    This is a port in hexagonal architecture - it defines
    what operations are available, not how they're implemented.
    """

    @abstractmethod
    def save(self, license: License) -> License:
        """
        Insert or update a license entity.

        Args:
            license: License entity to save

        Returns:
            Saved license entity
        """

    @abstractmethod
    def find_by_id(self, license_id: uuid.UUID) -> Optional[License]:
        """
        Find a license by ID.

        Args:
            license_id: License UUID

        Returns:
            License entity or None if not found
        """

    @abstractmethod
    def find_by_key(self, license_key: str) -> Optional[License]:
        """
        Find a license by its key.

        Args:
            license_key: License key string

        Returns:
            License entity or None if not found
        """

    @abstractmethod
    def find_by_key_for_update(self, license_key: str) -> Optional[License]:
        """
        Find a license by key and lock its row until the transaction ends.

        Must be called inside ``core.infrastructure.database.unit_of_work``.
        """

    @abstractmethod
    def find_current(self, now: datetime) -> Optional[License]:
        """
        Resolve the system-wide current license.

        Args:
            now: Reference time

        Returns:
            The most recently issued active license still inside its grace
            window; otherwise the most recently issued license of any
            status; None when no license exists
        """

    @abstractmethod
    def exists_key(self, license_key: str) -> bool:
        """Check whether a license already uses ``license_key``."""

    @abstractmethod
    def count(self) -> int:
        """Count all licenses."""

    @abstractmethod
    def count_by_status(self, status: LicenseStatus) -> int:
        """Count licenses with the given status."""

    @abstractmethod
    def count_by_type(self, license_type: LicenseType) -> int:
        """Count licenses of the given type."""

    @abstractmethod
    def count_expired(self, now: datetime) -> int:
        """Count licenses whose ``expires_at`` has passed."""

    @abstractmethod
    def count_expiring_within(self, now: datetime, days: int) -> int:
        """Count active licenses expiring between ``now`` and ``now + days``."""

    @abstractmethod
    def sum_active_monthly_fees(self) -> Decimal:
        """Sum ``monthly_fee`` over active licenses."""

    @abstractmethod
    def find_expiring_within(self, now: datetime, days: int) -> List[License]:
        """
        Find active licenses expiring between ``now`` and ``now + days``.

        Args:
            now: Reference time
            days: Window length in days

        Returns:
            Licenses ordered by expiration, soonest first
        """

    @abstractmethod
    def find_expired(self, now: datetime) -> List[License]:
        """Find licenses whose ``expires_at`` has passed."""
