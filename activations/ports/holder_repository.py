"""
Holder repository port (interface).

This defines the contract for license holder persistence.
"""
from abc import ABC, abstractmethod
from typing import Optional
import uuid

from activations.domain.holder import LicenseHolder


class HolderRepository(ABC):
    """Abstract repository for LicenseHolder entities."""

    @abstractmethod
    def save(self, holder: LicenseHolder) -> LicenseHolder:
        """
        Insert or update a holder.

        Args:
            holder: LicenseHolder entity to save

        Returns:
            Saved holder entity

        Raises:
            LicenseAlreadyAssignedError: If another holder already has the
                key activated
        """

    @abstractmethod
    def find_by_id(self, holder_id: uuid.UUID) -> Optional[LicenseHolder]:
        """
        Find a holder by ID.

        Args:
            holder_id: Holder UUID

        Returns:
            LicenseHolder entity or None if not found
        """

    @abstractmethod
    def find_active_holder(
        self, license_key: str, exclude_holder_id: Optional[uuid.UUID] = None
    ) -> Optional[LicenseHolder]:
        """
        Find the holder that has ``license_key`` activated.

        Args:
            license_key: License key string
            exclude_holder_id: Holder to ignore (the requester)

        Returns:
            LicenseHolder entity or None
        """
