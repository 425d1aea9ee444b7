"""
License domain events.

Domain events represent something that happened in the license domain.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from core.domain.events import DomainEvent


class LicenseEvent(DomainEvent):
    """Base class for events raised on a single license."""

    message = "License changed"

    def __init__(
        self,
        license_key: str,
        metadata: Optional[Dict[str, Any]] = None,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize a license event.

        Args:
            license_key: License key string
            metadata: Additional event data
            occurred_at: When the event occurred
        """
        super().__init__(
            aggregate_id=license_key,
            event_type=self.__class__.__name__,
            occurred_at=occurred_at,
            metadata=metadata,
        )
        self.license_key = license_key


class LicenseCreated(LicenseEvent):
    """Event raised when a license is created."""

    message = "License created"


class LicenseUpdated(LicenseEvent):
    """Event raised when license fields are updated."""

    message = "License updated"


class LicenseActivated(LicenseEvent):
    """Event raised when a license is activated on a server."""

    message = "License activated"


class LicenseAssigned(LicenseEvent):
    """Event raised when a license is bound to a holder."""

    message = "License assigned to user"


class LicenseSuspended(LicenseEvent):
    """Event raised when a license is suspended."""

    message = "License suspended"


class LicenseResumed(LicenseEvent):
    """Event raised when a suspended license is reactivated."""

    message = "License resumed"


class LicenseRevoked(LicenseEvent):
    """Event raised when a license is revoked."""

    message = "License revoked"


class LicenseRenewed(LicenseEvent):
    """Event raised when a license is renewed."""

    message = "License renewed"


class MonthlyUsageReset(LicenseEvent):
    """Event raised when monthly appointment usage is reset."""

    message = "Monthly usage reset"
