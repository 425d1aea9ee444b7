"""
UpdateLicenseCommand.

Command to change editable license fields.
"""
from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from core.domain.value_objects import LicenseType


@dataclass
class UpdateLicenseCommand:
    """Partial update; fields left as None are not changed."""

    license_key: str
    license_type: Optional[LicenseType] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_company: Optional[str] = None
    expires_at: Optional[datetime] = None
    grace_period_days: Optional[int] = None
    max_users: Optional[int] = None
    max_clinics: Optional[int] = None
    max_patients: Optional[int] = None
    max_appointments_per_month: Optional[int] = None
    features: Optional[Tuple[str, ...]] = None
    monthly_fee: Optional[Decimal] = None

    def changes(self) -> Dict[str, Any]:
        """Return the fields that were set."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "license_key" and getattr(self, f.name) is not None
        }
