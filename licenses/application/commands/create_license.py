"""
CreateLicenseCommand.

Command to issue a new license.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from core.domain.value_objects import LicenseType


@dataclass
class CreateLicenseCommand:
    """
    Command to issue a new license.

    The key and activation code are generated when omitted, and the
    features default to the catalogue of the license type.
    """

    customer_name: str
    customer_email: str
    expires_at: datetime
    license_type: LicenseType = LicenseType.STANDARD
    license_key: Optional[str] = None
    activation_code: Optional[str] = None
    customer_company: Optional[str] = None
    grace_period_days: Optional[int] = None
    max_users: int = 5
    max_clinics: int = 1
    max_patients: int = 1000
    max_appointments_per_month: int = 500
    features: Optional[Tuple[str, ...]] = None
    monthly_fee: Optional[Decimal] = None
