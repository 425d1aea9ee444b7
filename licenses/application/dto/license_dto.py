"""
License result DTOs.

Validation and query failures are reported through these objects
(``error_code`` plus a human-readable ``message``) instead of exceptions.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from activations.domain.holder import LicenseHolder
from licenses.domain.license import License


@dataclass
class ValidationResultDTO:
    """Result of validating a license key."""

    valid: bool
    message: str
    error_code: Optional[str] = None
    license: Optional[License] = None
    expires_at: Optional[datetime] = None
    grace_period_end: Optional[datetime] = None
    days_until_expiration: Optional[int] = None
    assigned_to: Optional[str] = None


@dataclass
class ActivationResultDTO:
    """Result of a server or per-user activation."""

    success: bool
    message: str
    error_code: Optional[str] = None
    license: Optional[License] = None
    holder: Optional[LicenseHolder] = None


@dataclass
class UsageCheckResultDTO:
    """Result of a usage limit check."""

    allowed: bool
    message: str
    error_code: Optional[str] = None
    current: Optional[int] = None
    limit: Optional[int] = None
    percentage: Optional[float] = None


@dataclass
class UsageDTO:
    """Current usage against the limit for one resource type."""

    current: int
    limit: int
    percentage: float


@dataclass
class LicenseStatusDTO:
    """Service-level status of the current license."""

    has_license: bool
    status: str
    message: str
    license: Optional[License] = None
    expires_at: Optional[datetime] = None
    days_until_expiration: Optional[int] = None
    is_in_grace_period: bool = False
    days_in_grace_period: int = 0


@dataclass
class LicenseInfoDTO:
    """Display information for the current license."""

    has_license: bool
    license_type: Optional[str] = None
    customer_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    days_until_expiration: int = 0
    features: List[str] = field(default_factory=list)
    usage: Dict[str, UsageDTO] = field(default_factory=dict)


@dataclass
class LicenseStatisticsDTO:
    """Aggregate figures across all licenses."""

    total_licenses: int
    active_licenses: int
    expired_licenses: int
    expiring_soon: int
    monthly_revenue: Decimal
    license_types: Dict[str, int]
    license_statuses: Dict[str, int]
    key_strategies: Dict[str, str]
