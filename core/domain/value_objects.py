"""
Value objects for the domain.

Value objects are immutable objects that are defined by their attributes
rather than their identity. They have no identity and are compared by value.
"""
from abc import ABC
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects.

    Value objects are immutable and compared by value.
    """

    def __eq__(self, other):
        """Compare value objects by their attributes."""
        if not isinstance(other, self.__class__):
            return False
        return self.__dict__ == other.__dict__

    def __hash__(self):
        """Make value objects hashable."""
        return hash(tuple(sorted(self.__dict__.items())))


@dataclass(frozen=True)
class Email(ValueObject):
    """Email value object with validation."""

    value: str

    def __post_init__(self):
        """Validate email format."""
        if not self.value or "@" not in self.value:
            raise ValueError(f"Invalid email address: {self.value}")

    def __str__(self) -> str:
        """Return email as string."""
        return self.value


class LicenseStatus(Enum):
    """
    Administrative license status.

    Independent of time-based expiry, which is derived on every query.
    """

    ACTIVE = "active"
    SUSPENDED = "suspended"
    REVOKED = "revoked"

    def __str__(self) -> str:
        """Return status as string."""
        return self.value


class LicenseType(Enum):
    """License tier."""

    STANDARD = "standard"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"

    def __str__(self) -> str:
        """Return type as string."""
        return self.value


class TimeState(Enum):
    """Time-derived validity state of a license."""

    VALID = "valid"
    GRACE_PERIOD = "grace_period"
    EXPIRED = "expired"

    def __str__(self) -> str:
        """Return state as string."""
        return self.value


class UsageType(Enum):
    """Metered resource types."""

    USERS = "users"
    CLINICS = "clinics"
    PATIENTS = "patients"
    APPOINTMENTS = "appointments"

    def __str__(self) -> str:
        """Return usage type as string."""
        return self.value


class LicenseErrorCode(Enum):
    """Closed set of result codes returned by license operations."""

    LICENSE_NOT_FOUND = "LICENSE_NOT_FOUND"
    LICENSE_EXPIRED = "LICENSE_EXPIRED"
    LICENSE_INACTIVE = "LICENSE_INACTIVE"
    LICENSE_ALREADY_IN_USE = "LICENSE_ALREADY_IN_USE"
    INVALID_ACTIVATION_CODE = "INVALID_ACTIVATION_CODE"
    ALREADY_ACTIVATED = "ALREADY_ACTIVATED"
    ACTIVATION_FAILED = "ACTIVATION_FAILED"
    NO_LICENSE = "NO_LICENSE"
    USAGE_LIMIT_EXCEEDED = "USAGE_LIMIT_EXCEEDED"
    VALIDATION_FAILED = "VALIDATION_FAILED"

    def __str__(self) -> str:
        """Return code as string."""
        return self.value
