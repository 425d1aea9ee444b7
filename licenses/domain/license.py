"""
License domain entity.

This is the core domain entity representing a clinic license.
It contains business logic and is independent of infrastructure.
Time-derived state (valid, grace period, expired) is never stored;
it is computed by ``classify`` from ``expires_at`` and
``grace_period_days``.
"""
import calendar
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from core.domain.exceptions import InvalidLicenseStatusError
from core.domain.value_objects import LicenseStatus, LicenseType, TimeState, UsageType

# Any negative limit means the quota is not enforced. Zero is a hard cap.
UNLIMITED = -1

FEATURE_CATALOGUE = {
    LicenseType.STANDARD: (
        "basic_appointments",
        "patient_management",
        "prescription_management",
        "basic_reporting",
    ),
    LicenseType.PREMIUM: (
        "basic_appointments",
        "patient_management",
        "prescription_management",
        "basic_reporting",
        "advanced_reporting",
        "lab_results",
        "medrep_management",
        "multi_clinic",
        "email_notifications",
    ),
    LicenseType.ENTERPRISE: (
        "basic_appointments",
        "patient_management",
        "prescription_management",
        "basic_reporting",
        "advanced_reporting",
        "lab_results",
        "medrep_management",
        "multi_clinic",
        "email_notifications",
        "sms_notifications",
        "api_access",
        "custom_branding",
        "priority_support",
        "advanced_analytics",
        "backup_restore",
    ),
}

_USAGE_FIELDS = {
    UsageType.USERS: ("current_users", "max_users"),
    UsageType.CLINICS: ("current_clinics", "max_clinics"),
    UsageType.PATIENTS: ("current_patients", "max_patients"),
    UsageType.APPOINTMENTS: ("appointments_this_month", "max_appointments_per_month"),
}


def available_features(license_type: LicenseType) -> Tuple[str, ...]:
    """Return the default feature set for a license type."""
    return FEATURE_CATALOGUE.get(LicenseType(license_type), ())


def add_months(moment: datetime, months: int) -> datetime:
    """
    Move a datetime forward by calendar months.

    The day is clamped to the last day of the target month, so
    January 31 plus one month is the last day of February.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def whole_days(delta: timedelta) -> int:
    """Signed number of whole days in ``delta``, truncated toward zero."""
    return int(delta.total_seconds() / 86400)


@dataclass(frozen=True)
class AuditEntry:
    """One append-only audit trail record."""

    timestamp: datetime
    message: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    actor: str = "system"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "metadata": self.metadata,
            "actor": self.actor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            message=data["message"],
            metadata=data.get("metadata") or {},
            actor=data.get("actor", "system"),
        )


def classify(license: "License", now: datetime) -> TimeState:
    """
    Classify a license by time alone.

    Args:
        license: License entity
        now: Reference time

    Returns:
        VALID before ``expires_at``, GRACE_PERIOD until the grace window
        closes, EXPIRED afterwards
    """
    if now < license.expires_at:
        return TimeState.VALID
    if now < license.grace_period_end:
        return TimeState.GRACE_PERIOD
    return TimeState.EXPIRED


@dataclass(frozen=True)
class License:
    """
    License domain entity.

    Grants a tenant feature access and resource quotas for a time window.
    This is an immutable value object; every change returns a new instance.
    """

    id: uuid.UUID
    license_key: str
    license_type: LicenseType
    status: LicenseStatus
    customer_name: str
    customer_email: str
    issued_at: datetime
    expires_at: datetime
    activation_code: str
    grace_period_days: int = 7
    customer_company: Optional[str] = None
    activated_at: Optional[datetime] = None
    server_domain: Optional[str] = None
    server_ip: Optional[str] = None
    server_fingerprint: Optional[str] = None
    max_users: int = 5
    max_clinics: int = 1
    max_patients: int = 1000
    max_appointments_per_month: int = 500
    current_users: int = 0
    current_clinics: int = 0
    current_patients: int = 0
    appointments_this_month: int = 0
    last_usage_reset: Optional[datetime] = None
    features: Tuple[str, ...] = ()
    monthly_fee: Optional[Decimal] = None
    last_validated_at: Optional[datetime] = None
    validation_attempts: int = 0
    last_validation_attempt: Optional[datetime] = None
    audit_log: Tuple[AuditEntry, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate license entity."""
        if not self.license_key:
            raise ValueError("License key is required")
        if self.grace_period_days < 0:
            raise ValueError("Grace period cannot be negative")
        for usage_type in UsageType:
            if self.usage(usage_type) < 0:
                raise ValueError(f"Usage counter for {usage_type} cannot be negative")

    @classmethod
    def create(
        cls,
        license_key: str,
        activation_code: str,
        license_type: LicenseType,
        customer_name: str,
        customer_email: str,
        expires_at: datetime,
        now: datetime,
        features: Optional[Tuple[str, ...]] = None,
        license_id: Optional[uuid.UUID] = None,
        **fields: Any,
    ) -> "License":
        """
        Create a new License entity.

        Args:
            license_key: Unique license key
            activation_code: One-time server activation code
            license_type: Standard, premium or enterprise
            customer_name: Licensee name
            customer_email: Licensee email
            expires_at: Expiration datetime
            now: Issue time
            features: Feature flags (defaults to the type's catalogue)
            license_id: Optional UUID (generated if not provided)
            **fields: Any other entity field (limits, fee, grace period)

        Returns:
            License entity instance
        """
        license_type = LicenseType(license_type)
        if features is None:
            features = available_features(license_type)
        return cls(
            id=license_id or uuid.uuid4(),
            license_key=license_key,
            license_type=license_type,
            status=LicenseStatus.ACTIVE,
            customer_name=customer_name,
            customer_email=customer_email,
            issued_at=now,
            expires_at=expires_at,
            activation_code=activation_code,
            features=tuple(dict.fromkeys(features)),
            created_at=now,
            updated_at=now,
            **fields,
        )

    # Time-derived state

    @property
    def grace_period_end(self) -> datetime:
        return self.expires_at + timedelta(days=self.grace_period_days)

    def time_state(self, now: datetime) -> TimeState:
        return classify(self, now)

    def is_valid(self, now: datetime) -> bool:
        """True when active and not yet past ``expires_at``."""
        return self.status == LicenseStatus.ACTIVE and classify(self, now) == TimeState.VALID

    def is_in_grace_period(self, now: datetime) -> bool:
        return classify(self, now) == TimeState.GRACE_PERIOD

    def is_expired(self, now: datetime) -> bool:
        return classify(self, now) == TimeState.EXPIRED

    def days_until_expiration(self, now: datetime) -> int:
        return whole_days(self.expires_at - now)

    def days_in_grace_period(self, now: datetime) -> int:
        if not self.is_in_grace_period(now):
            return 0
        return whole_days(self.grace_period_end - now)

    # Features

    def has_feature(self, feature: str) -> bool:
        return feature in self.features

    def enable_feature(self, feature: str, now: datetime) -> "License":
        if self.has_feature(feature):
            return self
        return replace(self, features=self.features + (feature,), updated_at=now)

    def disable_feature(self, feature: str, now: datetime) -> "License":
        remaining = tuple(f for f in self.features if f != feature)
        return replace(self, features=remaining, updated_at=now)

    # Usage metering

    def usage(self, usage_type: UsageType) -> int:
        return getattr(self, _USAGE_FIELDS[UsageType(usage_type)][0])

    def limit(self, usage_type: UsageType) -> int:
        return getattr(self, _USAGE_FIELDS[UsageType(usage_type)][1])

    def is_unlimited(self, usage_type: UsageType) -> bool:
        return self.limit(usage_type) < 0

    def is_usage_limit_exceeded(self, usage_type: UsageType) -> bool:
        """
        Check a quota.

        Args:
            usage_type: Resource type

        Returns:
            True when current usage has reached the limit. Unlimited
            quotas are never exceeded; a zero limit always is.
        """
        if self.is_unlimited(usage_type):
            return False
        return self.usage(usage_type) >= self.limit(usage_type)

    def usage_percentage(self, usage_type: UsageType) -> float:
        if self.is_unlimited(usage_type):
            return 0.0
        limit = self.limit(usage_type)
        if limit == 0:
            return 100.0
        return round(self.usage(usage_type) / limit * 100, 2)

    def adjust_usage(self, usage_type: UsageType, amount: int, now: datetime) -> "License":
        """
        Return a copy with a usage counter moved by ``amount``.

        The counter is clamped at zero.
        """
        counter = _USAGE_FIELDS[UsageType(usage_type)][0]
        value = max(0, self.usage(usage_type) + amount)
        return replace(self, **{counter: value, "updated_at": now})

    def reset_monthly_usage(self, now: datetime) -> "License":
        return replace(self, appointments_this_month=0, last_usage_reset=now, updated_at=now)

    # Activation and validation

    def activate(
        self,
        now: datetime,
        server_domain: Optional[str] = None,
        server_ip: Optional[str] = None,
        server_fingerprint: Optional[str] = None,
    ) -> "License":
        """
        Create a new License instance bound to a server.

        Raises:
            InvalidLicenseStatusError: If the license was already activated
        """
        if self.activated_at is not None:
            raise InvalidLicenseStatusError("License already activated")
        return replace(
            self,
            activated_at=now,
            server_domain=server_domain,
            server_ip=server_ip,
            server_fingerprint=server_fingerprint,
            last_validated_at=now,
            updated_at=now,
        )

    def record_validation(self, now: datetime, succeeded: bool) -> "License":
        return replace(
            self,
            validation_attempts=self.validation_attempts + 1,
            last_validation_attempt=now,
            last_validated_at=now if succeeded else self.last_validated_at,
            updated_at=now,
        )

    # Status transitions

    def suspend(self, now: datetime) -> "License":
        """
        Create a new License instance with suspended status.

        Raises:
            InvalidLicenseStatusError: Unless the license is active
        """
        if self.status != LicenseStatus.ACTIVE:
            raise InvalidLicenseStatusError(f"Cannot suspend a {self.status} license")
        return replace(self, status=LicenseStatus.SUSPENDED, updated_at=now)

    def resume(self, now: datetime) -> "License":
        """
        Create a new License instance reactivated from suspension.

        Raises:
            InvalidLicenseStatusError: Unless the license is suspended
        """
        if self.status != LicenseStatus.SUSPENDED:
            raise InvalidLicenseStatusError("Can only resume a suspended license")
        return replace(self, status=LicenseStatus.ACTIVE, updated_at=now)

    def revoke(self, now: datetime) -> "License":
        """
        Create a new License instance with revoked status.

        Raises:
            InvalidLicenseStatusError: If the license is already revoked
        """
        if self.status == LicenseStatus.REVOKED:
            raise InvalidLicenseStatusError("License is already revoked")
        return replace(self, status=LicenseStatus.REVOKED, updated_at=now)

    def renew(self, months: int, now: datetime) -> "License":
        """
        Push ``expires_at`` forward by ``months``; status is untouched.

        Raises:
            InvalidLicenseStatusError: If the license is revoked
            ValueError: If months is not positive
        """
        if self.status == LicenseStatus.REVOKED:
            raise InvalidLicenseStatusError("Cannot renew a revoked license")
        if months < 1:
            raise ValueError("Renewal must be at least one month")
        return replace(self, expires_at=add_months(self.expires_at, months), updated_at=now)

    # Audit trail

    def with_audit(
        self, message: str, now: datetime, metadata: Optional[Dict[str, Any]] = None
    ) -> "License":
        entry = AuditEntry(timestamp=now, message=message, metadata=metadata or {})
        return replace(self, audit_log=self.audit_log + (entry,))
