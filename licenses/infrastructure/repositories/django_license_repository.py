"""
Django implementation of LicenseRepository port.

This adapter converts between domain entities and Django ORM models.
"""
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from django.db.models import Sum

from core.domain.value_objects import LicenseStatus, LicenseType
from licenses.domain.license import AuditEntry, License
from licenses.infrastructure.models import License as LicenseModel
from licenses.ports.license_repository import LicenseRepository

# Entity fields copied one-to-one between model and entity.
_PLAIN_FIELDS = (
    "license_key",
    "customer_name",
    "customer_email",
    "customer_company",
    "issued_at",
    "expires_at",
    "grace_period_days",
    "activation_code",
    "activated_at",
    "server_domain",
    "server_ip",
    "server_fingerprint",
    "max_users",
    "max_clinics",
    "max_patients",
    "max_appointments_per_month",
    "current_users",
    "current_clinics",
    "current_patients",
    "appointments_this_month",
    "last_usage_reset",
    "monthly_fee",
    "last_validated_at",
    "validation_attempts",
    "last_validation_attempt",
)


class DjangoLicenseRepository(LicenseRepository):
    """
    Django ORM implementation of LicenseRepository.

    This adapter:
    1. Converts Django models to domain entities
    2. Converts domain entities to Django models
    3. Implements repository interface
    """

    def _to_domain(self, model: LicenseModel) -> License:
        """
        Convert Django model to domain entity.

        Args:
            model: Django License model

        Returns:
            License domain entity
        """
        return License(
            id=model.id,
            license_type=LicenseType(model.license_type),
            status=LicenseStatus(model.status),
            features=tuple(model.features or ()),
            audit_log=tuple(AuditEntry.from_dict(entry) for entry in model.audit_log or ()),
            created_at=model.created_at,
            updated_at=model.updated_at,
            **{name: getattr(model, name) for name in _PLAIN_FIELDS},
        )

    def _to_model(self, license: License) -> LicenseModel:
        """
        Convert domain entity to Django model.

        Args:
            license: License domain entity

        Returns:
            Django License model (unsaved)
        """
        model = LicenseModel.objects.filter(id=license.id).first() or LicenseModel(id=license.id)
        for name in _PLAIN_FIELDS:
            setattr(model, name, getattr(license, name))
        model.license_type = license.license_type.value
        model.status = license.status.value
        model.features = list(license.features)
        model.audit_log = [entry.to_dict() for entry in license.audit_log]
        return model

    def save(self, license: License) -> License:
        """
        Insert or update a license entity.

        Args:
            license: License entity to save

        Returns:
            Saved license entity
        """
        model = self._to_model(license)
        model.save()
        return self._to_domain(model)

    def find_by_id(self, license_id: uuid.UUID) -> Optional[License]:
        """
        Find a license by ID.

        Args:
            license_id: License UUID

        Returns:
            License entity or None if not found
        """
        try:
            return self._to_domain(LicenseModel.objects.get(id=license_id))
        except LicenseModel.DoesNotExist:
            return None

    def find_by_key(self, license_key: str) -> Optional[License]:
        model = LicenseModel.objects.filter(license_key=license_key).first()
        return self._to_domain(model) if model else None

    def find_by_key_for_update(self, license_key: str) -> Optional[License]:
        model = (
            LicenseModel.objects.select_for_update()
            .filter(license_key=license_key)
            .first()
        )
        return self._to_domain(model) if model else None

    def find_current(self, now: datetime) -> Optional[License]:
        """
        Resolve the system-wide current license.

        The grace window differs per license, so active candidates are
        filtered in Python after a coarse database filter.
        """
        candidates = LicenseModel.objects.filter(status=LicenseStatus.ACTIVE.value).order_by(
            "-issued_at"
        )
        for model in candidates:
            if now < model.expires_at + timedelta(days=model.grace_period_days):
                return self._to_domain(model)

        model = LicenseModel.objects.order_by("-issued_at").first()
        return self._to_domain(model) if model else None

    def exists_key(self, license_key: str) -> bool:
        return LicenseModel.objects.filter(license_key=license_key).exists()

    def count(self) -> int:
        return LicenseModel.objects.count()

    def count_by_status(self, status: LicenseStatus) -> int:
        return LicenseModel.objects.filter(status=LicenseStatus(status).value).count()

    def count_by_type(self, license_type: LicenseType) -> int:
        return LicenseModel.objects.filter(license_type=LicenseType(license_type).value).count()

    def count_expired(self, now: datetime) -> int:
        return LicenseModel.objects.filter(expires_at__lt=now).count()

    def count_expiring_within(self, now: datetime, days: int) -> int:
        return self._expiring_queryset(now, days).count()

    def sum_active_monthly_fees(self) -> Decimal:
        total = (
            LicenseModel.objects.filter(
                status=LicenseStatus.ACTIVE.value, monthly_fee__isnull=False
            ).aggregate(total=Sum("monthly_fee"))["total"]
        )
        return total or Decimal("0")

    def find_expiring_within(self, now: datetime, days: int) -> List[License]:
        queryset = self._expiring_queryset(now, days).order_by("expires_at")
        return [self._to_domain(model) for model in queryset]

    def find_expired(self, now: datetime) -> List[License]:
        queryset = LicenseModel.objects.filter(expires_at__lt=now).order_by("expires_at")
        return [self._to_domain(model) for model in queryset]

    def _expiring_queryset(self, now: datetime, days: int):
        return LicenseModel.objects.filter(
            status=LicenseStatus.ACTIVE.value,
            expires_at__gte=now,
            expires_at__lte=now + timedelta(days=days),
        )
