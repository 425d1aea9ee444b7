"""
Django implementation of HolderRepository port.

This adapter converts between domain entities and Django ORM models.
"""
import uuid
from typing import Optional

from django.db import IntegrityError, transaction

from activations.domain.holder import LicenseHolder
from activations.infrastructure.models import LicenseHolder as HolderModel
from activations.ports.holder_repository import HolderRepository
from core.domain.exceptions import LicenseAlreadyAssignedError

_FIELDS = (
    "email",
    "name",
    "license_key",
    "has_activated_license",
    "license_activated_at",
    "is_trial_user",
    "trial_started_at",
    "trial_ends_at",
)


class DjangoHolderRepository(HolderRepository):
    """Django ORM implementation of HolderRepository."""

    def _to_domain(self, model: HolderModel) -> LicenseHolder:
        """
        Convert Django model to domain entity.

        Args:
            model: Django LicenseHolder model

        Returns:
            LicenseHolder domain entity
        """
        return LicenseHolder(id=model.id, **{name: getattr(model, name) for name in _FIELDS})

    def save(self, holder: LicenseHolder) -> LicenseHolder:
        """
        Insert or update a holder.

        The partial unique constraint on activated keys turns a lost
        assignment race into LicenseAlreadyAssignedError.
        """
        model = HolderModel.objects.filter(id=holder.id).first() or HolderModel(id=holder.id)
        for name in _FIELDS:
            setattr(model, name, getattr(holder, name))
        try:
            with transaction.atomic():
                model.save()
        except IntegrityError as e:
            if holder.has_activated_license and self.find_active_holder(
                holder.license_key, exclude_holder_id=holder.id
            ):
                raise LicenseAlreadyAssignedError() from e
            raise
        return self._to_domain(model)

    def find_by_id(self, holder_id: uuid.UUID) -> Optional[LicenseHolder]:
        try:
            return self._to_domain(HolderModel.objects.get(id=holder_id))
        except HolderModel.DoesNotExist:
            return None

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
        queryset = HolderModel.objects.filter(license_key=license_key, has_activated_license=True)
        if exclude_holder_id is not None:
            queryset = queryset.exclude(id=exclude_holder_id)
        model = queryset.first()
        return self._to_domain(model) if model else None
