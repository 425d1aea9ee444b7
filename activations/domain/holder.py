"""
License holder domain entity.

A holder is the user or tenant a license key is bound to. The license
service consults it for the per-user access override.
"""
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from licenses.domain.license import License


@dataclass(frozen=True)
class LicenseHolder:
    """
    License holder entity.

    Represents a user with an optional trial window and at most one
    bound license key.
    """

    id: uuid.UUID
    email: str
    name: Optional[str] = None
    license_key: Optional[str] = None
    has_activated_license: bool = False
    license_activated_at: Optional[datetime] = None
    is_trial_user: bool = False
    trial_started_at: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate holder entity."""
        if not self.email or "@" not in self.email:
            raise ValueError(f"Invalid email address: {self.email}")

    @classmethod
    def create(
        cls,
        email: str,
        name: Optional[str] = None,
        trial_ends_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
        holder_id: Optional[uuid.UUID] = None,
    ) -> "LicenseHolder":
        """
        Create a new holder, optionally starting a trial.

        Args:
            email: Holder email
            name: Display name
            trial_ends_at: End of the free trial, if any
            now: Trial start time
            holder_id: Optional UUID (generated if not provided)

        Returns:
            LicenseHolder entity instance
        """
        return cls(
            id=holder_id or uuid.uuid4(),
            email=email,
            name=name,
            is_trial_user=trial_ends_at is not None,
            trial_started_at=now if trial_ends_at is not None else None,
            trial_ends_at=trial_ends_at,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.email

    def is_on_trial(self, now: datetime) -> bool:
        return (
            self.is_trial_user
            and self.trial_ends_at is not None
            and now < self.trial_ends_at
        )

    def is_trial_expired(self, now: datetime) -> bool:
        """True for trial users whose trial window has closed."""
        return (
            self.is_trial_user
            and self.trial_ends_at is not None
            and now >= self.trial_ends_at
        )

    def has_valid_access(self, bound_license: Optional[License], now: datetime) -> bool:
        """
        Check whether the holder has access regardless of the system license.

        Args:
            bound_license: License the holder's key resolves to, if any
            now: Reference time

        Returns:
            True while on trial, or with an activated license that is valid
        """
        if self.is_on_trial(now):
            return True
        return (
            self.has_activated_license
            and bound_license is not None
            and bound_license.is_valid(now)
        )

    def assign_license(self, license_key: str, now: datetime) -> "LicenseHolder":
        """
        Bind a license key to this holder and end any trial.

        Returns:
            New LicenseHolder instance
        """
        return replace(
            self,
            license_key=license_key,
            has_activated_license=True,
            license_activated_at=now,
            is_trial_user=False,
        )
