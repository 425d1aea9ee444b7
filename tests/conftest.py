"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest
from django.core.cache import cache

from activations.domain.holder import LicenseHolder
from activations.infrastructure.repositories.django_holder_repository import (
    DjangoHolderRepository,
)
from core.domain.value_objects import LicenseType
from licenses.application.commands.create_license import CreateLicenseCommand
from licenses.application.services.license_service import LicenseService
from licenses.domain.license import License
from licenses.infrastructure.repositories.django_audit_sink import DjangoAuditSink
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=dt_timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with an empty cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def now():
    """Fixture for the fixed reference time."""
    return FIXED_NOW


@pytest.fixture
def clock(now):
    """Fixture for a controllable clock starting at ``now``."""
    return FrozenClock(now)


@pytest.fixture
def license_repository():
    """Fixture for LicenseRepository."""
    return DjangoLicenseRepository()


@pytest.fixture
def holder_repository():
    """Fixture for HolderRepository."""
    return DjangoHolderRepository()


@pytest.fixture
def audit_sink():
    """Fixture for AuditSink."""
    return DjangoAuditSink()


@pytest.fixture
def service(clock):
    """Fixture for LicenseService running on the frozen clock."""
    return LicenseService(clock=clock)


@pytest.fixture
def sample_license(now):
    """Fixture for a sample License entity."""
    return License.create(
        license_key="MEDI-AB12-CD34-EF56-GH78",
        activation_code="ACT12345",
        license_type=LicenseType.STANDARD,
        customer_name="Sunrise Clinic",
        customer_email="admin@sunrise.example",
        expires_at=now + timedelta(days=365),
        now=now,
    )


@pytest.fixture
def create_license(db, service, now):
    """Factory fixture issuing licenses through the service."""

    def _create(**overrides):
        values = {
            "customer_name": "Sunrise Clinic",
            "customer_email": "admin@sunrise.example",
            "expires_at": now + timedelta(days=365),
            "license_type": LicenseType.PREMIUM,
            "monthly_fee": Decimal("99.00"),
        }
        values.update(overrides)
        return service.create_license(CreateLicenseCommand(**values))

    return _create


@pytest.fixture
def db_license(create_license):
    """Fixture for a License saved in database."""
    return create_license()


@pytest.fixture
def create_holder(db, holder_repository):
    """Factory fixture saving holders in database."""

    def _create(email, name=None, trial_ends_at=None, now=None):
        holder = LicenseHolder.create(
            email=email, name=name, trial_ends_at=trial_ends_at, now=now
        )
        return holder_repository.save(holder)

    return _create
