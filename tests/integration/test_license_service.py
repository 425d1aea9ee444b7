"""
Integration tests for LicenseService against the Django ORM.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from core.domain.events import EventHandler
from core.domain.exceptions import (
    InvalidLicenseStatusError,
    InvalidUsageTypeError,
    LicenseAlreadyExistsError,
    LicenseNotFoundError,
)
from core.domain.value_objects import LicenseErrorCode, LicenseStatus, LicenseType, UsageType
from core.infrastructure.events import InMemoryEventBus
from licenses.application.commands.create_license import CreateLicenseCommand
from licenses.application.services.license_service import LicenseService
from licenses.domain.events import LicenseCreated, LicenseRenewed, LicenseSuspended
from licenses.domain.license_key import validate_format
from licenses.domain.services import LicenseValidator


class RecordingHandler(EventHandler):
    """Collects handled events."""

    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)


@pytest.mark.django_db
class TestCreateLicense:
    """Tests for issuing licenses."""

    def test_create_generates_key_and_code(self, db_license, now, license_repository):
        """Test a key and activation code are generated when omitted."""
        assert validate_format(db_license.license_key, "standard")
        assert len(db_license.activation_code) == 8
        assert db_license.status == LicenseStatus.ACTIVE
        assert db_license.issued_at == now
        assert db_license.grace_period_days == 7
        assert db_license.has_feature("lab_results")
        assert license_repository.find_by_key(db_license.license_key) is not None

    def test_create_records_audit(self, db_license, audit_sink):
        assert [entry.message for entry in db_license.audit_log] == ["License created"]
        entries = audit_sink.entries_for(db_license.license_key)
        assert [entry.message for entry in entries] == ["License created"]

    def test_create_with_explicit_key(self, create_license):
        license = create_license(license_key="MEDI-TEST-0000-0000-0001", grace_period_days=0)
        assert license.license_key == "MEDI-TEST-0000-0000-0001"
        assert license.grace_period_days == 0

    def test_create_duplicate_key(self, create_license):
        create_license(license_key="MEDI-TEST-0000-0000-0001")
        with pytest.raises(LicenseAlreadyExistsError):
            create_license(license_key="MEDI-TEST-0000-0000-0001")

    def test_create_publishes_event(self, db, clock, now):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(LicenseCreated, handler)
        service = LicenseService(event_bus=bus, clock=clock)

        license = service.create_license(
            CreateLicenseCommand(
                customer_name="Clinic", customer_email="c@example.com", expires_at=now
            )
        )

        assert len(handler.events) == 1
        assert handler.events[0].license_key == license.license_key
        assert handler.events[0].occurred_at == now


@pytest.mark.django_db
class TestValidateLicense:
    """Tests for validate_license."""

    def test_valid_license(self, service, db_license):
        result = service.validate_license(db_license.license_key)

        assert result.valid is True
        assert result.error_code is None
        assert result.days_until_expiration == 365
        assert result.message == (
            "License is valid and available! Expires on January 15, 2026 (365 days remaining)."
        )

    def test_validation_is_idempotent(self, service, db_license, license_repository):
        """Test repeated validation only bumps the attempt counter."""
        first = service.validate_license(db_license.license_key)
        second = service.validate_license(db_license.license_key)

        assert first.valid == second.valid
        assert first.message == second.message
        stored = license_repository.find_by_key(db_license.license_key)
        assert stored.validation_attempts == 2
        assert stored.status == LicenseStatus.ACTIVE

    def test_unknown_key(self, service, db):
        result = service.validate_license("MEDI-NONE-NONE-NONE-NONE")

        assert result.valid is False
        assert result.error_code == LicenseErrorCode.LICENSE_NOT_FOUND.value
        assert result.message == "License key not found. Please check the key and try again."

    def test_expired_license(self, service, create_license, now, license_repository):
        license = create_license(expires_at=now - timedelta(days=30))

        result = service.validate_license(license.license_key)

        assert result.valid is False
        assert result.error_code == LicenseErrorCode.LICENSE_EXPIRED.value
        assert result.message.startswith("License has expired on December 16, 2024.")
        stored = license_repository.find_by_key(license.license_key)
        assert stored.validation_attempts == 1
        assert stored.last_validated_at is None

    def test_grace_period_reports_expired(self, service, create_license, now):
        license = create_license(expires_at=now - timedelta(days=1))

        result = service.validate_license(license.license_key)

        assert result.error_code == LicenseErrorCode.LICENSE_EXPIRED.value
        assert result.grace_period_end == license.grace_period_end

    def test_suspended_license(self, service, db_license):
        service.suspend_license(db_license.license_key, "non-payment")

        result = service.validate_license(db_license.license_key)

        assert result.valid is False
        assert result.error_code == LicenseErrorCode.LICENSE_INACTIVE.value


@pytest.mark.django_db
class TestActivateLicense:
    """Tests for server activation."""

    def test_activate(self, service, db_license, now):
        result = service.activate_license(
            db_license.license_key,
            db_license.activation_code,
            server_domain="clinic.example",
            server_ip="10.0.0.5",
        )

        assert result.success is True
        assert result.license.activated_at == now
        assert result.license.server_domain == "clinic.example"
        assert len(result.license.server_fingerprint) == 64
        messages = [entry.message for entry in result.license.audit_log]
        assert messages == ["License created", "License activated"]

    def test_wrong_code(self, service, db_license):
        result = service.activate_license(db_license.license_key, "WRONG")

        assert result.success is False
        assert result.error_code == LicenseErrorCode.INVALID_ACTIVATION_CODE.value

    def test_non_ascii_code(self, service, db_license):
        """Test an accented code is rejected with a result code, not an exception."""
        result = service.activate_license(db_license.license_key, "CÓDIGO99")

        assert result.success is False
        assert result.error_code == LicenseErrorCode.INVALID_ACTIVATION_CODE.value

    def test_activate_twice(self, service, db_license):
        service.activate_license(db_license.license_key, db_license.activation_code)

        result = service.activate_license(db_license.license_key, db_license.activation_code)

        assert result.success is False
        assert result.error_code == LicenseErrorCode.ALREADY_ACTIVATED.value

    def test_unknown_key(self, service, db):
        result = service.activate_license("MEDI-NONE-NONE-NONE-NONE", "CODE")

        assert result.error_code == LicenseErrorCode.LICENSE_NOT_FOUND.value


@pytest.mark.django_db
class TestActivateLicenseForUser:
    """Tests for binding a license to a single holder."""

    def test_first_holder_wins(self, service, db_license, create_holder, now):
        """Test a second holder is refused with the first holder's name."""
        alice = create_holder("alice@example.com", name="Alice")
        bob = create_holder("bob@example.com", name="Bob")

        first = service.activate_license_for_user(alice, db_license.license_key)
        second = service.activate_license_for_user(bob, db_license.license_key)

        assert first.success is True
        assert first.holder.has_activated_license is True
        assert first.holder.license_activated_at == now
        assert second.success is False
        assert second.error_code == LicenseErrorCode.LICENSE_ALREADY_IN_USE.value
        assert "Alice" in second.message

    def test_holder_may_revalidate_own_key(self, service, db_license, create_holder):
        alice = create_holder("alice@example.com", name="Alice")
        assigned = service.activate_license_for_user(alice, db_license.license_key).holder

        own = service.validate_license(db_license.license_key, requesting_holder=assigned)
        anonymous = service.validate_license(db_license.license_key)

        assert own.valid is True
        assert anonymous.valid is False
        assert anonymous.assigned_to == "Alice"

    def test_inactive_license(self, service, db_license, create_holder):
        service.suspend_license(db_license.license_key)
        alice = create_holder("alice@example.com")

        result = service.activate_license_for_user(alice, db_license.license_key)

        assert result.success is False
        assert result.error_code == LicenseErrorCode.LICENSE_INACTIVE.value

    def test_ends_trial(self, service, db_license, create_holder, now):
        alice = create_holder("alice@example.com", trial_ends_at=now + timedelta(days=5), now=now)

        result = service.activate_license_for_user(alice, db_license.license_key)

        assert result.holder.is_trial_user is False
        assert result.holder.license_key == db_license.license_key


@pytest.mark.django_db
class TestUsage:
    """Tests for usage metering through the service."""

    def test_increment_then_decrement(self, service, db_license):
        assert service.increment_usage(UsageType.PATIENTS, 5) is True
        assert service.decrement_usage("patients", 3) is True

        assert service.get_current_usage("patients") == 2

    def test_decrement_clamps_at_zero(self, service, db_license):
        service.increment_usage("users", 2)
        service.decrement_usage("users", 10)

        assert service.get_current_usage("users") == 0

    def test_negative_amount(self, service, db_license):
        with pytest.raises(ValueError):
            service.increment_usage("users", -1)

    def test_unknown_usage_type(self, service, db_license):
        with pytest.raises(InvalidUsageTypeError):
            service.check_usage_limit("beds")

    def test_no_license(self, service, db):
        assert service.increment_usage("users") is False
        assert service.get_current_usage("users") == 0
        assert service.get_usage_limit("users") == 0
        result = service.check_usage_limit("users")
        assert result.allowed is False
        assert result.error_code == LicenseErrorCode.NO_LICENSE.value

    def test_check_usage_limit(self, service, create_license):
        create_license(max_users=2)
        assert service.check_usage_limit("users").allowed is True

        service.increment_usage("users", 2)
        result = service.check_usage_limit("users")

        assert result.allowed is False
        assert result.error_code == LicenseErrorCode.USAGE_LIMIT_EXCEEDED.value
        assert result.current == 2
        assert result.limit == 2
        assert result.percentage == 100.0

    def test_unlimited_quota(self, service, create_license):
        create_license(max_patients=-1)
        service.increment_usage("patients", 100000)

        result = service.check_usage_limit("patients")

        assert result.allowed is True
        assert result.percentage == 0.0

    def test_usage_blocked_during_grace(self, service, create_license, license_repository, now):
        """Test quotas close once expires_at passes, grace window or not."""
        license = create_license(expires_at=now - timedelta(days=2))

        result = service.check_usage_limit("users")

        assert result.allowed is False
        assert result.error_code == LicenseErrorCode.NO_LICENSE.value
        assert service.increment_usage("appointments") is False
        assert service.get_current_usage("appointments") == 0
        stored = license_repository.find_by_key(license.license_key)
        assert stored.appointments_this_month == 0

    def test_reset_monthly_usage(self, service, db_license, license_repository, now):
        service.increment_usage("appointments", 40)
        service.increment_usage("patients", 3)

        assert service.reset_monthly_usage() is True

        stored = license_repository.find_by_key(db_license.license_key)
        assert stored.appointments_this_month == 0
        assert stored.current_patients == 3
        assert stored.last_usage_reset == now

    def test_reset_without_license(self, service, db):
        assert service.reset_monthly_usage() is False


@pytest.mark.django_db
class TestFeaturesAndInfo:
    """Tests for feature gating and license info."""

    def test_has_feature(self, service, db_license):
        assert service.has_feature("lab_results") is True
        assert service.has_feature("api_access") is False

    def test_has_feature_suspended(self, service, db_license):
        service.suspend_license(db_license.license_key)

        assert service.has_feature("lab_results") is False

    def test_license_info(self, service, db_license):
        service.increment_usage("users", 1)

        info = service.get_license_info()

        assert info.has_license is True
        assert info.license_type == "premium"
        assert info.customer_name == "Sunrise Clinic"
        assert info.days_until_expiration == 365
        assert "multi_clinic" in info.features
        assert set(info.usage) == {"users", "clinics", "patients", "appointments"}
        assert info.usage["users"].current == 1
        assert info.usage["users"].percentage == 20.0

    def test_has_feature_after_expiry(self, service, create_license, clock, now):
        """Test features lock as soon as the license expires, before grace ends."""
        create_license(expires_at=now + timedelta(days=1))
        assert service.has_feature("basic_appointments") is True

        clock.advance(days=2)

        assert service.validate_license(service.get_current_license().license_key).error_code == (
            LicenseErrorCode.LICENSE_EXPIRED.value
        )
        assert service.should_restrict_application() is True
        assert service.has_feature("basic_appointments") is False
        assert service.check_usage_limit("users").allowed is False

    def test_license_info_expired(self, service, create_license, now):
        create_license(expires_at=now - timedelta(days=30))

        assert service.get_license_info().has_license is False

    def test_license_info_in_grace(self, service, create_license, now):
        create_license(expires_at=now - timedelta(days=2))

        assert service.get_license_info().has_license is False


@pytest.mark.django_db
class TestLicenseStatus:
    """Tests for get_license_status."""

    def test_no_license(self, service, db):
        status = service.get_license_status()

        assert status.has_license is False
        assert status.status == "no_license"

    def test_active(self, service, db_license):
        status = service.get_license_status()

        assert status.status == "active"
        assert status.days_until_expiration == 365
        assert status.is_in_grace_period is False

    def test_grace_period(self, service, create_license, now):
        create_license(expires_at=now - timedelta(days=1))

        status = service.get_license_status()

        assert status.status == "grace_period"
        assert status.is_in_grace_period is True
        assert status.days_in_grace_period == 6

    def test_expired(self, service, create_license, now):
        create_license(expires_at=now - timedelta(days=30))

        assert service.get_license_status().status == "expired"

    def test_suspended(self, service, db_license):
        """Test suspension shows in the service-level status only."""
        service.suspend_license(db_license.license_key, "non-payment")

        status = service.get_license_status()

        assert status.status == "suspended"
        assert status.message == "License status: suspended"
        assert status.license.status == LicenseStatus.SUSPENDED
        assert service.should_restrict_application() is True


@pytest.mark.django_db
class TestCurrentLicense:
    """Tests for current license resolution and caching."""

    def test_most_recent_active_license(self, service, create_license, clock):
        older = create_license(customer_name="Older")
        clock.advance(days=1)
        newer = create_license(customer_name="Newer")

        assert service.get_current_license().license_key == newer.license_key

        service.revoke_license(newer.license_key)

        assert service.get_current_license().license_key == older.license_key

    def test_falls_back_to_most_recent(self, service, db_license):
        service.revoke_license(db_license.license_key)

        current = service.get_current_license()

        assert current.license_key == db_license.license_key
        assert current.status == LicenseStatus.REVOKED

    def test_cached_until_invalidated(self, service, db_license, license_repository):
        """Test the current license is served from cache until a write."""
        service.get_current_license()
        stored = license_repository.find_by_key(db_license.license_key)
        license_repository.save(stored.disable_feature("lab_results", stored.issued_at))

        assert service.has_feature("lab_results") is True

        service.update_license(db_license.license_key, customer_company="Sunrise Group")

        assert service.has_feature("lab_results") is False


@pytest.mark.django_db
class TestAdministration:
    """Tests for update, suspend, resume, revoke and renew."""

    def test_update_license(self, service, db_license, audit_sink, clock):
        clock.advance(minutes=5)
        updated = service.update_license(
            db_license.license_key,
            max_users=25,
            license_type="enterprise",
            features=["api_access", "api_access"],
        )

        assert updated.max_users == 25
        assert updated.license_type == LicenseType.ENTERPRISE
        assert updated.features == ("api_access",)
        assert updated.audit_log[-1].message == "License updated"
        assert len(audit_sink.entries_for(db_license.license_key)) == 2

    def test_update_unknown(self, service, db):
        with pytest.raises(LicenseNotFoundError):
            service.update_license("MEDI-NONE-NONE-NONE-NONE", max_users=1)

    def test_suspend_and_resume(self, service, db_license):
        suspended = service.suspend_license(db_license.license_key, "non-payment")
        assert suspended.status == LicenseStatus.SUSPENDED
        assert suspended.audit_log[-1].metadata == {"reason": "non-payment"}

        resumed = service.resume_license(db_license.license_key)

        assert resumed.status == LicenseStatus.ACTIVE
        assert service.should_restrict_application() is False

    def test_revoke_is_terminal(self, service, db_license):
        service.revoke_license(db_license.license_key, "fraud")

        with pytest.raises(InvalidLicenseStatusError):
            service.resume_license(db_license.license_key)
        with pytest.raises(InvalidLicenseStatusError):
            service.renew_license(db_license.license_key)

    def test_suspend_unknown(self, service, db):
        with pytest.raises(LicenseNotFoundError):
            service.suspend_license("MEDI-NONE-NONE-NONE-NONE")

    def test_renew(self, service, create_license, now):
        license = create_license(expires_at=now - timedelta(days=30))

        renewed = service.renew_license(license.license_key, months=12)

        assert renewed.expires_at == license.expires_at.replace(year=license.expires_at.year + 1)
        assert renewed.status == LicenseStatus.ACTIVE
        assert renewed.audit_log[-1].metadata["months"] == 12
        assert service.validate_license(license.license_key).valid is True

    def test_transitions_publish_events(self, db, clock, now):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(LicenseSuspended, handler)
        bus.subscribe(LicenseRenewed, handler)
        service = LicenseService(event_bus=bus, clock=clock)
        license = service.create_license(
            CreateLicenseCommand(
                customer_name="Clinic",
                customer_email="c@example.com",
                expires_at=now + timedelta(days=30),
            )
        )

        service.suspend_license(license.license_key, "non-payment")
        service.renew_license(license.license_key, 1)

        assert [event.event_type for event in handler.events] == [
            "LicenseSuspended",
            "LicenseRenewed",
        ]
        assert handler.events[0].metadata == {"reason": "non-payment"}


@pytest.mark.django_db
class TestStatistics:
    """Tests for get_license_statistics and expiring licenses."""

    @pytest.fixture
    def portfolio(self, service, create_license, now):
        active = create_license(monthly_fee=Decimal("99.00"))
        expiring = create_license(
            license_type=LicenseType.STANDARD,
            monthly_fee=Decimal("49.00"),
            expires_at=now + timedelta(days=10),
        )
        expired = create_license(
            license_type=LicenseType.ENTERPRISE,
            monthly_fee=Decimal("199.00"),
            expires_at=now - timedelta(days=30),
        )
        suspended = create_license(license_type=LicenseType.STANDARD, monthly_fee=Decimal("20.00"))
        service.suspend_license(suspended.license_key)
        return active, expiring, expired, suspended

    def test_statistics(self, service, portfolio):
        stats = service.get_license_statistics()

        assert stats.total_licenses == 4
        assert stats.active_licenses == 3
        assert stats.expired_licenses == 1
        assert stats.expiring_soon == 1
        assert stats.monthly_revenue == Decimal("347.00")
        assert stats.license_types == {"standard": 2, "premium": 1, "enterprise": 1}
        assert stats.license_statuses == {"active": 3, "suspended": 1, "revoked": 0}
        assert set(stats.key_strategies) == {"standard", "compact", "segmented", "custom"}

    def test_expiring_licenses(self, service, portfolio):
        expiring = portfolio[1]

        keys = [license.license_key for license in service.get_expiring_licenses()]

        assert keys == [expiring.license_key]
        assert service.get_expiring_licenses(days=5) == []


@pytest.mark.django_db
class TestRestrictionGate:
    """Tests for should_restrict_application and get_restriction_message."""

    def test_no_license(self, service, db):
        assert service.should_restrict_application() is True
        assert service.get_restriction_message() == LicenseValidator.NO_LICENSE_MESSAGE

    def test_valid_license(self, service, db_license):
        assert service.should_restrict_application() is False
        assert service.get_restriction_message() == LicenseValidator.GENERIC_MESSAGE

    def test_expired_license(self, service, create_license, now):
        create_license(expires_at=now - timedelta(days=30))

        assert service.should_restrict_application() is True
        assert service.get_restriction_message() == LicenseValidator.EXPIRED_MESSAGE

    def test_grace_period_license(self, service, create_license, now):
        """Test a license in its grace window restricts with the expiry message."""
        create_license(expires_at=now - timedelta(days=2))

        assert service.should_restrict_application() is True
        assert service.get_restriction_message() == LicenseValidator.EXPIRED_MESSAGE

    def test_revoked_license(self, service, db_license):
        service.revoke_license(db_license.license_key)

        assert service.should_restrict_application() is True
        assert service.get_restriction_message() == LicenseValidator.REVOKED_MESSAGE

    def test_trial_overrides_restriction(self, service, create_holder, now):
        holder = create_holder("trial@example.com", trial_ends_at=now + timedelta(days=7), now=now)

        assert service.should_restrict_application(holder) is False

    def test_trial_expired_message_first(self, service, create_license, create_holder, now):
        """Test an expired trial outranks an expired license."""
        create_license(expires_at=now - timedelta(days=30))
        holder = create_holder("trial@example.com", trial_ends_at=now - timedelta(days=1), now=now)

        assert service.should_restrict_application(holder) is True
        assert service.get_restriction_message(holder) == LicenseValidator.TRIAL_EXPIRED_MESSAGE

    def test_holder_with_suspended_license(self, service, db_license, create_holder):
        alice = create_holder("alice@example.com")
        alice = service.activate_license_for_user(alice, db_license.license_key).holder
        assert service.should_restrict_application(alice) is False

        service.suspend_license(db_license.license_key)

        assert service.should_restrict_application(alice) is True
        assert service.get_restriction_message(alice) == LicenseValidator.SUSPENDED_MESSAGE
