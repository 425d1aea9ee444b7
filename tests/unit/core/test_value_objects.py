"""
Unit tests for core value objects.
"""
import pytest

from core.domain.exceptions import (
    DomainException,
    GenerationExhaustedError,
    InvalidStrategyError,
    LicenseAlreadyAssignedError,
    LicenseNotFoundError,
)
from core.domain.value_objects import (
    Email,
    LicenseErrorCode,
    LicenseStatus,
    LicenseType,
    TimeState,
    UsageType,
)


class TestEmail:
    """Tests for Email value object."""

    def test_valid_email(self):
        """Test valid email creation."""
        email = Email("test@example.com")
        assert str(email) == "test@example.com"
        assert email.value == "test@example.com"

    def test_invalid_email_no_at(self):
        """Test invalid email without @."""
        with pytest.raises(ValueError, match="Invalid email"):
            Email("invalid-email")

    def test_invalid_email_empty(self):
        """Test invalid empty email."""
        with pytest.raises(ValueError, match="Invalid email"):
            Email("")

    def test_equality_by_value(self):
        """Test emails with the same address are equal."""
        assert Email("a@example.com") == Email("a@example.com")
        assert hash(Email("a@example.com")) == hash(Email("a@example.com"))


class TestLicenseStatus:
    """Tests for LicenseStatus enum."""

    def test_status_values(self):
        """Test status enum values."""
        assert LicenseStatus.ACTIVE.value == "active"
        assert LicenseStatus.SUSPENDED.value == "suspended"
        assert LicenseStatus.REVOKED.value == "revoked"

    def test_status_string(self):
        """Test status string representation."""
        assert str(LicenseStatus.SUSPENDED) == "suspended"


class TestEnums:
    """Tests for the remaining domain enums."""

    def test_license_types(self):
        assert [t.value for t in LicenseType] == ["standard", "premium", "enterprise"]

    def test_time_states(self):
        assert str(TimeState.GRACE_PERIOD) == "grace_period"

    def test_usage_type_from_name(self):
        """Test usage types resolve from their names."""
        assert UsageType("appointments") is UsageType.APPOINTMENTS
        with pytest.raises(ValueError):
            UsageType("beds")

    def test_error_codes_are_closed_set(self):
        assert {code.value for code in LicenseErrorCode} == {
            "LICENSE_NOT_FOUND",
            "LICENSE_EXPIRED",
            "LICENSE_INACTIVE",
            "LICENSE_ALREADY_IN_USE",
            "INVALID_ACTIVATION_CODE",
            "ALREADY_ACTIVATED",
            "ACTIVATION_FAILED",
            "NO_LICENSE",
            "USAGE_LIMIT_EXCEEDED",
            "VALIDATION_FAILED",
        }


class TestDomainExceptions:
    """Tests for domain exception codes."""

    def test_default_code_is_class_name(self):
        error = DomainException("boom")
        assert error.code == "DomainException"
        assert str(error) == "boom"

    def test_explicit_codes(self):
        assert LicenseNotFoundError().code == "LICENSE_NOT_FOUND"
        assert InvalidStrategyError().code == "InvalidStrategy"
        assert GenerationExhaustedError().code == "GenerationExhausted"
        assert LicenseAlreadyAssignedError().code == "LICENSE_ALREADY_IN_USE"
