"""
License service.

The lifecycle and entitlement engine: validation, activation, usage
metering, feature gating, administrative transitions and the
application-wide restriction gate.
"""
import logging
import secrets
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from django.db import DatabaseError
from django.utils import timezone

from activations.domain.holder import LicenseHolder
from activations.infrastructure.repositories.django_holder_repository import (
    DjangoHolderRepository,
)
from activations.ports.holder_repository import HolderRepository
from core.domain.events import EventBus
from core.domain.exceptions import (
    InvalidUsageTypeError,
    LicenseAlreadyAssignedError,
    LicenseAlreadyExistsError,
    LicenseNotFoundError,
)
from core.domain.value_objects import LicenseErrorCode, LicenseStatus, LicenseType, UsageType
from core.infrastructure.cache import CachePort
from core.infrastructure.database import unit_of_work
from core.infrastructure.events import event_bus as default_event_bus
from core.metrics import license_validations_total, usage_changes_total
from licenses.application.commands.create_license import CreateLicenseCommand
from licenses.application.commands.update_license import UpdateLicenseCommand
from licenses.application.dto.license_dto import (
    ActivationResultDTO,
    LicenseInfoDTO,
    LicenseStatisticsDTO,
    LicenseStatusDTO,
    UsageCheckResultDTO,
    UsageDTO,
    ValidationResultDTO,
)
from licenses.application.services.license_cache_service import LicenseCacheService
from licenses.conf import license_settings
from licenses.domain.events import (
    LicenseActivated,
    LicenseAssigned,
    LicenseCreated,
    LicenseEvent,
    LicenseRenewed,
    LicenseResumed,
    LicenseRevoked,
    LicenseSuspended,
    LicenseUpdated,
    MonthlyUsageReset,
)
from licenses.domain.license import License
from licenses.domain.license_key import KeyStrategy, StandardOptions
from licenses.domain.services import (
    LicenseKeyGenerator,
    LicenseValidator,
    describe_strategies,
    generate_activation_code,
    generate_server_fingerprint,
)
from licenses.infrastructure.repositories.django_audit_sink import DjangoAuditSink
from licenses.infrastructure.repositories.django_license_repository import (
    DjangoLicenseRepository,
)
from licenses.ports.audit_sink import AuditSink
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


def parse_usage_type(usage_type: Union[UsageType, str]) -> UsageType:
    """
    Resolve a usage type from its enum member or name.

    Raises:
        InvalidUsageTypeError: If the name is not a metered resource
    """
    try:
        return UsageType(usage_type)
    except ValueError:
        raise InvalidUsageTypeError(f"Unknown usage type: {usage_type}") from None


def _format_date(moment: datetime) -> str:
    return f"{moment:%B} {moment.day}, {moment.year}"


class LicenseService:
    """
    Facade over the license domain.

    Validation and query failures come back as result DTOs; only
    unknown usage types, illegal status transitions, missing licenses
    on administrative calls and key generation failures raise.
    """

    def __init__(
        self,
        license_repository: Optional[LicenseRepository] = None,
        holder_repository: Optional[HolderRepository] = None,
        audit_sink: Optional[AuditSink] = None,
        cache: Optional[CachePort] = None,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the service with its collaborators.

        Args:
            license_repository: License persistence (Django ORM by default)
            holder_repository: Holder persistence (Django ORM by default)
            audit_sink: Append-only audit trail (Django ORM by default)
            cache: Cache port (Django cache by default)
            event_bus: Domain event bus (process-wide bus by default)
            clock: Returns the current time
        """
        self.license_repository = license_repository or DjangoLicenseRepository()
        self.holder_repository = holder_repository or DjangoHolderRepository()
        self.audit_sink = audit_sink or DjangoAuditSink()
        self.cache_service = LicenseCacheService(self.license_repository, cache)
        self.event_bus = event_bus or default_event_bus
        self.clock = clock or timezone.now
        self.key_generator = LicenseKeyGenerator(
            key_exists=self.cache_service.key_exists, clock=self.clock
        )

    # Helpers

    def get_current_license(self) -> Optional[License]:
        return self.cache_service.get_current_license(self.clock())

    def _valid_current_license(self, now: datetime) -> Optional[License]:
        license = self.cache_service.get_current_license(now)
        if license is None or not license.is_valid(now):
            return None
        return license

    def _bound_license(self, holder: LicenseHolder) -> Optional[License]:
        if not holder.license_key:
            return None
        return self.license_repository.find_by_key(holder.license_key)

    def _save_with_audit(
        self,
        license: License,
        message: str,
        now: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> License:
        """Append an audit entry, persist the license and feed the sink."""
        license = license.with_audit(message, now, metadata)
        saved = self.license_repository.save(license)
        self.audit_sink.append(saved.license_key, saved.audit_log[-1])
        return saved

    def _locked(self, license_key: str) -> License:
        license = self.license_repository.find_by_key_for_update(license_key)
        if license is None:
            raise LicenseNotFoundError(f"License {license_key} not found")
        return license

    def _finish(self, event: LicenseEvent) -> None:
        """Forget cached state and announce the change."""
        self.cache_service.invalidate_current_license()
        self.event_bus.publish(event)

    def _in_use_result(self, holder: LicenseHolder) -> ValidationResultDTO:
        assigned_to = holder.display_name
        return ValidationResultDTO(
            valid=False,
            message=(
                f"This license key is already in use by another user ({assigned_to}). "
                "Each license can only be used by one user at a time."
            ),
            error_code=LicenseErrorCode.LICENSE_ALREADY_IN_USE.value,
            assigned_to=assigned_to,
        )

    # Validation and activation

    def validate_license(
        self, license_key: str, requesting_holder: Optional[LicenseHolder] = None
    ) -> ValidationResultDTO:
        """
        Validate a license key for a requester.

        Checks run in order and the first failure wins: unknown key,
        expired or inactive license, key bound to a different holder.

        Args:
            license_key: License key string
            requesting_holder: Holder asking, excluded from the in-use check

        Returns:
            ValidationResultDTO
        """
        now = self.clock()
        license = self.license_repository.find_by_key(license_key)

        if license is None:
            license_validations_total.labels(result=LicenseErrorCode.LICENSE_NOT_FOUND.value).inc()
            return ValidationResultDTO(
                valid=False,
                message="License key not found. Please check the key and try again.",
                error_code=LicenseErrorCode.LICENSE_NOT_FOUND.value,
            )

        failure = LicenseValidator.failure_code(license, now)
        if failure is not None:
            self._record_validation(license_key, now, succeeded=False)
            license_validations_total.labels(result=failure.value).inc()
            if failure == LicenseErrorCode.LICENSE_EXPIRED:
                message = (
                    f"License has expired on {_format_date(license.expires_at)}. "
                    "Please contact support for renewal."
                )
            else:
                message = "License is not active. Please contact support for assistance."
            return ValidationResultDTO(
                valid=False,
                message=message,
                error_code=failure.value,
                expires_at=license.expires_at,
                grace_period_end=license.grace_period_end,
            )

        holder = self.holder_repository.find_active_holder(
            license_key,
            exclude_holder_id=requesting_holder.id if requesting_holder else None,
        )
        if holder is not None:
            license_validations_total.labels(
                result=LicenseErrorCode.LICENSE_ALREADY_IN_USE.value
            ).inc()
            return self._in_use_result(holder)

        license = self._record_validation(license_key, now, succeeded=True)
        license_validations_total.labels(result="VALID").inc()
        days = license.days_until_expiration(now)
        return ValidationResultDTO(
            valid=True,
            message=(
                f"License is valid and available! Expires on {_format_date(license.expires_at)} "
                f"({days} days remaining)."
            ),
            license=license,
            expires_at=license.expires_at,
            days_until_expiration=days,
        )

    def _record_validation(self, license_key: str, now: datetime, succeeded: bool) -> License:
        with unit_of_work():
            license = self._locked(license_key)
            saved = self.license_repository.save(license.record_validation(now, succeeded))
        self.cache_service.invalidate_current_license()
        return saved

    def activate_license(
        self,
        license_key: str,
        activation_code: str,
        server_domain: Optional[str] = None,
        server_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        server_name: Optional[str] = None,
    ) -> ActivationResultDTO:
        """
        Bind a license to a server with its one-time activation code.

        Args:
            license_key: License key string
            activation_code: Code issued with the license
            server_domain: Host name of the activating server
            server_ip: IP address of the activating server
            user_agent: Client user agent, part of the fingerprint
            server_name: Server name, part of the fingerprint

        Returns:
            ActivationResultDTO
        """
        license = self.license_repository.find_by_key(license_key)
        if license is None:
            return ActivationResultDTO(
                success=False,
                message="License not found",
                error_code=LicenseErrorCode.LICENSE_NOT_FOUND.value,
            )

        supplied = (activation_code or "").encode()
        if not secrets.compare_digest(license.activation_code.encode(), supplied):
            return ActivationResultDTO(
                success=False,
                message="Invalid activation code",
                error_code=LicenseErrorCode.INVALID_ACTIVATION_CODE.value,
            )

        already_activated = ActivationResultDTO(
            success=False,
            message="License already activated",
            error_code=LicenseErrorCode.ALREADY_ACTIVATED.value,
        )
        if license.activated_at is not None:
            return already_activated

        now = self.clock()
        fingerprint = generate_server_fingerprint(
            {
                "domain": server_domain,
                "ip": server_ip,
                "user_agent": user_agent,
                "server_name": server_name or "",
            }
        )
        try:
            with unit_of_work():
                locked = self._locked(license_key)
                if locked.activated_at is not None:
                    return already_activated
                activated = locked.activate(
                    now,
                    server_domain=server_domain,
                    server_ip=server_ip,
                    server_fingerprint=fingerprint,
                )
                saved = self._save_with_audit(
                    activated,
                    "License activated",
                    now,
                    {"server_domain": server_domain, "server_ip": server_ip},
                )
        except DatabaseError as e:
            logger.error("Failed to activate license: %s", e, exc_info=True)
            return ActivationResultDTO(
                success=False,
                message="Failed to activate license",
                error_code=LicenseErrorCode.ACTIVATION_FAILED.value,
            )

        self._finish(
            LicenseActivated(
                license_key,
                metadata={"server_domain": server_domain, "server_ip": server_ip},
                occurred_at=now,
            )
        )
        return ActivationResultDTO(
            success=True, message="License activated successfully", license=saved
        )

    def activate_license_for_user(
        self, holder: LicenseHolder, license_key: str
    ) -> ActivationResultDTO:
        """
        Validate a key and bind it to a holder.

        The license row is locked while the assignment is re-checked and
        written, so two holders cannot both claim the same key.

        Args:
            holder: Holder claiming the key
            license_key: License key string

        Returns:
            ActivationResultDTO carrying the updated holder on success
        """
        validation = self.validate_license(license_key, holder)
        if not validation.valid:
            return ActivationResultDTO(
                success=False,
                message=validation.message,
                error_code=validation.error_code or LicenseErrorCode.VALIDATION_FAILED.value,
            )

        now = self.clock()
        try:
            with unit_of_work():
                license = self._locked(license_key)
                other = self.holder_repository.find_active_holder(
                    license_key, exclude_holder_id=holder.id
                )
                if other is not None:
                    in_use = self._in_use_result(other)
                    return ActivationResultDTO(
                        success=False, message=in_use.message, error_code=in_use.error_code
                    )
                saved_holder = self.holder_repository.save(holder.assign_license(license_key, now))
                saved = self._save_with_audit(
                    license,
                    "License assigned to user",
                    now,
                    {"holder_id": str(holder.id), "email": holder.email},
                )
        except LicenseAlreadyAssignedError as e:
            return ActivationResultDTO(
                success=False, message=e.message, error_code=e.code
            )

        self._finish(
            LicenseAssigned(license_key, metadata={"holder_id": str(holder.id)}, occurred_at=now)
        )
        return ActivationResultDTO(
            success=True,
            message="License activated successfully",
            license=saved,
            holder=saved_holder,
        )

    # Entitlements

    def has_feature(self, feature: str) -> bool:
        """True iff the current valid license includes ``feature``."""
        license = self._valid_current_license(self.clock())
        return license is not None and license.has_feature(feature)

    def get_current_usage(self, usage_type: Union[UsageType, str]) -> int:
        usage_type = parse_usage_type(usage_type)
        license = self._valid_current_license(self.clock())
        return license.usage(usage_type) if license else 0

    def get_usage_limit(self, usage_type: Union[UsageType, str]) -> int:
        usage_type = parse_usage_type(usage_type)
        license = self._valid_current_license(self.clock())
        return license.limit(usage_type) if license else 0

    def check_usage_limit(self, usage_type: Union[UsageType, str]) -> UsageCheckResultDTO:
        """
        Check a quota of the current license.

        Args:
            usage_type: users, clinics, patients or appointments

        Returns:
            UsageCheckResultDTO

        Raises:
            InvalidUsageTypeError: If the usage type is unknown
        """
        usage_type = parse_usage_type(usage_type)
        license = self._valid_current_license(self.clock())

        if license is None:
            return UsageCheckResultDTO(
                allowed=False,
                message="No valid license found",
                error_code=LicenseErrorCode.NO_LICENSE.value,
            )

        if license.is_usage_limit_exceeded(usage_type):
            return UsageCheckResultDTO(
                allowed=False,
                message=f"Usage limit exceeded for {usage_type}",
                error_code=LicenseErrorCode.USAGE_LIMIT_EXCEEDED.value,
                current=license.usage(usage_type),
                limit=license.limit(usage_type),
                percentage=license.usage_percentage(usage_type),
            )

        return UsageCheckResultDTO(
            allowed=True,
            message="Usage within limits",
            current=license.usage(usage_type),
            limit=license.limit(usage_type),
            percentage=license.usage_percentage(usage_type),
        )

    def increment_usage(self, usage_type: Union[UsageType, str], amount: int = 1) -> bool:
        """
        Add ``amount`` to a usage counter of the current license.

        Returns:
            False when there is no valid license
        """
        return self._adjust_usage(parse_usage_type(usage_type), amount, "increment")

    def decrement_usage(self, usage_type: Union[UsageType, str], amount: int = 1) -> bool:
        """
        Subtract ``amount`` from a usage counter, clamping at zero.

        Returns:
            False when there is no valid license
        """
        return self._adjust_usage(parse_usage_type(usage_type), amount, "decrement")

    def _adjust_usage(self, usage_type: UsageType, amount: int, direction: str) -> bool:
        if amount < 0:
            raise ValueError("Usage amount must not be negative")
        delta = -amount if direction == "decrement" else amount

        now = self.clock()
        current = self._valid_current_license(now)
        if current is None:
            return False

        with unit_of_work():
            license = self.license_repository.find_by_key_for_update(current.license_key)
            changed = license is not None and license.is_valid(now)
            if changed:
                self.license_repository.save(license.adjust_usage(usage_type, delta, now))

        self.cache_service.invalidate_current_license()
        if changed:
            usage_changes_total.labels(usage_type=usage_type.value, direction=direction).inc()
            logger.debug("Usage %s for %s by %d", direction, usage_type, amount)
        return changed

    def reset_monthly_usage(self) -> bool:
        """
        Zero the monthly appointment counter of the current license.

        Returns:
            False when there is no license
        """
        now = self.clock()
        current = self.get_current_license()
        if current is None:
            return False

        with unit_of_work():
            license = self._locked(current.license_key)
            self.license_repository.save(license.reset_monthly_usage(now))

        self._finish(MonthlyUsageReset(current.license_key, occurred_at=now))
        logger.info("Monthly usage reset", extra={"license_key": current.license_key})
        return True

    # Queries

    def get_license_status(self) -> LicenseStatusDTO:
        """
        Report the service-level status of the current license.

        Precedence: no license, expired, grace period, non-active
        status, active.
        """
        now = self.clock()
        license = self.get_current_license()

        if license is None:
            return LicenseStatusDTO(has_license=False, status="no_license", message="No license found")

        in_grace = license.status == LicenseStatus.ACTIVE and license.is_in_grace_period(now)
        if license.is_expired(now):
            status, message = "expired", "License has expired"
        elif in_grace:
            status, message = "grace_period", "License is in grace period"
        elif license.status != LicenseStatus.ACTIVE:
            status, message = license.status.value, f"License status: {license.status}"
        else:
            status, message = "active", "License is active"

        return LicenseStatusDTO(
            has_license=True,
            status=status,
            message=message,
            license=license,
            expires_at=license.expires_at,
            days_until_expiration=license.days_until_expiration(now),
            is_in_grace_period=in_grace,
            days_in_grace_period=license.days_in_grace_period(now) if in_grace else 0,
        )

    def get_license_info(self) -> LicenseInfoDTO:
        now = self.clock()
        license = self._valid_current_license(now)
        if license is None:
            return LicenseInfoDTO(has_license=False)

        return LicenseInfoDTO(
            has_license=True,
            license_type=license.license_type.value,
            customer_name=license.customer_name,
            expires_at=license.expires_at,
            days_until_expiration=license.days_until_expiration(now),
            features=list(license.features),
            usage={
                usage_type.value: UsageDTO(
                    current=license.usage(usage_type),
                    limit=license.limit(usage_type),
                    percentage=license.usage_percentage(usage_type),
                )
                for usage_type in UsageType
            },
        )

    def get_license_statistics(self) -> LicenseStatisticsDTO:
        now = self.clock()
        repository = self.license_repository
        return LicenseStatisticsDTO(
            total_licenses=repository.count(),
            active_licenses=repository.count_by_status(LicenseStatus.ACTIVE),
            expired_licenses=repository.count_expired(now),
            expiring_soon=repository.count_expiring_within(
                now, license_settings()["EXPIRING_SOON_DAYS"]
            ),
            monthly_revenue=repository.sum_active_monthly_fees(),
            license_types={t.value: repository.count_by_type(t) for t in LicenseType},
            license_statuses={s.value: repository.count_by_status(s) for s in LicenseStatus},
            key_strategies=describe_strategies(),
        )

    def get_expiring_licenses(self, days: Optional[int] = None) -> List[License]:
        if days is None:
            days = license_settings()["EXPIRING_SOON_DAYS"]
        return self.license_repository.find_expiring_within(self.clock(), days)

    # Administration

    def create_license(self, command: CreateLicenseCommand) -> License:
        """
        Issue a new license.

        Args:
            command: CreateLicenseCommand

        Returns:
            Saved License entity

        Raises:
            LicenseAlreadyExistsError: If a supplied key is already taken
            GenerationExhaustedError: If no unique key could be generated
        """
        now = self.clock()
        config = license_settings()

        license_key = command.license_key
        if license_key is None:
            license_key = self.key_generator.generate(
                KeyStrategy.STANDARD, StandardOptions(prefix=config["DEFAULT_PREFIX"])
            )
        elif self.license_repository.exists_key(license_key):
            raise LicenseAlreadyExistsError(f"License key {license_key} already exists")

        grace_period_days = command.grace_period_days
        if grace_period_days is None:
            grace_period_days = config["DEFAULT_GRACE_PERIOD_DAYS"]

        license = License.create(
            license_key=license_key,
            activation_code=command.activation_code or generate_activation_code(),
            license_type=command.license_type,
            customer_name=command.customer_name,
            customer_email=command.customer_email,
            expires_at=command.expires_at,
            now=now,
            features=command.features,
            customer_company=command.customer_company,
            grace_period_days=grace_period_days,
            max_users=command.max_users,
            max_clinics=command.max_clinics,
            max_patients=command.max_patients,
            max_appointments_per_month=command.max_appointments_per_month,
            monthly_fee=command.monthly_fee,
        )
        with unit_of_work():
            saved = self._save_with_audit(
                license,
                "License created",
                now,
                {"license_type": license.license_type.value, "customer_email": license.customer_email},
            )

        self._finish(
            LicenseCreated(
                license_key,
                metadata={"license_type": license.license_type.value},
                occurred_at=now,
            )
        )
        return saved

    def update_license(self, license_key: str, **changes: Any) -> License:
        """
        Change editable fields of a license.

        Args:
            license_key: License key string
            **changes: Field values, as accepted by UpdateLicenseCommand

        Returns:
            Updated License entity

        Raises:
            LicenseNotFoundError: If the license does not exist
        """
        fields = UpdateLicenseCommand(license_key=license_key, **changes).changes()
        if "license_type" in fields:
            fields["license_type"] = LicenseType(fields["license_type"])
        if "features" in fields:
            fields["features"] = tuple(dict.fromkeys(fields["features"]))

        now = self.clock()
        with unit_of_work():
            license = self._locked(license_key)
            saved = self._save_with_audit(
                replace(license, updated_at=now, **fields),
                "License updated",
                now,
                {"fields": sorted(fields)},
            )

        self._finish(LicenseUpdated(license_key, metadata={"fields": sorted(fields)}, occurred_at=now))
        return saved

    def _transition(
        self,
        license_key: str,
        change: Callable[[License, datetime], License],
        message: str,
        metadata: Dict[str, Any],
        event_class,
    ) -> License:
        now = self.clock()
        with unit_of_work():
            license = self._locked(license_key)
            saved = self._save_with_audit(change(license, now), message, now, metadata)

        self._finish(event_class(license_key, metadata=metadata, occurred_at=now))
        logger.info(message, extra={"license_key": license_key, **metadata})
        return saved

    def suspend_license(self, license_key: str, reason: Optional[str] = None) -> License:
        """
        Suspend an active license.

        Raises:
            LicenseNotFoundError: If the license does not exist
            InvalidLicenseStatusError: Unless the license is active
        """
        return self._transition(
            license_key,
            lambda license, now: license.suspend(now),
            "License suspended",
            {"reason": reason},
            LicenseSuspended,
        )

    def resume_license(self, license_key: str, reason: Optional[str] = None) -> License:
        """
        Reactivate a suspended license.

        Raises:
            LicenseNotFoundError: If the license does not exist
            InvalidLicenseStatusError: Unless the license is suspended
        """
        return self._transition(
            license_key,
            lambda license, now: license.resume(now),
            "License resumed",
            {"reason": reason},
            LicenseResumed,
        )

    def revoke_license(self, license_key: str, reason: Optional[str] = None) -> License:
        """
        Revoke a license permanently.

        Raises:
            LicenseNotFoundError: If the license does not exist
            InvalidLicenseStatusError: If the license is already revoked
        """
        return self._transition(
            license_key,
            lambda license, now: license.revoke(now),
            "License revoked",
            {"reason": reason},
            LicenseRevoked,
        )

    def renew_license(self, license_key: str, months: int = 12) -> License:
        """
        Push the expiration forward by ``months``; status is unchanged.

        Raises:
            LicenseNotFoundError: If the license does not exist
            InvalidLicenseStatusError: If the license is revoked
        """
        now = self.clock()
        with unit_of_work():
            license = self._locked(license_key)
            renewed = license.renew(months, now)
            metadata = {"months": months, "new_expires_at": renewed.expires_at.isoformat()}
            saved = self._save_with_audit(renewed, "License renewed", now, metadata)

        self._finish(LicenseRenewed(license_key, metadata=metadata, occurred_at=now))
        logger.info("License renewed", extra={"license_key": license_key, "months": months})
        return saved

    # Restriction gate

    def should_restrict_application(self, requester: Optional[LicenseHolder] = None) -> bool:
        """
        Decide whether the application should be locked.

        Args:
            requester: Authenticated holder, if any

        Returns:
            False when the requester has trial or license access of their
            own; otherwise True unless the current license is valid
        """
        now = self.clock()
        if requester is not None and requester.has_valid_access(self._bound_license(requester), now):
            return False

        license = self.get_current_license()
        return license is None or not license.is_valid(now)

    def get_restriction_message(self, requester: Optional[LicenseHolder] = None) -> str:
        """
        Explain why access is restricted.

        Order: trial expired, then the requester's own license (expired,
        suspended, revoked), then the same checks on the current license.
        """
        now = self.clock()
        if requester is not None:
            if requester.is_trial_expired(now):
                return LicenseValidator.TRIAL_EXPIRED_MESSAGE
            if requester.has_activated_license:
                bound = self._bound_license(requester)
                reason = LicenseValidator.restriction_reason(bound, now) if bound else None
                if reason:
                    return reason

        license = self.get_current_license()
        if license is None:
            return LicenseValidator.NO_LICENSE_MESSAGE
        return LicenseValidator.restriction_reason(license, now) or LicenseValidator.GENERIC_MESSAGE
