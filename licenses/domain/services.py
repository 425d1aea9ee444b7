"""
License domain services.

Domain services contain business logic that doesn't naturally
fit within a single entity.
"""
import hashlib
import json
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from django.utils import timezone

from core.domain.exceptions import GenerationExhaustedError
from core.domain.value_objects import LicenseErrorCode, LicenseStatus, LicenseType, TimeState
from core.metrics import license_key_collisions_total, license_keys_generated_total
from licenses.domain.license import License
from licenses.domain.license_key import (
    DEFAULT_PREFIX,
    STRATEGY_DESCRIPTIONS,
    CompactOptions,
    KeyOptions,
    KeyStrategy,
    StandardOptions,
    random_segment,
    resolve_options,
)

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 100
BATCH_ATTEMPT_FACTOR = 10

TYPE_PREFIXES = {
    LicenseType.STANDARD: "STD",
    LicenseType.PREMIUM: "PRM",
    LicenseType.ENTERPRISE: "ENT",
}

ExistsPredicate = Callable[[str], bool]


def _never_exists(key: str) -> bool:
    return False


class LicenseKeyGenerator:
    """
    Domain service for license key generation.

    Builds keys with a strategy and retries until the existence
    predicate reports the key as unused.
    """

    def __init__(
        self,
        key_exists: Optional[ExistsPredicate] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        """
        Initialize the generator.

        Args:
            key_exists: Returns True when a key is already taken
            clock: Returns the current time (used by date placeholders)
            max_attempts: Attempts per key before giving up
        """
        self.key_exists = key_exists or _never_exists
        self.clock = clock or timezone.now
        self.max_attempts = max_attempts

    def generate(
        self,
        strategy: Union[KeyStrategy, str] = KeyStrategy.STANDARD,
        options: Optional[KeyOptions] = None,
    ) -> str:
        """
        Generate a unique license key.

        Args:
            strategy: Strategy enum member or name
            options: Options dataclass matching the strategy

        Returns:
            License key not reported as existing

        Raises:
            InvalidStrategyError: If the strategy is unknown
            InvalidKeyFormatError: If custom options are malformed
            GenerationExhaustedError: If no unique key was found
        """
        strategy = KeyStrategy.parse(strategy)
        options = resolve_options(strategy, options)

        for attempt in range(1, self.max_attempts + 1):
            key = options.build(self.clock())
            if not self.key_exists(key):
                license_keys_generated_total.labels(strategy=strategy.value).inc()
                logger.info(
                    "License key generated",
                    extra={"strategy": strategy.value, "attempts": attempt},
                )
                return key
            license_key_collisions_total.labels(strategy=strategy.value).inc()

        raise GenerationExhaustedError()

    def generate_multiple(
        self,
        count: int,
        strategy: Union[KeyStrategy, str] = KeyStrategy.STANDARD,
        options: Optional[KeyOptions] = None,
    ) -> List[str]:
        """
        Generate ``count`` distinct keys, or fail without partial results.

        Args:
            count: Number of keys
            strategy: Strategy enum member or name
            options: Options dataclass matching the strategy

        Returns:
            List of exactly ``count`` distinct keys

        Raises:
            GenerationExhaustedError: If ``count * 10`` attempts were not enough
        """
        strategy = KeyStrategy.parse(strategy)
        options = resolve_options(strategy, options)

        keys: Dict[str, None] = {}
        attempts = 0
        max_attempts = count * BATCH_ATTEMPT_FACTOR

        while len(keys) < count and attempts < max_attempts:
            attempts += 1
            try:
                key = self.generate(strategy, options)
            except GenerationExhaustedError:
                logger.warning(
                    "Failed to generate license key in batch",
                    extra={"strategy": strategy.value, "attempt": attempts},
                )
                continue
            keys.setdefault(key, None)

        if len(keys) < count:
            raise GenerationExhaustedError(
                f"Unable to generate {count} unique license keys after {attempts} attempts"
            )
        return list(keys)

    def generate_with_characteristics(
        self,
        license_type: Optional[Union[LicenseType, str]] = None,
        strategy: Union[KeyStrategy, str] = KeyStrategy.STANDARD,
        options: Optional[KeyOptions] = None,
    ) -> str:
        """
        Generate a key whose prefix reflects the license type.

        Standard and compact keys get STD, PRM or ENT; other strategies
        keep their own template.
        """
        strategy = KeyStrategy.parse(strategy)
        prefix = DEFAULT_PREFIX
        if license_type is not None:
            try:
                prefix = TYPE_PREFIXES.get(LicenseType(license_type), DEFAULT_PREFIX)
            except ValueError:
                prefix = DEFAULT_PREFIX

        if strategy is KeyStrategy.STANDARD:
            base = resolve_options(strategy, options)
            options = StandardOptions(prefix, base.segment_length, base.segments)
        elif strategy is KeyStrategy.COMPACT:
            base = resolve_options(strategy, options)
            options = CompactOptions(prefix, base.length)
        return self.generate(strategy, options)


def generate_activation_code(length: int = 8) -> str:
    """Return a random uppercase alphanumeric activation code."""
    return random_segment(length)


def generate_server_fingerprint(server_info: Dict[str, Optional[str]]) -> str:
    """
    Hash server identity into a stable fingerprint.

    Args:
        server_info: Domain, IP, user agent and server name

    Returns:
        SHA-256 hex digest of the sorted JSON encoding
    """
    payload = json.dumps(server_info, sort_keys=True)
    return hashlib.sha256(payload.encode()).hexdigest()


def describe_strategies() -> Dict[str, str]:
    return {strategy.value: label for strategy, label in STRATEGY_DESCRIPTIONS.items()}


class LicenseValidator:
    """Domain service for license validation."""

    EXPIRED_MESSAGE = (
        "Your license has expired. Please renew your license to continue using the application."
    )
    SUSPENDED_MESSAGE = "Your license has been suspended. Please contact support for assistance."
    REVOKED_MESSAGE = "Your license has been revoked. Please contact support for assistance."
    TRIAL_EXPIRED_MESSAGE = (
        "Your free trial has expired. Please activate a license to continue using the application."
    )
    NO_LICENSE_MESSAGE = "No valid license found. Please contact support."
    GENERIC_MESSAGE = "License validation failed. Please contact support."

    @staticmethod
    def failure_code(license: License, now: datetime) -> Optional[LicenseErrorCode]:
        """
        Classify why a license is not valid.

        Args:
            license: License entity to check
            now: Reference time

        Returns:
            None for a valid license, LICENSE_EXPIRED once ``expires_at``
            has passed, otherwise LICENSE_INACTIVE
        """
        if license.is_valid(now):
            return None
        if now >= license.expires_at:
            return LicenseErrorCode.LICENSE_EXPIRED
        return LicenseErrorCode.LICENSE_INACTIVE

    @classmethod
    def restriction_reason(cls, license: License, now: datetime) -> Optional[str]:
        """
        Explain a blocking license, checking expiry before status.

        A license past ``expires_at`` counts as expired here, grace
        period included, matching ``failure_code``.

        Returns:
            Message, or None when neither expiry nor status explains it
        """
        if license.time_state(now) != TimeState.VALID:
            return cls.EXPIRED_MESSAGE
        if license.status == LicenseStatus.SUSPENDED:
            return cls.SUSPENDED_MESSAGE
        if license.status == LicenseStatus.REVOKED:
            return cls.REVOKED_MESSAGE
        return None
