"""
Domain exceptions.

Domain exceptions represent business rule violations
and domain-specific error conditions.

Only unrecoverable conditions are raised. Validation and query
failures are returned to callers as result objects carrying one
of the codes in ``core.domain.value_objects.LicenseErrorCode``.
"""


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    def __init__(self, message: str, code: str = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class LicenseException(DomainException):
    """Base exception for license-related errors."""

    pass


class LicenseNotFoundError(LicenseException):
    """Raised when a license is not found."""

    def __init__(self, message: str = "License not found"):
        super().__init__(message, code="LICENSE_NOT_FOUND")


class InvalidLicenseStatusError(LicenseException):
    """Raised when a license operation is invalid for the current status."""

    def __init__(self, message: str = "Invalid license status"):
        super().__init__(message, code="INVALID_LICENSE_STATUS")


class InvalidUsageTypeError(LicenseException):
    """Raised when a usage type is not one of the metered resources."""

    def __init__(self, message: str = "Invalid usage type"):
        super().__init__(message, code="INVALID_USAGE_TYPE")


class LicenseAlreadyExistsError(LicenseException):
    """Raised when a license is issued with a key that is already taken."""

    def __init__(self, message: str = "License key already exists"):
        super().__init__(message, code="LICENSE_ALREADY_EXISTS")


class KeyGenerationError(DomainException):
    """Base exception for license key generation errors."""

    pass


class InvalidStrategyError(KeyGenerationError):
    """Raised when a key generation strategy is unknown or misconfigured."""

    def __init__(self, message: str = "Invalid license key generation strategy"):
        super().__init__(message, code="InvalidStrategy")


class GenerationExhaustedError(KeyGenerationError):
    """Raised when no unique key could be produced within the attempt budget."""

    def __init__(
        self, message: str = "Unable to generate unique license key after maximum attempts"
    ):
        super().__init__(message, code="GenerationExhausted")


class InvalidKeyFormatError(KeyGenerationError):
    """Raised when a custom key format template is malformed."""

    def __init__(self, message: str = "Invalid license key format"):
        super().__init__(message, code="INVALID_KEY_FORMAT")


class HolderException(DomainException):
    """Base exception for license holder errors."""

    pass


class HolderNotFoundError(HolderException):
    """Raised when a license holder is not found."""

    def __init__(self, message: str = "License holder not found"):
        super().__init__(message, code="HOLDER_NOT_FOUND")


class LicenseAlreadyAssignedError(HolderException):
    """Raised when a license key is already activated by another holder."""

    def __init__(self, message: str = "License key is already assigned to another user"):
        super().__init__(message, code="LICENSE_ALREADY_IN_USE")
