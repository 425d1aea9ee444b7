"""
License key formats.

Each generation strategy is a pure string builder paired with a frozen
options dataclass. Uniqueness and retries live in
``licenses.domain.services.LicenseKeyGenerator``.
"""

import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Pattern, Union

from core.domain.exceptions import InvalidKeyFormatError, InvalidStrategyError

KEY_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_PREFIX = "MEDI"
DEFAULT_FORMAT = "MEDI-{segment1}-{segment2}-{segment3}-{segment4}"

_SEGMENT_PLACEHOLDER = re.compile(r"\{segment(\d+)\}")
_ANY_PLACEHOLDER = re.compile(r"\{[^{}]*\}")
_RANDOM_PLACEHOLDER = re.compile(r"^\{random:(\d+)\}$")
_TIMESTAMP_PLACEHOLDER = re.compile(r"^\{timestamp:([^}]+)\}$")
_DATE_PLACEHOLDERS = {"{year}": "%Y", "{month}": "%m", "{day}": "%d"}
_DATE_PATTERNS = {"{year}": r"\d{4}", "{month}": r"\d{2}", "{day}": r"\d{2}"}


class KeyStrategy(Enum):
    """License key generation strategies."""

    STANDARD = "standard"
    COMPACT = "compact"
    SEGMENTED = "segmented"
    CUSTOM = "custom"

    def __str__(self) -> str:
        """Return strategy as string."""
        return self.value

    @classmethod
    def parse(cls, value: Union["KeyStrategy", str]) -> "KeyStrategy":
        """
        Resolve a strategy from its enum member or name.

        Raises:
            InvalidStrategyError: If the name is not a known strategy
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidStrategyError(
                f"Invalid license key generation strategy: {value}"
            ) from None


def random_segment(length: int) -> str:
    """Return ``length`` random uppercase alphanumeric characters."""
    return "".join(secrets.choice(KEY_ALPHABET) for _ in range(length))


def _segment_pattern(length: int) -> str:
    return f"[A-Z0-9]{{{length}}}"


@dataclass(frozen=True)
class StandardOptions:
    """Options for ``PREFIX-XXXX-XXXX-XXXX-XXXX`` keys."""

    prefix: str = DEFAULT_PREFIX
    segment_length: int = 4
    segments: int = 4

    def __post_init__(self):
        if self.segment_length < 1 or self.segments < 1:
            raise InvalidKeyFormatError("Segment length and segment count must be positive")

    def build(self, now: datetime) -> str:
        parts = [random_segment(self.segment_length) for _ in range(self.segments)]
        return "-".join([self.prefix] + parts)

    def pattern(self) -> Pattern:
        segment = _segment_pattern(self.segment_length)
        return re.compile(rf"^{re.escape(self.prefix)}(-{segment}){{{self.segments}}}$")


@dataclass(frozen=True)
class CompactOptions:
    """Options for ``PREFIX-XXXXXXXXXXXX`` keys."""

    prefix: str = DEFAULT_PREFIX
    length: int = 12

    def __post_init__(self):
        if self.length < 1:
            raise InvalidKeyFormatError("Compact key length must be positive")

    def build(self, now: datetime) -> str:
        return f"{self.prefix}-{random_segment(self.length)}"

    def pattern(self) -> Pattern:
        return re.compile(rf"^{re.escape(self.prefix)}-{_segment_pattern(self.length)}$")


@dataclass(frozen=True)
class SegmentedOptions:
    """Options for template keys built from ``{segmentN}`` placeholders."""

    format: str = DEFAULT_FORMAT
    segment_length: int = 4

    def __post_init__(self):
        if not _SEGMENT_PLACEHOLDER.search(self.format):
            raise InvalidKeyFormatError(
                "Segmented format must contain at least one {segmentN} placeholder"
            )
        if self.segment_length < 1:
            raise InvalidKeyFormatError("Segment length must be positive")

    @property
    def segment_count(self) -> int:
        return len(_SEGMENT_PLACEHOLDER.findall(self.format))

    def build(self, now: datetime) -> str:
        return _SEGMENT_PLACEHOLDER.sub(
            lambda _: random_segment(self.segment_length), self.format
        )

    def pattern(self) -> Pattern:
        parts = []
        position = 0
        for match in _SEGMENT_PLACEHOLDER.finditer(self.format):
            parts.append(re.escape(self.format[position:match.start()]))
            parts.append(_segment_pattern(self.segment_length))
            position = match.end()
        parts.append(re.escape(self.format[position:]))
        return re.compile("^" + "".join(parts) + "$")


@dataclass(frozen=True)
class CustomOptions:
    """
    Options for user-defined templates.

    Supported placeholders: ``{random:N}``, ``{timestamp:FMT}`` (a
    ``strftime`` format), ``{year}``, ``{month}`` and ``{day}``.
    """

    format: str

    def __post_init__(self):
        if not self.format:
            raise InvalidKeyFormatError("Custom format is required for custom strategy")
        for token in _ANY_PLACEHOLDER.findall(self.format):
            random_match = _RANDOM_PLACEHOLDER.match(token)
            if random_match:
                if int(random_match.group(1)) < 1:
                    raise InvalidKeyFormatError(f"Random placeholder must be positive: {token}")
                continue
            if _TIMESTAMP_PLACEHOLDER.match(token) or token in _DATE_PLACEHOLDERS:
                continue
            raise InvalidKeyFormatError(f"Unrecognized placeholder in custom format: {token}")

    def _render(self, token: str, now: datetime) -> str:
        random_match = _RANDOM_PLACEHOLDER.match(token)
        if random_match:
            return random_segment(int(random_match.group(1)))
        timestamp_match = _TIMESTAMP_PLACEHOLDER.match(token)
        if timestamp_match:
            return now.strftime(timestamp_match.group(1))
        return now.strftime(_DATE_PLACEHOLDERS[token])

    def build(self, now: datetime) -> str:
        return _ANY_PLACEHOLDER.sub(lambda m: self._render(m.group(0), now), self.format)

    def pattern(self) -> Pattern:
        parts = []
        position = 0
        for match in _ANY_PLACEHOLDER.finditer(self.format):
            parts.append(re.escape(self.format[position:match.start()]))
            token = match.group(0)
            random_match = _RANDOM_PLACEHOLDER.match(token)
            if random_match:
                parts.append(_segment_pattern(int(random_match.group(1))))
            elif token in _DATE_PATTERNS:
                parts.append(_DATE_PATTERNS[token])
            else:
                parts.append(".+?")
            position = match.end()
        parts.append(re.escape(self.format[position:]))
        return re.compile("^" + "".join(parts) + "$")


KeyOptions = Union[StandardOptions, CompactOptions, SegmentedOptions, CustomOptions]

OPTIONS_BY_STRATEGY = {
    KeyStrategy.STANDARD: StandardOptions,
    KeyStrategy.COMPACT: CompactOptions,
    KeyStrategy.SEGMENTED: SegmentedOptions,
    KeyStrategy.CUSTOM: CustomOptions,
}

STRATEGY_DESCRIPTIONS = {
    KeyStrategy.STANDARD: "Standard (MEDI-XXXX-XXXX-XXXX-XXXX)",
    KeyStrategy.COMPACT: "Compact (MEDI-XXXXXXXXXXXX)",
    KeyStrategy.SEGMENTED: "Segmented (Custom segments)",
    KeyStrategy.CUSTOM: "Custom (User-defined format)",
}


def resolve_options(strategy: KeyStrategy, options: Optional[KeyOptions]) -> KeyOptions:
    """
    Return options for ``strategy``, falling back to its defaults.

    Raises:
        InvalidKeyFormatError: If the custom strategy has no format
        InvalidStrategyError: If the options belong to another strategy
    """
    options_class = OPTIONS_BY_STRATEGY[strategy]
    if options is None:
        if strategy is KeyStrategy.CUSTOM:
            raise InvalidKeyFormatError("Custom format is required for custom strategy")
        return options_class()
    if not isinstance(options, options_class):
        raise InvalidStrategyError(
            f"{type(options).__name__} cannot be used with the {strategy.value} strategy"
        )
    return options


# Prefix-agnostic patterns used to classify arbitrary keys.
_GENERIC_PREFIX = r"[A-Z][A-Z0-9]*"
DETECTION_PATTERNS = (
    (KeyStrategy.STANDARD, re.compile(rf"^{_GENERIC_PREFIX}(-[A-Z0-9]{{4}}){{4}}$")),
    (KeyStrategy.COMPACT, re.compile(rf"^{_GENERIC_PREFIX}-[A-Z0-9]{{12}}$")),
    (KeyStrategy.SEGMENTED, re.compile(rf"^{_GENERIC_PREFIX}(-[A-Z0-9]+)+$")),
)
_DEFAULT_SEGMENTED_PATTERN = re.compile(rf"^{DEFAULT_PREFIX}(-[A-Z0-9]+)+$")


def validate_format(
    key: str,
    strategy: Union[KeyStrategy, str] = KeyStrategy.STANDARD,
    options: Optional[KeyOptions] = None,
) -> bool:
    """
    Check the structure of ``key`` for the given strategy.

    Unknown strategies, and the custom strategy without a template,
    accept any key of at least 10 characters.
    """
    try:
        strategy = KeyStrategy.parse(strategy)
    except InvalidStrategyError:
        return bool(key) and len(key) >= 10

    if strategy is KeyStrategy.CUSTOM and options is None:
        return bool(key) and len(key) >= 10
    if strategy is KeyStrategy.SEGMENTED and options is None:
        return bool(_DEFAULT_SEGMENTED_PATTERN.match(key))

    return bool(resolve_options(strategy, options).pattern().match(key))


def detect_format(key: str) -> KeyStrategy:
    """Classify a key; the first matching pattern wins."""
    for strategy, pattern in DETECTION_PATTERNS:
        if pattern.match(key):
            return strategy
    return KeyStrategy.CUSTOM


@dataclass(frozen=True)
class ParsedLicenseKey:
    """Structural breakdown of a license key."""

    prefix: str
    segments: List[str]
    segment_count: int
    total_length: int
    format: KeyStrategy


def parse_license_key(key: str) -> ParsedLicenseKey:
    """
    Split a license key on dashes and detect its format.

    Args:
        key: License key string

    Returns:
        ParsedLicenseKey
    """
    parts = key.split("-")
    return ParsedLicenseKey(
        prefix=parts[0],
        segments=parts[1:],
        segment_count=len(parts) - 1,
        total_length=len(key),
        format=detect_format(key),
    )
