"""
License service settings.

Values come from the ``LICENSE_SERVICE`` dict in Django settings,
falling back to the defaults below.
"""
from typing import Any, Dict

from django.conf import settings

DEFAULTS = {
    "DEFAULT_PREFIX": "MEDI",
    "CURRENT_LICENSE_TTL": 300,  # 5 minutes
    "KEY_EXISTS_TTL": 3600,  # 1 hour
    "EXPIRING_SOON_DAYS": 30,
    "DEFAULT_GRACE_PERIOD_DAYS": 7,
}


def license_settings() -> Dict[str, Any]:
    """Return the merged license service settings."""
    overrides = getattr(settings, "LICENSE_SERVICE", {}) or {}
    return {**DEFAULTS, **overrides}
