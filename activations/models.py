"""
Model registry for the activations app.

Models live in activations.infrastructure.models.
"""
from activations.infrastructure.models import LicenseHolder  # noqa: F401
