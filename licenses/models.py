"""
Model registry for the licenses app.

Models live in licenses.infrastructure.models.
"""
from licenses.infrastructure.models import AuditLog, License  # noqa: F401
