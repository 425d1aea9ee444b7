"""
License and AuditLog Django ORM models.

This is the infrastructure layer model for licenses.
Domain entities are in licenses.domain.license.
"""
import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class License(models.Model):
    """
    A clinic license granting features and resource quotas
    for a time window.
    """

    TYPE_CHOICES = [
        ("standard", "Standard"),
        ("premium", "Premium"),
        ("enterprise", "Enterprise"),
    ]

    STATUS_CHOICES = [
        ("active", "Active"),
        ("suspended", "Suspended"),
        ("revoked", "Revoked"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    license_key = models.CharField(max_length=255, unique=True, db_index=True)
    license_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="standard")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")

    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField(db_index=True)
    customer_company = models.CharField(max_length=255, null=True, blank=True)

    issued_at = models.DateTimeField()
    expires_at = models.DateTimeField(db_index=True)
    grace_period_days = models.PositiveIntegerField(default=7)

    activation_code = models.CharField(max_length=64)
    activated_at = models.DateTimeField(null=True, blank=True)
    server_domain = models.CharField(max_length=255, null=True, blank=True)
    server_ip = models.GenericIPAddressField(null=True, blank=True)
    server_fingerprint = models.CharField(max_length=64, null=True, blank=True)

    max_users = models.IntegerField(default=5, help_text="Negative means unlimited")
    max_clinics = models.IntegerField(default=1, help_text="Negative means unlimited")
    max_patients = models.IntegerField(default=1000, help_text="Negative means unlimited")
    max_appointments_per_month = models.IntegerField(
        default=500, help_text="Negative means unlimited"
    )
    current_users = models.PositiveIntegerField(default=0)
    current_clinics = models.PositiveIntegerField(default=0)
    current_patients = models.PositiveIntegerField(default=0)
    appointments_this_month = models.PositiveIntegerField(default=0)
    last_usage_reset = models.DateTimeField(null=True, blank=True)

    features = models.JSONField(default=list, blank=True)
    monthly_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    last_validated_at = models.DateTimeField(null=True, blank=True)
    validation_attempts = models.PositiveIntegerField(default=0)
    last_validation_attempt = models.DateTimeField(null=True, blank=True)

    audit_log = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "licenses"
        db_table = "licenses"
        ordering = ["-issued_at"]
        indexes = [
            models.Index(fields=["status", "expires_at"]),
            models.Index(fields=["license_type"]),
            models.Index(fields=["status", "issued_at"]),
        ]

    def __str__(self):
        return f"{self.license_key} ({self.license_type})"


class AuditLog(models.Model):
    """
    Immutable audit trail of all license-related changes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    license_key = models.CharField(max_length=255, db_index=True)
    message = models.CharField(max_length=255)
    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    actor = models.CharField(max_length=255, default="system", help_text="Who performed the action")
    created_at = models.DateTimeField()

    class Meta:
        app_label = "licenses"
        db_table = "license_audit_logs"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["license_key", "created_at"]),
        ]

    def __str__(self):
        return f"{self.message} - {self.license_key}"
