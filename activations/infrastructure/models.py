"""
LicenseHolder Django ORM model.

This is the infrastructure layer model for license holders.
Domain entities are in activations.domain.holder.
"""
import uuid

from django.db import models
from django.db.models import Q


class LicenseHolder(models.Model):
    """
    A user or tenant that may hold one activated license key.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, null=True, blank=True)
    license_key = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    has_activated_license = models.BooleanField(default=False)
    license_activated_at = models.DateTimeField(null=True, blank=True)
    is_trial_user = models.BooleanField(default=False)
    trial_started_at = models.DateTimeField(null=True, blank=True)
    trial_ends_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "activations"
        db_table = "license_holders"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["license_key"],
                condition=Q(has_activated_license=True),
                name="unique_activated_license_key",
            ),
        ]
        indexes = [
            models.Index(fields=["license_key", "has_activated_license"]),
        ]

    def __str__(self):
        return self.name or self.email
