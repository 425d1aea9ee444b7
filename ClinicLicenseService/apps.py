"""
App configuration for Clinic License Service.
"""
import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ClinicLicenseServiceConfig(AppConfig):
    """App configuration for ClinicLicenseService."""

    name = "ClinicLicenseService"
    verbose_name = "Clinic License Service"

    def ready(self):
        """Register domain event handlers once apps are loaded."""
        from core.infrastructure.event_handlers import register_event_handlers

        register_event_handlers()
        logger.debug("License event handlers ready")
