"""
Django management command to reset monthly usage counters.

Normally triggered by Celery beat; this command is the manual trigger.
"""

from django.core.management.base import BaseCommand

from licenses.application.services.license_service import LicenseService


class Command(BaseCommand):
    """Command to zero the monthly appointment counter."""

    help = "Reset the monthly appointment counter of the current license"

    def handle(self, *args, **options):
        """Execute the command."""
        if LicenseService().reset_monthly_usage():
            # pylint: disable=no-member
            self.stdout.write(self.style.SUCCESS("Monthly usage counters reset"))
        else:
            # pylint: disable=no-member
            self.stdout.write(self.style.WARNING("No license found; nothing to reset"))
