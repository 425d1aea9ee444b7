"""
Django management command to report expiring and expired licenses.

This command should be run periodically (e.g., via cron or scheduled task).
Expiry is derived from ``expires_at`` on every query, so nothing is written.
"""

import logging

from django.core.management.base import BaseCommand
from django.utils import timezone

from licenses.application.services.license_service import LicenseService
from licenses.conf import license_settings

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Command to report licenses nearing or past expiration."""

    help = "Report licenses expiring soon and licenses already expired"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Report active licenses expiring within this many days",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        days = options["days"]
        if days is None:
            days = license_settings()["EXPIRING_SOON_DAYS"]
        service = LicenseService()
        now = timezone.now()

        expiring = service.get_expiring_licenses(days)
        self.stdout.write(f"Found {len(expiring)} license(s) expiring within {days} day(s)")
        for license in expiring:
            self.stdout.write(
                f"  - {license.license_key} ({license.customer_name}) expires at "
                f"{license.expires_at:%Y-%m-%d} "
                f"({license.days_until_expiration(now)} days remaining)"
            )

        expired = service.license_repository.find_expired(now)
        # pylint: disable=no-member
        style = self.style.WARNING if expired else self.style.SUCCESS
        self.stdout.write(style(f"Found {len(expired)} expired license(s)"))
        for license in expired:
            state = "grace period" if license.is_in_grace_period(now) else "expired"
            self.stdout.write(
                f"  - {license.license_key} ({license.customer_name}) expired at "
                f"{license.expires_at:%Y-%m-%d} [{state}]"
            )

        logger.info(
            "License expiration check complete",
            extra={"expiring": len(expiring), "expired": len(expired), "days": days},
        )
