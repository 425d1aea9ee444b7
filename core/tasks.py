"""
Celery tasks for background processing.

Tasks for scheduled license maintenance.
"""
import logging

from ClinicLicenseService.celery import app

logger = logging.getLogger(__name__)


@app.task(bind=True, max_retries=3)
def reset_monthly_usage_task(self):
    """
    Celery task resetting the monthly appointment counter.

    Scheduled by Celery beat on the first day of each month.

    Returns:
        True if a license was reset
    """
    from django.db import DatabaseError

    from licenses.application.services.license_service import LicenseService

    try:
        reset = LicenseService().reset_monthly_usage()
    except DatabaseError as exc:
        logger.error("Monthly usage reset failed: %s", exc, exc_info=True)
        raise self.retry(exc=exc, countdown=2 ** self.request.retries)

    if not reset:
        logger.warning("Monthly usage reset skipped: no license found")
    return reset
