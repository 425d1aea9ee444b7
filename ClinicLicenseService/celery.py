"""
Celery configuration for background tasks.

Used for scheduled license maintenance.
"""
import os

from celery import Celery

# Set default Django settings module
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ClinicLicenseService.settings.base")

app = Celery("ClinicLicenseService")

# Load configuration from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()
