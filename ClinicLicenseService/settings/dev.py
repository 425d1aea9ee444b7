"""
Development settings for ClinicLicenseService.
"""
import os

from .base import *  # noqa: F403, F401
from .logging import get_logging_config

DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "0.0.0.0"]

# Database - Use PostgreSQL in Docker, SQLite for local development
# Override with environment variable DB_ENGINE=sqlite for SQLite
if os.environ.get("DB_ENGINE") == "sqlite":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",  # noqa: F405
        }
    }

# Run Celery tasks inline unless a broker is configured
CELERY_TASK_ALWAYS_EAGER = "CELERY_BROKER_URL" not in os.environ

LOGGING = get_logging_config("development")
