import os

from .base import *

DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "0.0.0.0"]

CORS_ALLOW_ALL_ORIGINS = True

# No Redis needed locally; job locks live in process memory
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Set CELERY_EAGER=1 to run the maintenance jobs inline while debugging
CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_EAGER") == "1"

LOGGING["loggers"]["apps"]["level"] = "DEBUG"
