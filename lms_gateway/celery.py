import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "lms_gateway.settings")

app = Celery("lms_gateway")

# Read CELERY_* keys (broker, beat schedule, eager mode) from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
