"""Celery configuration."""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings.dev"),
)

app = Celery("tracker")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Beat schedule
app.conf.beat_schedule = {
    "reports-warm-current-period": {
        "task": "reports.tasks.warm_current_period_report",
        "schedule": crontab(minute=5),  # Every hour
    },
}
