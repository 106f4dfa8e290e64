"""Celery application for the hotel notification service.

Configuration is read from Django settings under the ``CELERY_`` namespace
and tasks are autodiscovered from installed apps. The beat schedule below
drives the notification queue worker; the database scheduler from
django-celery-beat picks it up on start.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("hotel_notify")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Poll the notification queue for due events - every minute
    "process-notification-queue": {
        "task": "notifications.process_queue",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    # Return events held by crashed workers to the queue - every 5 minutes
    "requeue-stale-notification-events": {
        "task": "notifications.requeue_stale_events",
        "schedule": 300.0,
    },
}
