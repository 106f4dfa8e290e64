"""Celery tasks for the notification queue."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .worker import QueueWorker, requeue_stale_events

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="notifications.process_queue")
def process_notification_queue(batch_size: int | None = None) -> dict[str, int]:
    """
    Process one batch of due notification events.

    Runs every minute through Celery Beat and right after an immediate event
    is enqueued.

    Returns:
        dict: counts of claimed, completed, retried and failed events
    """
    worker = QueueWorker(batch_size=batch_size)
    try:
        report = worker.run_batch()
    finally:
        worker.close()
    if report.claimed:
        logger.info("Processed notification queue: %s", report.as_dict())
    return report.as_dict()


@shared_task(name="notifications.requeue_stale_events")
def requeue_stale_notification_events() -> dict[str, int]:
    """Return events left in processing by crashed workers to the queue."""
    recovered = requeue_stale_events()
    if recovered:
        logger.warning("Recovered %d stale notification events", recovered)
    return {"recovered": recovered}
