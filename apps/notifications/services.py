"""Producer side of the notification queue.

Business code calls :func:`enqueue_event` to insert a pending event; it never
touches an event again after that.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable, Mapping

from django.db import models, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from .conf import notification_settings
from .models import Channel, NotificationEvent, Priority
from .store import EventStore

logger = logging.getLogger(__name__)


def enqueue_event(
    tenant,
    event_type: str,
    *,
    event_source: str = "",
    source_id: Any = "",
    priority: int | str = Priority.NORMAL,
    recipients: Iterable[Mapping[str, Any]] | None = None,
    template_data: Mapping[str, Any] | None = None,
    channels: Iterable[str] | None = None,
    scheduled_at: datetime | None = None,
    delay_minutes: int = 0,
    max_retries: int | None = None,
) -> NotificationEvent:
    """Insert a pending notification event for ``tenant`` (a Hotel or its id)."""
    tenant_id = getattr(tenant, "pk", tenant)
    scheduled_at = scheduled_at or timezone.now() + timedelta(minutes=delay_minutes)

    event = EventStore().insert(
        tenant_id=tenant_id,
        event_type=event_type,
        event_source=event_source,
        source_id=str(source_id or ""),
        priority=parse_priority(priority),
        recipients=make_json_safe(list(recipients or [])),
        template_data=make_json_safe(dict(template_data or {})),
        channels=[c for c in (channels or []) if c in Channel.values],
        scheduled_at=scheduled_at,
        max_retries=notification_settings()["DEFAULT_MAX_RETRIES"] if max_retries is None else max_retries,
    )

    logger.info(
        "Enqueued %s event %s for tenant %s at %s",
        event_type,
        event.pk,
        tenant_id,
        scheduled_at.isoformat(),
    )

    if scheduled_at <= timezone.now():
        transaction.on_commit(_kick_queue)

    return event


def parse_priority(value: int | str) -> int:
    """Accept ``Priority`` values or names like ``"high"``."""
    if isinstance(value, str) and not value.isdigit():
        try:
            return Priority[value.upper()].value
        except KeyError:
            raise ValueError(f"Unknown priority '{value}'") from None
    return int(value)


def _kick_queue() -> None:
    try:
        from .tasks import process_notification_queue

        process_notification_queue.delay()
    except Exception as exc:  # noqa: BLE001 - beat picks the event up on its next run
        logger.warning("Failed to enqueue notification queue processing: %s", exc)


def make_json_safe(value):
    if isinstance(value, dict):
        return {str(key): make_json_safe(val) for key, val in value.items()}

    if isinstance(value, (list, tuple, set)):
        return [make_json_safe(item) for item in value]

    if isinstance(value, models.Model):
        return {
            "model": value._meta.label_lower,
            "pk": value.pk,
        }

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, Decimal):
        return str(value)

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value

    return str(value)


def resubmit_event(event: NotificationEvent) -> NotificationEvent:
    """Enqueue a fresh copy of a terminal event.

    Terminal events never move again; an operator retry is a new event that
    points back at the original through ``event_source``/``source_id``.
    """
    if not event.is_terminal:
        raise ValueError(f"Event {event.pk} is still {event.status}")
    return enqueue_event(
        event.tenant_id,
        event.event_type,
        event_source="resubmit",
        source_id=str(event.pk),
        priority=event.priority,
        recipients=event.recipients,
        template_data=event.template_data,
        channels=event.channels,
        max_retries=event.max_retries,
    )
