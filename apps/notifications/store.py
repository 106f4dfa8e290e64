"""Event store: the persisted notification state machine.

Legal transitions::

    pending -> processing            (claim, compare-and-swap on status)
    processing -> completed          (mark_completed)
    processing -> pending            (mark_retry, bounded by max_retries)
    processing -> failed             (mark_failed)

Every write after the claim is guarded on ``status=processing`` and the
claiming worker's lease, so a worker that lost its lease cannot overwrite
the outcome recorded by another one.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Iterable

from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from .exceptions import EventNotClaimable, IllegalTransition
from .models import NotificationEvent

logger = logging.getLogger(__name__)

Status = NotificationEvent.Status


def new_lease_id() -> str:
    return uuid.uuid4().hex


def _lock_queryset_if_possible(queryset, *, skip_locked: bool = False):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update(skip_locked=skip_locked)
    except NotSupportedError:
        return queryset


def merge_results(existing: dict | None, new: dict | None) -> dict:
    """Accumulate delivery results; keys present in ``new`` win."""
    merged = dict(existing or {})
    merged.update(new or {})
    return merged


class EventStore:
    """Reads and transitions ``NotificationEvent`` rows."""

    def insert(self, **fields) -> NotificationEvent:
        fields.pop("status", None)
        return NotificationEvent.objects.create(status=Status.PENDING, **fields)

    # ------------------------------------------------------------------
    # Claiming
    # ------------------------------------------------------------------

    def claim(self, event_id, lease_id: str, now: datetime | None = None) -> NotificationEvent:
        """Claim one event or raise ``EventNotClaimable``."""
        now = now or timezone.now()
        if not self._try_claim(event_id, lease_id, now):
            raise EventNotClaimable(f"Event {event_id} is not pending and due")
        return NotificationEvent.objects.get(pk=event_id)

    def claim_due(
        self,
        limit: int,
        lease_id: str,
        now: datetime | None = None,
    ) -> list[NotificationEvent]:
        """Claim up to ``limit`` due events in dispatch order.

        Candidates are read with SKIP LOCKED where supported and each one is
        then claimed with a conditional update, so two workers polling the
        same due set never both own an event.
        """
        now = now or timezone.now()

        with transaction.atomic():
            candidates = _lock_queryset_if_possible(
                NotificationEvent.objects.due(now).in_dispatch_order(),
                skip_locked=True,
            )
            candidate_ids = list(candidates.values_list("id", flat=True)[:limit])
            claimed_ids = [
                event_id for event_id in candidate_ids if self._try_claim(event_id, lease_id, now)
            ]

        if len(claimed_ids) < len(candidate_ids):
            logger.info(
                "Lease %s lost %d of %d candidates to other workers",
                lease_id,
                len(candidate_ids) - len(claimed_ids),
                len(candidate_ids),
            )

        events = NotificationEvent.objects.in_bulk(claimed_ids)
        return [events[event_id] for event_id in claimed_ids]

    def _try_claim(self, event_id, lease_id: str, now: datetime) -> bool:
        updated = NotificationEvent.objects.filter(
            pk=event_id,
            status=Status.PENDING,
            scheduled_at__lte=now,
        ).update(
            status=Status.PROCESSING,
            lease_id=lease_id,
            claimed_at=now,
            updated_at=now,
        )
        return updated == 1

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def mark_completed(self, event: NotificationEvent, results: dict) -> NotificationEvent:
        with transaction.atomic():
            row = self._locked_processing_row(event)
            row.status = Status.COMPLETED
            row.delivery_results = merge_results(row.delivery_results, results)
            row.processed_at = timezone.now()
            row.lease_id = ""
            row.save(update_fields=["status", "delivery_results", "processed_at", "lease_id", "updated_at"])
        return row

    def mark_retry(
        self,
        event: NotificationEvent,
        results: dict,
        next_scheduled_at: datetime,
        error: str = "",
    ) -> NotificationEvent:
        with transaction.atomic():
            row = self._locked_processing_row(event)
            if row.retry_count + 1 >= row.max_retries:
                raise IllegalTransition(
                    f"Event {row.pk} has no retries left ({row.retry_count + 1}/{row.max_retries})"
                )
            row.status = Status.PENDING
            row.retry_count = row.retry_count + 1
            row.scheduled_at = next_scheduled_at
            row.delivery_results = merge_results(row.delivery_results, results)
            row.last_error = error
            row.lease_id = ""
            row.claimed_at = None
            row.save(
                update_fields=[
                    "status",
                    "retry_count",
                    "scheduled_at",
                    "delivery_results",
                    "last_error",
                    "lease_id",
                    "claimed_at",
                    "updated_at",
                ]
            )
        return row

    def mark_failed(self, event: NotificationEvent, results: dict, error: str = "") -> NotificationEvent:
        with transaction.atomic():
            row = self._locked_processing_row(event)
            row.status = Status.FAILED
            row.retry_count = min(row.retry_count + 1, row.max_retries)
            row.delivery_results = merge_results(row.delivery_results, results)
            row.last_error = error
            row.processed_at = timezone.now()
            row.lease_id = ""
            row.save(
                update_fields=[
                    "status",
                    "retry_count",
                    "delivery_results",
                    "last_error",
                    "processed_at",
                    "lease_id",
                    "updated_at",
                ]
            )
        return row

    def _locked_processing_row(self, event: NotificationEvent) -> NotificationEvent:
        queryset = NotificationEvent.objects.filter(
            pk=event.pk,
            status=Status.PROCESSING,
            lease_id=event.lease_id,
        )
        row = _lock_queryset_if_possible(queryset).first()
        if row is None:
            raise IllegalTransition(
                f"Event {event.pk} is not processing under lease {event.lease_id or '-'}"
            )
        return row

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def requeue_expired_leases(self, older_than: timedelta, backoff=None) -> int:
        """Treat events held longer than ``older_than`` as one failed attempt.

        A worker that died mid-event leaves it in ``processing``; this returns
        such events to ``pending`` or fails them once the retry budget is used.
        """
        cutoff = timezone.now() - older_than
        stale_ids: Iterable = NotificationEvent.objects.filter(
            status=Status.PROCESSING,
            claimed_at__lt=cutoff,
        ).values_list("id", flat=True)

        requeued = 0
        for event_id in list(stale_ids):
            with transaction.atomic():
                row = _lock_queryset_if_possible(
                    NotificationEvent.objects.filter(
                        pk=event_id,
                        status=Status.PROCESSING,
                        claimed_at__lt=cutoff,
                    )
                ).first()
                if row is None:
                    continue
                attempt = row.retry_count + 1
                error = f"Lease {row.lease_id} expired"
                if attempt < row.max_retries:
                    delay = backoff(attempt) if backoff else timedelta(0)
                    NotificationEvent.objects.filter(pk=row.pk).update(
                        status=Status.PENDING,
                        retry_count=F("retry_count") + 1,
                        scheduled_at=timezone.now() + delay,
                        last_error=error,
                        lease_id="",
                        claimed_at=None,
                        updated_at=timezone.now(),
                    )
                else:
                    NotificationEvent.objects.filter(pk=row.pk).update(
                        status=Status.FAILED,
                        retry_count=row.max_retries,
                        last_error=error,
                        processed_at=timezone.now(),
                        lease_id="",
                        updated_at=timezone.now(),
                    )
                requeued += 1
                logger.warning("Recovered stale event %s: %s", row.pk, error)

        return requeued
