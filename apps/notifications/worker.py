"""Queue worker: claims due events and drives them to an outcome."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import timedelta

from django.utils import timezone  # type: ignore

from .conf import notification_settings
from .dispatcher import ChannelDispatcher
from .exceptions import DispatchAborted
from .models import NotificationEvent
from .recipients import TenantContext
from .retry import compute_backoff, should_retry
from .rules import RuleResolver
from .store import EventStore, new_lease_id

logger = logging.getLogger(__name__)

NO_RULES_RESULT = {"message": "No applicable rules found"}


@dataclass
class BatchReport:
    claimed: int = 0
    completed: int = 0
    retried: int = 0
    failed: int = 0
    errors: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


class QueueWorker:
    """One polling pass over the notification queue.

    Events are processed in claim order (priority DESC, scheduled_at ASC).
    Each event is handled in isolation: whatever happens to one event, the
    rest of the batch still runs and ``run_batch`` itself never raises.
    """

    def __init__(
        self,
        store: EventStore | None = None,
        rule_resolver: RuleResolver | None = None,
        dispatcher: ChannelDispatcher | None = None,
        *,
        batch_size: int | None = None,
        lease_id: str | None = None,
        backoff=compute_backoff,
    ):
        self.store = store or EventStore()
        self.rule_resolver = rule_resolver or RuleResolver()
        self.dispatcher = dispatcher or ChannelDispatcher()
        self.batch_size = batch_size or notification_settings()["BATCH_SIZE"]
        self.lease_id = lease_id or new_lease_id()
        self.backoff = backoff

    def run_batch(self, limit: int | None = None) -> BatchReport:
        report = BatchReport()
        try:
            events = self.store.claim_due(limit or self.batch_size, self.lease_id)
        except Exception:
            logger.exception("Could not claim notification events")
            report.errors += 1
            return report

        report.claimed = len(events)
        logger.info("Processing %d notification events (lease %s)", len(events), self.lease_id)

        for event in events:
            try:
                outcome = self.process_event(event)
            except Exception:
                # Outcome could not be stored; the lease expiry sweep picks the event up.
                logger.exception("Could not record outcome of event %s", event.pk)
                report.errors += 1
                continue
            setattr(report, outcome, getattr(report, outcome) + 1)

        return report

    def close(self) -> None:
        """Release the dispatcher's send pool."""
        self.dispatcher.close()

    def process_event(self, event: NotificationEvent) -> str:
        """Dispatch one claimed event and store its outcome.

        Returns ``"completed"``, ``"retried"`` or ``"failed"``.
        """
        logger.info("Processing event %s: %s (tenant %s)", event.pk, event.event_type, event.tenant_id)
        try:
            rules = self.rule_resolver.resolve(event.tenant_id, event.event_type)
            if rules:
                context = TenantContext.load(event.tenant_id)
                results = self.dispatcher.dispatch(event, rules, context, previous_results=event.delivery_results)
        except DispatchAborted as e:
            return self._handle_failure(event, e, e.results)
        except Exception as e:  # noqa: BLE001 - every infrastructure error goes through the retry policy
            return self._handle_failure(event, e, {})

        if not rules:
            logger.info("No notification rules found for %s (tenant %s)", event.event_type, event.tenant_id)
            self.store.mark_completed(event, NO_RULES_RESULT)
            return "completed"

        self.store.mark_completed(event, results)
        failures = sum(1 for entry in results.values() if isinstance(entry, dict) and not entry.get("success"))
        logger.info(
            "Event %s completed: %d deliveries, %d failed",
            event.pk,
            len(results),
            failures,
        )
        return "completed"

    def _handle_failure(self, event: NotificationEvent, error: Exception, results: dict) -> str:
        attempt = event.retry_count + 1
        message = str(error) or error.__class__.__name__

        if should_retry(attempt, event.max_retries):
            delay = self.backoff(attempt)
            self.store.mark_retry(event, results, timezone.now() + delay, error=message)
            logger.warning(
                "Event %s failed (attempt %d/%d), retry in %ss: %s",
                event.pk,
                attempt,
                event.max_retries,
                int(delay.total_seconds()),
                message,
            )
            return "retried"

        self.store.mark_failed(event, results, error=message)
        logger.error(
            "Event %s failed permanently after %d attempts: %s",
            event.pk,
            attempt,
            message,
        )
        return "failed"


def requeue_stale_events(lease_timeout: int | None = None) -> int:
    """Recover events whose worker died while holding them."""
    seconds = lease_timeout or notification_settings()["LEASE_TIMEOUT_SECONDS"]
    return EventStore().requeue_expired_leases(timedelta(seconds=seconds), backoff=compute_backoff)
