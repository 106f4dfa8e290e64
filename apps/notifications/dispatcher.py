"""Channel dispatcher: fans one event out to its routed recipients and channels."""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Iterable, Mapping

from django.db import DatabaseError  # type: ignore
from django.utils import timezone  # type: ignore

from .conf import notification_settings
from .exceptions import DispatchAborted, RecipientUnresolved
from .models import Channel, NotificationEvent, NotificationRule
from .recipients import RecipientResolver, TenantContext
from .rules import Route, build_routes
from .senders import BaseSender, ChannelOutcome, OutboundMessage, default_senders

logger = logging.getLogger(__name__)

NO_CONTACT_INFO = "no contact info"
NOT_ATTEMPTED = "not attempted before event deadline"
POLL_INTERVAL_SECONDS = 0.05


class _SendJob:
    """Bookkeeping for one external send; ``started_at`` is set by the pool thread."""

    def __init__(self, route: Route, prior: dict | None):
        self.route = route
        self.prior = prior
        self.started_at: float | None = None
        self.future: Future | None = None


class ChannelDispatcher:
    """Delivers an event along the routes of its matching rules.

    Per-channel problems (unresolved recipient, provider error, timeout) are
    recorded under ``"{recipientType}_{channel}"`` and never stop the other
    deliveries. Database errors abort the dispatch with ``DispatchAborted``.

    Keys that already succeeded in ``previous_results`` are not sent again,
    so a retried event only re-attempts what failed.
    """

    def __init__(
        self,
        senders: Mapping[Channel, BaseSender] | None = None,
        recipient_resolver: RecipientResolver | None = None,
        *,
        max_workers: int | None = None,
        send_timeout: float | None = None,
        event_timeout: float | None = None,
    ):
        config = notification_settings()
        self.senders = dict(senders) if senders is not None else default_senders()
        self.recipient_resolver = recipient_resolver or RecipientResolver()
        self.max_workers = max_workers or config["DISPATCH_WORKERS"]
        self.send_timeout = send_timeout or config["SEND_TIMEOUT_SECONDS"]
        self.event_timeout = event_timeout or config["EVENT_TIMEOUT_SECONDS"]
        self._executor: ThreadPoolExecutor | None = None

    def dispatch(
        self,
        event: NotificationEvent,
        rules: Iterable[NotificationRule],
        context: TenantContext,
        previous_results: Mapping | None = None,
    ) -> dict:
        previous_results = previous_results or {}
        deadline = time.monotonic() + self.event_timeout
        results: dict = {}
        external: list[tuple[Route, OutboundMessage, dict | None]] = []

        try:
            for route in build_routes(rules):
                prior = previous_results.get(route.key)
                prior = prior if isinstance(prior, dict) else None

                if prior and prior.get("success"):
                    logger.info("Event %s: %s already delivered, not resent", event.pk, route.key)
                    results[route.key] = prior
                    continue

                sender = self.senders.get(route.channel)
                if sender is None:
                    logger.warning("Event %s: no sender for channel %s, skipped", event.pk, route.channel)
                    continue

                try:
                    recipient = self.recipient_resolver.resolve(
                        context,
                        route.recipient_type,
                        route.channel,
                        event.template_data,
                        event.recipients,
                    )
                except RecipientUnresolved as e:
                    logger.info("Event %s: %s", event.pk, e)
                    results[route.key] = self._record(
                        ChannelOutcome(False, error=NO_CONTACT_INFO, detail={"reason": e.reason}),
                        prior,
                    )
                    continue

                message = OutboundMessage(
                    channel=route.channel,
                    template=route.template,
                    template_data=event.template_data or {},
                    recipient=recipient,
                    tenant_id=event.tenant_id,
                    event_id=str(event.pk),
                    event_type=event.event_type,
                    event_source=event.event_source,
                    source_id=event.source_id,
                    priority=event.priority,
                )

                if route.channel == Channel.IN_APP:
                    # Written in this thread: it is a database write, not external I/O.
                    results[route.key] = self._record(sender.send(message), prior)
                else:
                    external.append((route, message, prior))

            results.update(self._send_external(external, deadline))
        except DatabaseError as e:
            raise DispatchAborted(f"Database error during dispatch: {e}", results) from e

        return results

    def _send_external(self, jobs, deadline: float) -> dict:
        """Run external sends on the pool and wait for their outcomes.

        Each call is bounded by ``send_timeout`` counted from the moment it
        starts on a pool thread. Calls still queued when the event deadline
        passes are cancelled and never reach the sender.
        """
        results: dict = {}
        if not jobs:
            return results

        executor = self._get_executor()
        pending = []
        for route, message, prior in jobs:
            job = _SendJob(route, prior)
            job.future = executor.submit(self._timed_send, job, self.senders[route.channel], message)
            pending.append(job)

        while pending:
            now = time.monotonic()
            for job in list(pending):
                outcome = None
                if job.future.done():
                    outcome = job.future.result()
                elif job.started_at is not None and now >= job.started_at + self.send_timeout:
                    logger.warning("Send %s timed out", job.route.key)
                    outcome = ChannelOutcome(False, error="timed out")
                elif now >= deadline:
                    if job.future.cancel():
                        logger.warning("Send %s not started before the event deadline", job.route.key)
                        outcome = ChannelOutcome(False, error=NOT_ATTEMPTED)
                    else:
                        logger.warning("Send %s timed out", job.route.key)
                        outcome = ChannelOutcome(False, error="timed out")
                if outcome is not None:
                    results[job.route.key] = self._record(outcome, job.prior)
                    pending.remove(job)

            if pending:
                wait(
                    [job.future for job in pending],
                    timeout=POLL_INTERVAL_SECONDS,
                    return_when=FIRST_COMPLETED,
                )

        return results

    def _get_executor(self) -> ThreadPoolExecutor:
        # One bounded pool per dispatcher: a hung sender holds at most one of
        # ``max_workers`` threads instead of leaking a thread per event.
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="notify-send",
            )
        return self._executor

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    @classmethod
    def _timed_send(cls, job: "_SendJob", sender: BaseSender, message: OutboundMessage) -> ChannelOutcome:
        job.started_at = time.monotonic()
        return cls._safe_send(sender, message)

    @staticmethod
    def _safe_send(sender: BaseSender, message: OutboundMessage) -> ChannelOutcome:
        try:
            return sender.send(message)
        except Exception as e:  # noqa: BLE001 - a crashing sender is a failed delivery
            logger.exception("Sender for %s raised", message.channel)
            return ChannelOutcome(False, error=str(e) or e.__class__.__name__)

    @staticmethod
    def _record(outcome: ChannelOutcome, prior: dict | None) -> dict:
        entry = outcome.as_dict()
        entry["attempts"] = int((prior or {}).get("attempts", 0)) + 1
        entry["recorded_at"] = timezone.now().isoformat()
        return entry
