"""Notification queue models.

``NotificationEvent`` is the unit of work and the system of record for the
delivery state machine. ``NotificationRule`` is the tenant routing
configuration the worker reads, and ``StaffAlert`` is the record the in-app
channel creates. Producers only ever insert events; every later write goes
through :mod:`apps.notifications.store`.
"""

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Channel(models.TextChoices):
    SMS = "sms", _("SMS")
    EMAIL = "email", _("Email")
    IN_APP = "in_app", _("In-app alert")
    PUSH = "push", _("Push notification")


class RecipientType(models.TextChoices):
    GUEST = "guest", _("Guest")
    FRONT_DESK = "front_desk", _("Front desk")
    MANAGER = "manager", _("Manager")
    HOUSEKEEPING_STAFF = "housekeeping_staff", _("Housekeeping staff")


class Priority(models.IntegerChoices):
    LOW = 10, _("Low")
    NORMAL = 20, _("Normal")
    HIGH = 30, _("High")
    URGENT = 40, _("Urgent")


class NotificationEventQuerySet(models.QuerySet):
    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=tenant_id)

    def due(self, now=None):
        """Events eligible for claiming: pending and scheduled in the past."""
        now = now or timezone.now()
        return self.filter(
            status=NotificationEvent.Status.PENDING,
            scheduled_at__lte=now,
        )

    def in_dispatch_order(self):
        return self.order_by("-priority", "scheduled_at", "created_at")


class NotificationEvent(models.Model):
    """A business occurrence that has to be delivered to one or more recipients."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PROCESSING = "processing", _("Processing")
        COMPLETED = "completed", _("Completed")
        FAILED = "failed", _("Failed")

    TERMINAL_STATUSES = (Status.COMPLETED, Status.FAILED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        "hotels.Hotel",
        on_delete=models.CASCADE,
        related_name="notification_events",
    )
    event_type = models.CharField(max_length=64)
    event_source = models.CharField(max_length=64, blank=True)
    source_id = models.CharField(max_length=64, blank=True)
    priority = models.PositiveSmallIntegerField(
        choices=Priority.choices,
        default=Priority.NORMAL,
    )
    recipients = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Recipient hints: [{type, email?, phone?, role?}]."),
    )
    template_data = models.JSONField(default=dict, blank=True)
    channels = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Requested channels. Advisory, routing rules decide."),
    )
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    scheduled_at = models.DateTimeField(default=timezone.now)
    retry_count = models.PositiveSmallIntegerField(default=0)
    max_retries = models.PositiveSmallIntegerField(default=3)
    delivery_results = models.JSONField(default=dict, blank=True)
    last_error = models.TextField(blank=True)
    lease_id = models.CharField(max_length=64, blank=True)
    claimed_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = NotificationEventQuerySet.as_manager()

    class Meta:
        verbose_name = _("Notification event")
        verbose_name_plural = _("Notification events")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "scheduled_at"], name="notif_event_status_sched_idx"),
            models.Index(fields=["tenant", "event_type"], name="notif_event_tenant_type_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(retry_count__lte=models.F("max_retries")),
                name="notif_event_retry_within_budget",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} [{self.status}] for tenant {self.tenant_id}"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES


class NotificationRule(models.Model):
    """Tenant routing rule: which recipients get an event type, how and with which template."""

    tenant = models.ForeignKey(
        "hotels.Hotel",
        on_delete=models.CASCADE,
        related_name="notification_rules",
    )
    event_type = models.CharField(max_length=64)
    name = models.CharField(max_length=255, blank=True)
    priority = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    routing_config = models.JSONField(
        default=dict,
        help_text=_('{"guest": {"channels": ["sms", "email"], "template": "booking_received"}}'),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Notification rule")
        verbose_name_plural = _("Notification rules")
        ordering = ["-priority", "id"]
        indexes = [
            models.Index(fields=["tenant", "event_type"], name="notif_rule_tenant_type_idx"),
        ]

    def __str__(self) -> str:
        return self.name or f"{self.event_type} rule #{self.pk}"

    def clean(self):  # type: ignore
        if not isinstance(self.routing_config, dict):
            raise ValidationError({"routing_config": _("Routing config must be an object.")})

        errors = []
        for recipient_type, config in self.routing_config.items():
            if recipient_type not in RecipientType.values:
                errors.append(f"Unknown recipient type '{recipient_type}'.")
                continue
            if not isinstance(config, dict):
                errors.append(f"Config for '{recipient_type}' must be an object.")
                continue
            channels = config.get("channels")
            if not isinstance(channels, list) or not channels:
                errors.append(f"'{recipient_type}' needs a non-empty channels list.")
            else:
                unknown = [c for c in channels if c not in Channel.values]
                if unknown:
                    errors.append(f"Unknown channels for '{recipient_type}': {', '.join(map(str, unknown))}.")
            if not config.get("template"):
                errors.append(f"'{recipient_type}' needs a template name.")

        if errors:
            raise ValidationError({"routing_config": errors})


class StaffAlert(models.Model):
    """In-app alert shown on the hotel staff dashboards."""

    tenant = models.ForeignKey(
        "hotels.Hotel",
        on_delete=models.CASCADE,
        related_name="staff_alerts",
    )
    event = models.ForeignKey(
        NotificationEvent,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="alerts",
    )
    alert_type = models.CharField(max_length=64)
    recipient_type = models.CharField(max_length=32, choices=RecipientType.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    priority = models.PositiveSmallIntegerField(
        choices=Priority.choices,
        default=Priority.NORMAL,
    )
    template = models.CharField(max_length=64, blank=True)
    source_type = models.CharField(max_length=64, blank=True)
    source_id = models.CharField(max_length=64, blank=True)
    delivery_status = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Staff alert")
        verbose_name_plural = _("Staff alerts")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Alert to {self.recipient_type} of tenant {self.tenant_id}: {self.title}"
