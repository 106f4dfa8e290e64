"""Admin registration for the notification queue."""

from __future__ import annotations

from django.contrib import admin, messages

from .models import NotificationEvent, NotificationRule, StaffAlert
from .services import resubmit_event


@admin.register(NotificationRule)
class NotificationRuleAdmin(admin.ModelAdmin):
    list_display = ("__str__", "tenant", "event_type", "priority", "is_active", "updated_at")
    list_filter = ("is_active", "event_type")
    search_fields = ("name", "event_type", "tenant__name")


@admin.register(NotificationEvent)
class NotificationEventAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "tenant",
        "event_type",
        "priority",
        "status",
        "retry_count",
        "scheduled_at",
        "processed_at",
    )
    list_filter = ("status", "priority", "event_type")
    search_fields = ("id", "event_type", "source_id", "tenant__name")
    readonly_fields = (
        "status",
        "retry_count",
        "delivery_results",
        "last_error",
        "lease_id",
        "claimed_at",
        "processed_at",
        "created_at",
        "updated_at",
    )
    actions = ["resubmit_events"]

    def has_change_permission(self, request, obj=None):
        # Only the worker moves an event once it exists.
        return obj is None and super().has_change_permission(request, obj)

    @admin.action(description="Resubmit as new events")
    def resubmit_events(self, request, queryset):
        resubmitted = 0
        for event in queryset:
            if event.is_terminal:
                resubmit_event(event)
                resubmitted += 1
        skipped = queryset.count() - resubmitted
        self.message_user(request, f"Resubmitted {resubmitted} events, skipped {skipped} still in flight.", messages.INFO)


@admin.register(StaffAlert)
class StaffAlertAdmin(admin.ModelAdmin):
    list_display = ("title", "tenant", "recipient_type", "alert_type", "priority", "is_read", "created_at")
    list_filter = ("is_read", "recipient_type", "alert_type")
    search_fields = ("title", "message", "tenant__name")
