"""Serializers for the notification queue API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.hotels.models import Hotel

from .models import Channel, NotificationEvent, Priority, RecipientType, StaffAlert
from .services import enqueue_event, parse_priority


class RecipientHintSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=RecipientType.choices)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    role = serializers.CharField(required=False, allow_blank=True, max_length=32)
    push_token = serializers.CharField(required=False, allow_blank=True, max_length=255)


class PriorityField(serializers.Field):
    """Accepts ``30`` as well as ``"high"``; renders the numeric value."""

    def to_internal_value(self, data):  # type: ignore
        try:
            value = parse_priority(data)
        except (TypeError, ValueError):
            raise serializers.ValidationError("Unknown priority.")
        if value not in Priority.values:
            raise serializers.ValidationError("Unknown priority.")
        return value

    def to_representation(self, value):  # type: ignore
        return value


class NotificationEventCreateSerializer(serializers.Serializer):
    """Producer payload for a new event."""

    tenant = serializers.PrimaryKeyRelatedField(queryset=Hotel.objects.filter(is_active=True))
    event_type = serializers.CharField(max_length=64)
    event_source = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    source_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    priority = PriorityField(required=False, default=Priority.NORMAL)
    recipients = RecipientHintSerializer(many=True, required=False, default=list)
    template_data = serializers.DictField(required=False, default=dict)
    channels = serializers.ListField(
        child=serializers.ChoiceField(choices=Channel.choices),
        required=False,
        default=list,
    )
    scheduled_at = serializers.DateTimeField(required=False, allow_null=True, default=None)
    max_retries = serializers.IntegerField(required=False, min_value=1, max_value=10, allow_null=True, default=None)

    def create(self, validated_data):  # type: ignore
        tenant = validated_data.pop("tenant")
        event_type = validated_data.pop("event_type")
        return enqueue_event(tenant, event_type, **validated_data)


class NotificationEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = NotificationEvent
        fields = [
            "id",
            "tenant",
            "event_type",
            "event_source",
            "source_id",
            "priority",
            "recipients",
            "template_data",
            "channels",
            "status",
            "scheduled_at",
            "retry_count",
            "max_retries",
            "delivery_results",
            "last_error",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields


class StaffAlertSerializer(serializers.ModelSerializer):
    class Meta:
        model = StaffAlert
        fields = [
            "id",
            "tenant",
            "event",
            "alert_type",
            "recipient_type",
            "title",
            "message",
            "priority",
            "source_type",
            "source_id",
            "is_read",
            "created_at",
        ]
        read_only_fields = fields
