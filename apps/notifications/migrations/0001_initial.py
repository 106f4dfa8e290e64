from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


PRIORITY_CHOICES = [(10, "Low"), (20, "Normal"), (30, "High"), (40, "Urgent")]
RECIPIENT_TYPE_CHOICES = [
    ("guest", "Guest"),
    ("front_desk", "Front desk"),
    ("manager", "Manager"),
    ("housekeeping_staff", "Housekeeping staff"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("hotels", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="NotificationEvent",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("event_type", models.CharField(max_length=64)),
                ("event_source", models.CharField(blank=True, max_length=64)),
                ("source_id", models.CharField(blank=True, max_length=64)),
                ("priority", models.PositiveSmallIntegerField(choices=PRIORITY_CHOICES, default=20)),
                (
                    "recipients",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Recipient hints: [{type, email?, phone?, role?}].",
                    ),
                ),
                ("template_data", models.JSONField(blank=True, default=dict)),
                (
                    "channels",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Requested channels. Advisory, routing rules decide.",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("scheduled_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("retry_count", models.PositiveSmallIntegerField(default=0)),
                ("max_retries", models.PositiveSmallIntegerField(default=3)),
                ("delivery_results", models.JSONField(blank=True, default=dict)),
                ("last_error", models.TextField(blank=True)),
                ("lease_id", models.CharField(blank=True, max_length=64)),
                ("claimed_at", models.DateTimeField(blank=True, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notification_events",
                        to="hotels.hotel",
                    ),
                ),
            ],
            options={
                "verbose_name": "Notification event",
                "verbose_name_plural": "Notification events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "scheduled_at"], name="notif_event_status_sched_idx"),
                    models.Index(fields=["tenant", "event_type"], name="notif_event_tenant_type_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(retry_count__lte=models.F("max_retries")),
                        name="notif_event_retry_within_budget",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="NotificationRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(max_length=64)),
                ("name", models.CharField(blank=True, max_length=255)),
                ("priority", models.IntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "routing_config",
                    models.JSONField(
                        default=dict,
                        help_text='{"guest": {"channels": ["sms", "email"], "template": "booking_received"}}',
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notification_rules",
                        to="hotels.hotel",
                    ),
                ),
            ],
            options={
                "verbose_name": "Notification rule",
                "verbose_name_plural": "Notification rules",
                "ordering": ["-priority", "id"],
                "indexes": [
                    models.Index(fields=["tenant", "event_type"], name="notif_rule_tenant_type_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StaffAlert",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("alert_type", models.CharField(max_length=64)),
                ("recipient_type", models.CharField(choices=RECIPIENT_TYPE_CHOICES, max_length=32)),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                ("priority", models.PositiveSmallIntegerField(choices=PRIORITY_CHOICES, default=20)),
                ("template", models.CharField(blank=True, max_length=64)),
                ("source_type", models.CharField(blank=True, max_length=64)),
                ("source_id", models.CharField(blank=True, max_length=64)),
                ("delivery_status", models.JSONField(blank=True, default=dict)),
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "event",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="alerts",
                        to="notifications.notificationevent",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="staff_alerts",
                        to="hotels.hotel",
                    ),
                ),
            ],
            options={
                "verbose_name": "Staff alert",
                "verbose_name_plural": "Staff alerts",
                "ordering": ["-created_at"],
            },
        ),
    ]
