from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.utils import timezone

from apps.notifications.models import NotificationEvent, Priority
from apps.notifications.services import enqueue_event, make_json_safe, parse_priority, resubmit_event
from apps.notifications.tasks import process_notification_queue, requeue_stale_notification_events

Status = NotificationEvent.Status


@pytest.mark.django_db
def test_enqueue_serializes_complex_template_data(hotel, staff):
    event = enqueue_event(
        hotel,
        "payment_reminder",
        event_source="reservation",
        source_id=1001,
        priority="high",
        template_data={
            "manager": staff["manager"],
            "amount": Decimal("120.50"),
            "due_date": date(2026, 11, 1),
        },
        channels=["sms", "fax"],
    )

    event.refresh_from_db()
    assert event.status == Status.PENDING
    assert event.priority == Priority.HIGH
    assert event.source_id == "1001"
    assert event.channels == ["sms"]
    assert event.max_retries == 3
    assert event.template_data == {
        "manager": {"model": "hotels.staffmember", "pk": staff["manager"].pk},
        "amount": "120.50",
        "due_date": "2026-11-01",
    }


@pytest.mark.django_db
def test_enqueue_with_delay_schedules_in_future(hotel):
    before = timezone.now()

    event = enqueue_event(hotel.pk, "payment_reminder", delay_minutes=60, max_retries=5)

    assert event.scheduled_at >= before + timedelta(minutes=60)
    assert event.max_retries == 5


@pytest.mark.django_db
def test_immediate_event_kicks_queue_after_commit(hotel, django_capture_on_commit_callbacks):
    with mock.patch("apps.notifications.tasks.process_notification_queue.delay") as delay:
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            enqueue_event(hotel, "reservation_created")

    assert len(callbacks) == 1
    delay.assert_called_once_with()


@pytest.mark.django_db
def test_delayed_event_does_not_kick_queue(hotel, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks() as callbacks:
        enqueue_event(hotel, "payment_reminder", delay_minutes=30)

    assert callbacks == []


@pytest.mark.django_db
def test_broker_outage_does_not_break_enqueue(hotel, django_capture_on_commit_callbacks):
    with mock.patch(
        "apps.notifications.tasks.process_notification_queue.delay",
        side_effect=ConnectionError("broker down"),
    ):
        with django_capture_on_commit_callbacks(execute=True):
            event = enqueue_event(hotel, "reservation_created")

    assert NotificationEvent.objects.filter(pk=event.pk, status=Status.PENDING).exists()


@pytest.mark.parametrize("value, expected", [("urgent", 40), ("Low", 10), (30, 30), ("20", 20)])
def test_parse_priority(value, expected):
    assert parse_priority(value) == expected


def test_parse_priority_rejects_unknown_names():
    with pytest.raises(ValueError):
        parse_priority("critical")


def test_make_json_safe_handles_nested_values():
    assert make_json_safe({"nights": (1, 2), 3: {"at": date(2026, 1, 2)}, "obj": object}) == {
        "nights": [1, 2],
        "3": {"at": "2026-01-02"},
        "obj": str(object),
    }


@pytest.mark.django_db
def test_resubmit_creates_new_pending_copy(make_event):
    original = make_event(status=Status.FAILED, retry_count=3, last_error="gateway down", priority=Priority.URGENT)

    copy = resubmit_event(original)

    assert copy.pk != original.pk
    assert copy.status == Status.PENDING
    assert copy.retry_count == 0
    assert copy.event_source == "resubmit"
    assert copy.source_id == str(original.pk)
    assert copy.priority == Priority.URGENT
    assert copy.template_data == original.template_data
    original.refresh_from_db()
    assert original.status == Status.FAILED


@pytest.mark.django_db
def test_resubmit_refuses_in_flight_events(make_event):
    with pytest.raises(ValueError):
        resubmit_event(make_event())


@pytest.mark.django_db
def test_process_queue_task_returns_report(make_event):
    make_event(event_type="minibar_restocked")

    result = process_notification_queue.delay().get()

    assert result == {"claimed": 1, "completed": 1, "retried": 0, "failed": 0, "errors": 0}


@pytest.mark.django_db
def test_requeue_task_reports_recovered_events(make_event):
    make_event(status=Status.PROCESSING, lease_id="dead", claimed_at=timezone.now() - timedelta(days=1))

    assert requeue_stale_notification_events() == {"recovered": 1}


@pytest.mark.django_db
def test_process_notifications_command_runs_one_pass(make_event):
    event = make_event(event_type="minibar_restocked")
    out = StringIO()

    call_command("process_notifications", "--batch-size", "5", stdout=out)

    assert "claimed=1" in out.getvalue()
    assert "completed=1" in out.getvalue()
    event.refresh_from_db()
    assert event.status == Status.COMPLETED
