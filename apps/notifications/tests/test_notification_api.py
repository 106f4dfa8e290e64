"""Integration tests for the notification queue API."""

from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.hotels.models import Hotel
from apps.notifications.models import NotificationEvent, NotificationRule, Priority, StaffAlert


class NotificationAPITests(APITestCase):
    """Covers event intake, queue processing and staff alerts."""

    def setUp(self) -> None:
        self.admin = get_user_model().objects.create_superuser(
            username="ops",
            email="ops@example.com",
            password="OpsPass123",
        )
        self.hotel = Hotel.objects.create(name="Grand Palace", front_desk_phone="+15550000001")
        self.other_hotel = Hotel.objects.create(name="Seaside Inn")
        self.client.force_authenticate(self.admin)
        self.events_url = reverse("notification-event-list")
        self.process_url = reverse("notification-queue-process")

    def _payload(self, **overrides) -> dict:
        payload = {
            "tenant": self.hotel.pk,
            "event_type": "housekeeping_request",
            "event_source": "guest_request",
            "source_id": "REQ-7",
            "priority": "high",
            "recipients": [{"type": "housekeeping_staff", "role": "housekeeping"}],
            "template_data": {"room_number": "204"},
            "channels": ["in_app"],
        }
        payload.update(overrides)
        return payload

    def test_admin_can_enqueue_event(self) -> None:
        response = self.client.post(self.events_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        event = NotificationEvent.objects.get()
        self.assertEqual(response.data["id"], str(event.pk))
        self.assertEqual(event.status, NotificationEvent.Status.PENDING)
        self.assertEqual(event.priority, Priority.HIGH)
        self.assertEqual(event.recipients[0]["type"], "housekeeping_staff")

    def test_invalid_payload_is_rejected(self) -> None:
        response = self.client.post(
            self.events_url,
            self._payload(priority="critical", channels=["fax"]),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertIn("priority", response.data)
        self.assertIn("channels", response.data)
        self.assertFalse(NotificationEvent.objects.exists())

    def test_inactive_hotel_cannot_receive_events(self) -> None:
        self.other_hotel.is_active = False
        self.other_hotel.save(update_fields=["is_active"])

        response = self.client.post(self.events_url, self._payload(tenant=self.other_hotel.pk), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_anonymous_user_is_rejected(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(self.events_url)

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_list_filters_by_tenant_and_status(self) -> None:
        NotificationEvent.objects.create(tenant=self.hotel, event_type="reservation_created")
        NotificationEvent.objects.create(
            tenant=self.hotel,
            event_type="reservation_created",
            status=NotificationEvent.Status.FAILED,
        )
        NotificationEvent.objects.create(tenant=self.other_hotel, event_type="reservation_created")

        response = self.client.get(self.events_url, {"tenant": self.hotel.pk, "status": "pending"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["tenant"], self.hotel.pk)

    def test_events_are_read_only(self) -> None:
        event = NotificationEvent.objects.create(tenant=self.hotel, event_type="reservation_created")
        detail_url = reverse("notification-event-detail", args=[event.pk])

        response = self.client.patch(detail_url, {"status": "completed"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_process_endpoint_runs_a_batch(self) -> None:
        NotificationRule.objects.create(
            tenant=self.hotel,
            event_type="housekeeping_request",
            routing_config={"housekeeping_staff": {"channels": ["in_app"], "template": "cleaning_request"}},
        )
        self.client.post(self.events_url, self._payload(), format="json")
        NotificationEvent.objects.create(
            tenant=self.hotel,
            event_type="housekeeping_request",
            scheduled_at=timezone.now() + timedelta(hours=1),
        )

        response = self.client.post(self.process_url, {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["success"])
        self.assertEqual(response.data["processed"], 1)
        self.assertEqual(response.data["completed"], 1)
        alert = StaffAlert.objects.get()
        self.assertEqual(alert.title, "Cleaning Request: Room 204")
        self.assertEqual(alert.message, "Room 204 requires cleaning as requested by guest")

    def test_process_endpoint_validates_limit(self) -> None:
        for limit in ("many", -5, 0):
            response = self.client.post(self.process_url, {"limit": limit}, format="json")

            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, limit)

    def test_process_endpoint_accepts_positive_limit(self) -> None:
        for _ in range(3):
            NotificationEvent.objects.create(tenant=self.hotel, event_type="minibar_restocked")

        response = self.client.post(self.process_url, {"limit": 2}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["processed"], 2)

    def test_resubmit_terminal_event(self) -> None:
        event = NotificationEvent.objects.create(
            tenant=self.hotel,
            event_type="reservation_created",
            status=NotificationEvent.Status.FAILED,
            retry_count=3,
        )

        response = self.client.post(reverse("notification-event-resubmit", args=[event.pk]))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["source_id"], str(event.pk))
        self.assertEqual(response.data["status"], NotificationEvent.Status.PENDING)

    def test_resubmit_pending_event_conflicts(self) -> None:
        event = NotificationEvent.objects.create(tenant=self.hotel, event_type="reservation_created")

        response = self.client.post(reverse("notification-event-resubmit", args=[event.pk]))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(NotificationEvent.objects.count(), 1)

    def test_staff_can_mark_alert_read(self) -> None:
        alert = StaffAlert.objects.create(
            tenant=self.hotel,
            alert_type="reservation_created",
            recipient_type="front_desk",
            title="New Reservation: Ada",
            message="New booking received",
        )

        response = self.client.post(reverse("staff-alert-mark-read", args=[alert.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        alert.refresh_from_db()
        self.assertTrue(alert.is_read)

        unread = self.client.get(reverse("staff-alert-list"), {"is_read": "false"})
        self.assertEqual(unread.data, [])
