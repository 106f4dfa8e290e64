from __future__ import annotations

from unittest import mock

import pytest
import requests
from django.core import mail

from apps.notifications.models import Channel, Priority, RecipientType, StaffAlert
from apps.notifications.recipients import Recipient
from apps.notifications.senders import (
    SENDER_REGISTRY,
    EmailSender,
    InAppSender,
    PushSender,
    SMSSender,
)
from apps.notifications.senders import OutboundMessage

TEMPLATE_DATA = {
    "guest_name": "Ada Guest",
    "reservation_number": "R-1001",
    "hotel_name": "Grand Palace",
    "check_in_date": "2026-11-01",
    "check_out_date": "2026-11-04",
}


def make_message(channel, address, recipient_type=RecipientType.GUEST, template="booking_confirmation", **extra):
    fields = {
        "channel": channel,
        "template": template,
        "template_data": TEMPLATE_DATA,
        "recipient": Recipient(recipient_type, channel, address=address),
        "tenant_id": 1,
        "event_id": "",
        "event_type": "reservation_created",
        "event_source": "reservation",
        "source_id": "R-1001",
        "priority": Priority.HIGH,
    }
    fields.update(extra)
    return OutboundMessage(**fields)


def gateway_response(body=None):
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.content = b"{}"
    response.json.return_value = {"success": True} if body is None else body
    return response


def test_every_channel_has_a_sender():
    assert set(SENDER_REGISTRY) == set(Channel)


def test_sms_posts_rendered_message_to_gateway():
    session = mock.Mock()
    session.post.return_value = gateway_response({"success": True, "id": "msg-1"})

    outcome = SMSSender(session=session).send(make_message(Channel.SMS, "+15551234567"))

    assert outcome.success is True
    assert outcome.detail["response"] == {"success": True, "id": "msg-1"}
    url = session.post.call_args.args[0]
    kwargs = session.post.call_args.kwargs
    assert url == "https://sms.example.test/send"
    assert kwargs["headers"]["Authorization"] == "Bearer sms-token"
    assert kwargs["json"]["to"] == "+15551234567"
    assert kwargs["json"]["text"].startswith("Dear Ada Guest, your reservation R-1001")
    assert kwargs["timeout"] == 2


def test_sms_without_gateway_fails_without_calling_out(settings):
    settings.NOTIFICATIONS = {"SMS_GATEWAY_URL": ""}
    session = mock.Mock()

    outcome = SMSSender(session=session).send(make_message(Channel.SMS, "+15551234567"))

    assert outcome.success is False
    assert "SMS_GATEWAY_URL" in outcome.error
    session.post.assert_not_called()


def test_gateway_http_error_is_a_failed_outcome():
    session = mock.Mock()
    response = gateway_response()
    response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
    session.post.return_value = response

    outcome = SMSSender(session=session).send(make_message(Channel.SMS, "+15551234567"))

    assert outcome.success is False
    assert outcome.error == "503 Server Error"


def test_gateway_timeout_is_a_failed_outcome():
    session = mock.Mock()
    session.post.side_effect = requests.Timeout()

    outcome = PushSender(session=session).send(make_message(Channel.PUSH, "device-token"))

    assert outcome.as_dict() == {"success": False, "error": "gateway timeout"}


def test_gateway_rejection_is_a_failed_outcome():
    session = mock.Mock()
    session.post.return_value = gateway_response({"success": False, "error": "invalid number"})

    outcome = SMSSender(session=session).send(make_message(Channel.SMS, "+1"))

    assert outcome.success is False
    assert outcome.error == "invalid number"


def test_push_payload_carries_title_and_event_reference():
    session = mock.Mock()
    session.post.return_value = gateway_response()

    outcome = PushSender(session=session).send(
        make_message(Channel.PUSH, "device-token", template="booking_received", event_id="abc")
    )

    payload = session.post.call_args.kwargs["json"]
    assert outcome.success is True
    assert payload["token"] == "device-token"
    assert payload["title"] == "New Reservation: Ada Guest"
    assert payload["data"]["event_id"] == "abc"


def test_email_goes_through_django_mail_backend():
    outcome = EmailSender().send(make_message(Channel.EMAIL, "ada@example.test"))

    assert outcome.success is True
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["ada@example.test"]
    assert mail.outbox[0].subject == "Your reservation at Grand Palace is confirmed"


def test_email_backend_error_is_a_failed_outcome():
    with mock.patch("apps.notifications.senders.send_mail", side_effect=OSError("connection refused")):
        outcome = EmailSender().send(make_message(Channel.EMAIL, "ada@example.test"))

    assert outcome.success is False
    assert outcome.error == "connection refused"


@pytest.mark.django_db
def test_in_app_creates_staff_alert(hotel):
    message = make_message(
        Channel.IN_APP,
        "front_desk",
        recipient_type=RecipientType.FRONT_DESK,
        template="booking_received",
        tenant_id=hotel.pk,
    )

    outcome = InAppSender().send(message)

    alert = StaffAlert.objects.get()
    assert outcome.detail["alert_id"] == alert.pk
    assert alert.title == "New Reservation: Ada Guest"
    assert alert.message == "New booking received for Ada Guest from 2026-11-01 to 2026-11-04"
    assert alert.recipient_type == RecipientType.FRONT_DESK
    assert alert.priority == Priority.HIGH
    assert alert.delivery_status["in_app"]["delivered"] is True
