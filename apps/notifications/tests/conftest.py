from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from apps.hotels.models import Hotel, StaffMember
from apps.notifications.models import Channel, NotificationEvent, NotificationRule, Priority
from apps.notifications.senders import ChannelOutcome


@pytest.fixture
def hotel(db):
    return Hotel.objects.create(
        name="Grand Palace",
        front_desk_phone="+15550000001",
        front_desk_email="desk@grandpalace.test",
    )


@pytest.fixture
def other_hotel(db):
    return Hotel.objects.create(name="Seaside Inn", front_desk_phone="+15550000099")


@pytest.fixture
def staff(hotel):
    return {
        "manager": StaffMember.objects.create(
            hotel=hotel,
            full_name="Maria Manager",
            role=StaffMember.Role.MANAGER,
            phone="+15550000002",
            email="manager@grandpalace.test",
        ),
        "housekeeper": StaffMember.objects.create(
            hotel=hotel,
            full_name="Hank Housekeeping",
            role=StaffMember.Role.HOUSEKEEPING,
            phone="+15550000003",
            push_token="hk-device-token",
        ),
        "former_manager": StaffMember.objects.create(
            hotel=hotel,
            full_name="Old Manager",
            role=StaffMember.Role.MANAGER,
            email="old@grandpalace.test",
            is_active=False,
        ),
    }


@pytest.fixture
def make_event(hotel):
    def factory(**overrides):
        fields = {
            "tenant": hotel,
            "event_type": "reservation_created",
            "event_source": "reservation",
            "source_id": "R-1001",
            "priority": Priority.NORMAL,
            "template_data": {
                "guest_name": "Ada Guest",
                "guest_phone": "+15551234567",
                "guest_email": "ada@example.test",
                "check_in_date": "2026-11-01",
                "check_out_date": "2026-11-04",
            },
            "scheduled_at": timezone.now() - timedelta(seconds=1),
        }
        fields.update(overrides)
        return NotificationEvent.objects.create(**fields)

    return factory


@pytest.fixture
def make_rule(hotel):
    def factory(routing_config=None, **overrides):
        fields = {
            "tenant": hotel,
            "event_type": "reservation_created",
            "name": "Reservation created",
            "priority": 0,
            "routing_config": routing_config
            or {"guest": {"channels": ["sms", "email"], "template": "booking_confirmation"}},
        }
        fields.update(overrides)
        return NotificationRule.objects.create(**fields)

    return factory


def _stub_sender(outcome=None, side_effect=None):
    sender = mock.Mock()
    sender.send.return_value = outcome or ChannelOutcome(True, detail={"stub": True})
    if side_effect is not None:
        sender.send.side_effect = side_effect
    return sender


@pytest.fixture
def stub_sender():
    return _stub_sender


@pytest.fixture
def stub_senders():
    """Sender stubs for external channels; in-app keeps the real sender."""
    from apps.notifications.senders import InAppSender

    return {
        Channel.SMS: _stub_sender(),
        Channel.EMAIL: _stub_sender(),
        Channel.PUSH: _stub_sender(),
        Channel.IN_APP: InAppSender(),
    }
