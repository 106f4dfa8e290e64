"""Text rendering for alerts and outbound messages."""

from __future__ import annotations

import logging
from typing import Any, Mapping

logger = logging.getLogger(__name__)


ALERT_TITLES = {
    "reservation_created": "New Reservation: {guest_name}",
    "housekeeping_request": "Cleaning Request: Room {room_number}",
    "payment_reminder": "Payment Reminder: {reservation_number}",
    "outstanding_payment": "Outstanding Payment: {guest_name}",
    "reservation_cancelled": "Reservation Cancelled: {reservation_number}",
}

TITLE_FALLBACKS = {
    "guest_name": "Guest",
    "room_number": "N/A",
    "reservation_number": "N/A",
}

MESSAGE_TEMPLATES = {
    "booking_received": (
        "New booking received for {guest_name} from {check_in_date} to {check_out_date}"
    ),
    "new_booking_alert": (
        "New booking: {guest_name}, {room_type}, Check-in: {check_in_date}"
    ),
    "booking_confirmation": (
        "Dear {guest_name}, your reservation {reservation_number} at {hotel_name} "
        "from {check_in_date} to {check_out_date} is confirmed."
    ),
    "cleaning_request": "Room {room_number} requires cleaning as requested by guest",
    "payment_reminder": "Payment reminder sent to guest for reservation {reservation_number}",
    "guest_payment_reminder": (
        "Dear {guest_name}, a payment of {amount} is due for reservation {reservation_number}."
    ),
    "outstanding_balance": "Guest {guest_name} has outstanding balance of {amount}",
    "reservation_cancelled": "Reservation {reservation_number} for {guest_name} has been cancelled.",
}

EMAIL_SUBJECTS = {
    "booking_received": "New booking received",
    "booking_confirmation": "Your reservation at {hotel_name} is confirmed",
    "guest_payment_reminder": "Payment reminder for reservation {reservation_number}",
    "reservation_cancelled": "Reservation {reservation_number} cancelled",
}


def _format(template: str, data: Mapping[str, Any]) -> str:
    try:
        return template.format(**data)
    except (KeyError, IndexError, ValueError) as exc:
        logger.debug("Template placeholder missing (%s), sending unformatted", exc)
        return template


def alert_title(event_type: str, template_data: Mapping[str, Any]) -> str:
    title = ALERT_TITLES.get(event_type)
    if title is None:
        return f"Staff Alert: {event_type}"
    data = {**TITLE_FALLBACKS, **{k: v for k, v in template_data.items() if v not in (None, "")}}
    return _format(title, data)


def render_message(template: str, template_data: Mapping[str, Any]) -> str:
    body = MESSAGE_TEMPLATES.get(template)
    if body is None:
        return f"Notification: {template}"
    return _format(body, template_data)


def email_subject(template: str, template_data: Mapping[str, Any]) -> str:
    subject = template_data.get("subject") or EMAIL_SUBJECTS.get(template)
    if not subject:
        return str(template_data.get("hotel_name") or "Hotel notification")
    return _format(str(subject), template_data)
