"""Channel senders.

Every channel has exactly one sender class, looked up through
``SENDER_REGISTRY``. Senders turn provider problems (HTTP errors, rejected
messages, missing configuration) into a failed :class:`ChannelOutcome`
instead of raising; only the in-app sender lets database errors propagate,
because a failed alert write is an infrastructure failure of the queue itself.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests
from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.utils import timezone  # type: ignore

from .alerts import alert_title, email_subject, render_message
from .conf import notification_settings
from .exceptions import SenderNotConfigured
from .models import Channel, StaffAlert
from .recipients import Recipient

logger = logging.getLogger(__name__)


@dataclass
class ChannelOutcome:
    """Result of one (recipient type, channel) delivery attempt."""

    success: bool
    error: str = ""
    detail: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.error:
            data["error"] = self.error
        if self.detail:
            data["detail"] = self.detail
        return data


@dataclass(frozen=True)
class OutboundMessage:
    """Everything a sender needs for one delivery."""

    channel: Channel
    template: str
    template_data: Mapping[str, Any]
    recipient: Recipient
    tenant_id: int
    event_id: str = ""
    event_type: str = ""
    event_source: str = ""
    source_id: str = ""
    priority: int = 0


class BaseSender(ABC):
    """Base class for channel senders.

    External senders run on the dispatcher's bounded pool and must bound
    their own I/O (HTTP timeout, ``EMAIL_TIMEOUT``); a call the dispatcher
    gave up on keeps its pool thread until the sender returns.
    """

    channel: Channel

    @abstractmethod
    def send(self, message: OutboundMessage) -> ChannelOutcome:
        pass


class HTTPGatewaySender(BaseSender):
    """Posts a JSON payload to an HTTP gateway configured in ``NOTIFICATIONS``."""

    url_setting: str
    token_setting: str

    def __init__(self, session: requests.Session | None = None):
        self.session = session or requests

    def send(self, message: OutboundMessage) -> ChannelOutcome:
        config = notification_settings()
        try:
            url = config[self.url_setting]
            if not url:
                raise SenderNotConfigured(f"{self.url_setting} is not set")

            headers = {"Content-Type": "application/json"}
            if config[self.token_setting]:
                headers["Authorization"] = f"Bearer {config[self.token_setting]}"

            response = self.session.post(
                url,
                json=self.build_payload(message),
                headers=headers,
                timeout=config["SEND_TIMEOUT_SECONDS"],
            )
            response.raise_for_status()
            body = response.json() if response.content else {}
            if not isinstance(body, dict):
                body = {"body": body}
        except SenderNotConfigured as e:
            logger.warning("%s sender disabled: %s", self.channel.label, e)
            return ChannelOutcome(False, error=str(e))
        except requests.Timeout:
            return ChannelOutcome(False, error="gateway timeout")
        except (requests.RequestException, ValueError) as e:
            logger.error("%s gateway error for event %s: %s", self.channel.label, message.event_id, e)
            return ChannelOutcome(False, error=str(e))

        accepted = body.get("success", True) is not False
        return ChannelOutcome(
            accepted,
            error="" if accepted else str(body.get("error") or "rejected by gateway"),
            detail={"to": message.recipient.address, "template": message.template, "response": body},
        )

    @abstractmethod
    def build_payload(self, message: OutboundMessage) -> dict[str, Any]:
        pass


class SMSSender(HTTPGatewaySender):
    """SMS through the configured gateway."""

    channel = Channel.SMS
    url_setting = "SMS_GATEWAY_URL"
    token_setting = "SMS_GATEWAY_TOKEN"

    def build_payload(self, message: OutboundMessage) -> dict[str, Any]:
        return {
            "to": message.recipient.address,
            "template_name": message.template,
            "event_type": message.event_type,
            "tenant_id": message.tenant_id,
            "variables": dict(message.template_data),
            "text": render_message(message.template, message.template_data),
        }


class PushSender(HTTPGatewaySender):
    """Push notification through the configured push service."""

    channel = Channel.PUSH
    url_setting = "PUSH_GATEWAY_URL"
    token_setting = "PUSH_GATEWAY_TOKEN"

    def build_payload(self, message: OutboundMessage) -> dict[str, Any]:
        return {
            "token": message.recipient.address,
            "title": alert_title(message.event_type, message.template_data),
            "body": render_message(message.template, message.template_data),
            "data": {
                "event_id": message.event_id,
                "event_type": message.event_type,
                "tenant_id": message.tenant_id,
            },
        }


class EmailSender(BaseSender):
    """Email through Django's configured mail backend."""

    channel = Channel.EMAIL

    def send(self, message: OutboundMessage) -> ChannelOutcome:
        try:
            sent = send_mail(
                subject=email_subject(message.template, message.template_data),
                message=render_message(message.template, message.template_data),
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[message.recipient.address],
                fail_silently=False,
            )
        except Exception as e:  # noqa: BLE001 - SMTP and backend errors are delivery failures
            logger.error("Failed to send email to %s: %s", message.recipient.address, e)
            return ChannelOutcome(False, error=str(e))

        if not sent:
            return ChannelOutcome(False, error="email backend accepted no messages")
        return ChannelOutcome(True, detail={"email": message.recipient.address, "template": message.template})


class InAppSender(BaseSender):
    """Creates a staff alert. Delivered as soon as the row exists."""

    channel = Channel.IN_APP

    def send(self, message: OutboundMessage) -> ChannelOutcome:
        alert = StaffAlert.objects.create(
            tenant_id=message.tenant_id,
            event_id=message.event_id or None,
            alert_type=message.event_type,
            recipient_type=message.recipient.recipient_type,
            title=alert_title(message.event_type, message.template_data),
            message=render_message(message.template, message.template_data),
            priority=message.priority,
            template=message.template,
            source_type=message.event_source,
            source_id=message.source_id,
            delivery_status={"in_app": {"delivered": True, "timestamp": timezone.now().isoformat()}},
        )
        return ChannelOutcome(True, detail={"alert_id": alert.pk, "template": message.template})


SENDER_REGISTRY: dict[Channel, type[BaseSender]] = {
    Channel.SMS: SMSSender,
    Channel.EMAIL: EmailSender,
    Channel.IN_APP: InAppSender,
    Channel.PUSH: PushSender,
}

_missing = set(Channel) - set(SENDER_REGISTRY)
if _missing:  # pragma: no cover - guards edits to Channel
    raise ImportError(f"No sender registered for channels: {sorted(_missing)}")


def default_senders() -> dict[Channel, BaseSender]:
    return {channel: sender_class() for channel, sender_class in SENDER_REGISTRY.items()}
