"""Errors raised by the notification queue."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for notification queue errors."""


class RecipientUnresolved(NotificationError):
    """No concrete address exists for a recipient type on a channel."""

    def __init__(self, recipient_type: str, channel: str, reason: str = "no contact info"):
        self.recipient_type = recipient_type
        self.channel = channel
        self.reason = reason
        super().__init__(f"{recipient_type} via {channel}: {reason}")


class IllegalTransition(NotificationError):
    """The event is not in the state the requested transition starts from."""


class EventNotClaimable(IllegalTransition):
    """The event is not pending, not due yet, or was claimed by another worker."""


class SenderNotConfigured(NotificationError):
    """A channel gateway has no endpoint configured."""


class DispatchAborted(NotificationError):
    """Infrastructure failure during dispatch.

    Carries the outcomes collected before the failure so they can be stored
    with the retry.
    """

    def __init__(self, message: str, results: dict | None = None):
        super().__init__(message)
        self.results = results or {}
