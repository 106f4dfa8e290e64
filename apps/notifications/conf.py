"""Access to the ``NOTIFICATIONS`` settings block with defaults applied."""

from __future__ import annotations

from django.conf import settings  # type: ignore

DEFAULTS = {
    "BATCH_SIZE": 50,
    "DEFAULT_MAX_RETRIES": 3,
    "SEND_TIMEOUT_SECONDS": 10.0,
    "EVENT_TIMEOUT_SECONDS": 60.0,
    "DISPATCH_WORKERS": 4,
    "RETRY_BACKOFF_BASE_SECONDS": 30.0,
    "RETRY_BACKOFF_MAX_SECONDS": 3600.0,
    "LEASE_TIMEOUT_SECONDS": 600,
    "SMS_GATEWAY_URL": "",
    "SMS_GATEWAY_TOKEN": "",
    "PUSH_GATEWAY_URL": "",
    "PUSH_GATEWAY_TOKEN": "",
}


def notification_settings() -> dict:
    """Return the effective settings. Read on every call so overrides apply."""
    return {**DEFAULTS, **getattr(settings, "NOTIFICATIONS", {})}


def get_setting(name: str):
    return notification_settings()[name]
