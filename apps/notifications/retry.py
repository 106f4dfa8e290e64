"""Event-level retry policy."""

from __future__ import annotations

import random
from datetime import timedelta

from .conf import notification_settings


def compute_backoff(
    attempt: int,
    *,
    base_seconds: float | None = None,
    max_seconds: float | None = None,
    rng: random.Random | None = None,
) -> timedelta:
    """Exponential backoff with jitter for the ``attempt``-th failed attempt (1-based).

    The un-jittered delay is ``base * 2 ** (attempt - 1)`` capped at
    ``max_seconds``; the returned delay is drawn uniformly from the upper half
    of it so that workers retrying the same failure spread out.
    """
    config = notification_settings()
    base = config["RETRY_BACKOFF_BASE_SECONDS"] if base_seconds is None else base_seconds
    cap = config["RETRY_BACKOFF_MAX_SECONDS"] if max_seconds is None else max_seconds

    attempt = max(1, attempt)
    delay = min(cap, base * (2 ** (attempt - 1)))
    jittered = (rng or random).uniform(delay / 2, delay)
    return timedelta(seconds=jittered)


def should_retry(attempt: int, max_retries: int) -> bool:
    """``attempt`` is the retry_count the event will have after this failure."""
    return attempt < max_retries
