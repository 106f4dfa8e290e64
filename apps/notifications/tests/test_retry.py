from __future__ import annotations

import random
from datetime import timedelta

import pytest

from apps.notifications.retry import compute_backoff, should_retry


@pytest.mark.parametrize("attempt, upper", [(1, 30), (2, 60), (3, 120), (4, 240)])
def test_backoff_grows_exponentially_with_jitter(attempt, upper):
    delay = compute_backoff(attempt, base_seconds=30, max_seconds=3600, rng=random.Random(7))

    assert timedelta(seconds=upper / 2) <= delay <= timedelta(seconds=upper)


def test_backoff_is_capped():
    delay = compute_backoff(20, base_seconds=30, max_seconds=300, rng=random.Random(1))

    assert timedelta(seconds=150) <= delay <= timedelta(seconds=300)


def test_backoff_treats_non_positive_attempt_as_first():
    delay = compute_backoff(0, base_seconds=10, max_seconds=100, rng=random.Random(3))

    assert timedelta(seconds=5) <= delay <= timedelta(seconds=10)


def test_backoff_reads_defaults_from_settings(settings):
    settings.NOTIFICATIONS = {"RETRY_BACKOFF_BASE_SECONDS": 4, "RETRY_BACKOFF_MAX_SECONDS": 8}

    assert compute_backoff(5) <= timedelta(seconds=8)


@pytest.mark.parametrize(
    "attempt, max_retries, expected",
    [(1, 3, True), (2, 3, True), (3, 3, False), (1, 1, False)],
)
def test_should_retry(attempt, max_retries, expected):
    assert should_retry(attempt, max_retries) is expected
