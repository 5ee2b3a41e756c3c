"""
Tests for `services/rate_limiter.py`.

Covers contract rules:
- Five requests in one window are allowed, the sixth is rejected.
- A rejected request does not extend or increment the window.
- After the window expires the identity starts over.
- Concurrent requests from one identity cannot exceed the cap.
"""

from __future__ import annotations

import threading

import pytest

from services.rate_limiter import UNKNOWN_IDENTITY, RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_five_allowed_sixth_rejected() -> None:
    limiter = RateLimiter(window_seconds=60, max_requests=5, clock=FakeClock())

    results = [limiter.allow("203.0.113.7") for _ in range(6)]

    assert results == [True, True, True, True, True, False]


def test_rejection_does_not_increment() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    for _ in range(8):
        limiter.allow("203.0.113.7")

    record = limiter.snapshot("203.0.113.7")

    assert record is not None
    assert record.count == 5
    assert record.reset_at == clock.now + 60


def test_window_reset_allows_again() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    for _ in range(6):
        limiter.allow("203.0.113.7")

    clock.now += 60
    assert limiter.allow("203.0.113.7") is False  # boundary still inside the window

    clock.now += 0.001
    assert limiter.allow("203.0.113.7") is True
    assert limiter.snapshot("203.0.113.7").count == 1


def test_identities_are_independent() -> None:
    limiter = RateLimiter(clock=FakeClock())
    for _ in range(5):
        limiter.allow("198.51.100.1")

    assert limiter.allow("198.51.100.1") is False
    assert limiter.allow("198.51.100.2") is True


def test_missing_identity_shares_unknown_bucket() -> None:
    limiter = RateLimiter(max_requests=2, clock=FakeClock())

    assert limiter.allow("") is True
    assert limiter.allow(UNKNOWN_IDENTITY) is True
    assert limiter.allow("") is False


def test_expired_records_are_evicted_when_full() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock, max_entries=3)
    for ip in ("a", "b", "c"):
        limiter.allow(ip)

    clock.now += 61
    limiter.allow("d")

    assert len(limiter) == 1


def test_invalid_configuration() -> None:
    with pytest.raises(ValueError):
        RateLimiter(window_seconds=0)
    with pytest.raises(ValueError):
        RateLimiter(max_requests=0)


def test_concurrent_burst_cannot_exceed_cap() -> None:
    limiter = RateLimiter(window_seconds=60, max_requests=5)
    barrier = threading.Barrier(20)
    allowed = []
    lock = threading.Lock()

    def hit() -> None:
        barrier.wait()
        result = limiter.allow("192.0.2.10")
        with lock:
            allowed.append(result)

    threads = [threading.Thread(target=hit) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert allowed.count(True) == 5
    assert allowed.count(False) == 15
