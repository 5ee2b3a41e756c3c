"""
Fixed-window request limiter keyed by client identity.

Rules:
- First request from an identity, or first request after its window expired:
  reset the record to count=1 with a new window, allow.
- Count already at the maximum: reject without incrementing.
- Otherwise: increment and allow.

State is process-local and best-effort. It deters abuse of the public intake
endpoint; it is not a security boundary and is not shared between instances.
Requests without a known identity share the "unknown" bucket.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)

UNKNOWN_IDENTITY = "unknown"


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float  # clock value at which the window expires


class RateLimiter:
    """
    Per-identity request cap.

    The read-check-increment for an identity runs under one lock, so a burst of
    concurrent requests cannot slip past the cap. Expired records are replaced
    on access; when the map grows past `max_entries` the expired ones are swept.
    """

    def __init__(
        self,
        window_seconds: float = 60,
        max_requests: int = 5,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10_000,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if max_requests <= 0:
            raise ValueError("max_requests must be > 0")

        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._records: Dict[str, RateLimitRecord] = {}

    def allow(self, identity: str) -> bool:
        """Record one request for `identity`; return False if it is over the cap."""

        key = identity or UNKNOWN_IDENTITY
        now = self._clock()

        with self._lock:
            record = self._records.get(key)

            if record is None or now > record.reset_at:
                if record is None and len(self._records) >= self._max_entries:
                    self._evict_expired(now)
                self._records[key] = RateLimitRecord(count=1, reset_at=now + self.window_seconds)
                return True

            if record.count >= self.max_requests:
                return False

            record.count += 1
            return True

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, record in self._records.items() if now > record.reset_at]
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug("Evicted expired rate limit records", extra={"evicted": len(expired)})

    def snapshot(self, identity: str) -> RateLimitRecord | None:
        """Copy of the current record for `identity` (tests, diagnostics)."""

        with self._lock:
            record = self._records.get(identity or UNKNOWN_IDENTITY)
            return None if record is None else RateLimitRecord(record.count, record.reset_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
