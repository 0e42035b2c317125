"""Per-client token bucket limiting for expensive endpoints."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class _Bucket:
    tokens: float
    last_refill: float


class RateLimiter:
    """Token buckets keyed by caller.

    Each key holds at most ``burst`` tokens and regains ``limit_per_minute``
    tokens per minute. A request spends one token; callers below one token
    are rejected. The clock returns seconds and is injectable so tests can
    drive time explicitly.
    """

    def __init__(self, *, limit_per_minute: int = 20, burst: int = 10, clock: Clock = time.monotonic) -> None:
        if limit_per_minute <= 0 or burst <= 0:
            raise ValueError("limit_per_minute and burst must be positive")
        self.limit_per_minute = limit_per_minute
        self.burst = burst
        self._refill_per_second = limit_per_minute / 60.0
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        """Spend one token for ``key`` and report whether the request may proceed."""
        now = self._clock()
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                self._buckets[key] = _Bucket(tokens=self.burst - 1, last_refill=now)
                return True

            elapsed = max(0.0, now - bucket.last_refill)
            tokens = min(float(self.burst), bucket.tokens + elapsed * self._refill_per_second)
            bucket.last_refill = now
            if tokens < 1:
                bucket.tokens = tokens
                logger.info("Rate limit hit for %s", key)
                return False
            bucket.tokens = tokens - 1
            return True
