"""Leaky-bucket admission gate shared by all conversations of one client."""

from __future__ import annotations

import threading
import time
from typing import Callable, Final

__all__ = ["LeakyBucketRateLimiter"]

DEFAULT_CAPACITY: Final = 10
DEFAULT_REFILL_RATE: Final = DEFAULT_CAPACITY / 60.0  # ten calls per minute


class LeakyBucketRateLimiter:
    """
    Non-blocking leaky bucket.

    The bucket starts full with ``capacity`` tokens and regains
    ``refill_rate`` tokens per second, never exceeding ``capacity``. Each
    admitted call takes one token. Denied calls are not queued.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        refill_rate: float = DEFAULT_REFILL_RATE,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        if refill_rate <= 0:
            raise ValueError(f"refill_rate must be positive, got {refill_rate}")
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock
        self._level = float(capacity)
        self._last_refill = clock()
        self._lock = threading.Lock()

    @classmethod
    def per_minute(cls, capacity: int, calls_per_minute: float) -> "LeakyBucketRateLimiter":
        return cls(capacity, calls_per_minute / 60.0)

    @property
    def level(self) -> float:
        with self._lock:
            self._refill()
            return self._level

    def try_admit(self) -> bool:
        """Take one token if available. Never blocks beyond the bucket update."""
        with self._lock:
            self._refill()
            if self._level >= 1.0:
                self._level -= 1.0
                return True
            return False

    def _refill(self) -> None:
        # caller holds the lock
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._last_refill = now
        self._level = min(float(self.capacity), self._level + elapsed * self.refill_rate)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(capacity={self.capacity}, "
            f"refill_rate={self.refill_rate:.4f}/s)"
        )
