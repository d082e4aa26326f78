"""In-process counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a lock serializes every read and increment.
- Expiry is lazy: a counter past its deadline reads as absent and is
  replaced on the next increment.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractCounterStore


@dataclass
class _Counter:
    value: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store mirroring Redis ``INCR`` + ``EXPIRE NX`` semantics."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty store.

        Args:
            clock: Time source in seconds; injectable for tests.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._counters: dict[str, _Counter] = {}

    def _live_counter(self, key: str, now: float) -> _Counter | None:
        counter = self._counters.get(key)
        if counter is None:
            return None
        if counter.expires_at is not None and now >= counter.expires_at:
            del self._counters[key]
            return None
        return counter

    def get_count(self, key: str) -> int:
        with self._lock:
            counter = self._live_counter(key, self._clock())
            return counter.value if counter else 0

    def increment_and_expire(self, key: str, ttl_seconds: int) -> int:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        with self._lock:
            now = self._clock()
            counter = self._live_counter(key, now)
            if counter is None:
                counter = _Counter(value=0, expires_at=None)
                self._counters[key] = counter

            counter.value += 1
            if counter.expires_at is None:
                counter.expires_at = now + ttl_seconds
            return counter.value

    def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires, or None when absent or without TTL."""
        with self._lock:
            now = self._clock()
            counter = self._live_counter(key, now)
            if counter is None or counter.expires_at is None:
                return None
            return counter.expires_at - now

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()
