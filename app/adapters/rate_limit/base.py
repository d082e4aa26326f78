"""Counter store interface and the value types of admission control.

The admission controller depends on this abstraction only, so any store that
offers a plain read and an atomic increment-with-first-expiry can back it
(Redis in production, an in-process store for single workers and tests).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

KEY_SEPARATOR = ":"

REASON_ALLOWED = "allowed"
REASON_LIMIT_EXCEEDED = "rate limit exceeded"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Fixed-window budget bound to a key namespace.

    Attributes:
        namespace: Key prefix separating this policy's counters from others'.
        max_count: Requests admitted per subject per window.
        window_seconds: Window length; also the counter's TTL.

    Raises:
        ValueError: On an empty namespace, a namespace containing the key
            separator, or a non-positive count/window.
    """

    namespace: str
    max_count: int
    window_seconds: int

    def __post_init__(self) -> None:
        if not self.namespace:
            raise ValueError("namespace must be a non-empty string")
        if KEY_SEPARATOR in self.namespace:
            raise ValueError(f"namespace must not contain {KEY_SEPARATOR!r}")
        if self.max_count < 1:
            raise ValueError("max_count must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

    def key_for(self, subject_key: str) -> str:
        """Compose the counter key for a subject under this policy."""
        if not subject_key:
            raise ValueError("subject_key must be a non-empty string")
        return f"{self.namespace}{KEY_SEPARATOR}{subject_key}"


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of an admission check.

    Attributes:
        allowed: Whether the request may proceed.
        reason: ``"allowed"`` or ``"rate limit exceeded"``.
        limit: The policy's max_count.
        remaining: Budget left in the current window after this call.
    """

    allowed: bool
    reason: str
    limit: int
    remaining: int


class AbstractCounterStore(ABC):
    """Shared counter storage used by the admission controller."""

    @abstractmethod
    def get_count(self, key: str) -> int:
        """Return the current counter value, or 0 when the key is absent.

        Connectivity failures are raised unchanged.
        """
        raise NotImplementedError

    @abstractmethod
    def increment_and_expire(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment ``key`` and set its TTL only if none is set.

        A missing key is created at 1. Concurrent calls on the same key are
        serialized by the store: no increment is lost and at most one call
        applies the TTL.

        Args:
            key: Counter key.
            ttl_seconds: TTL applied when the counter has none.

        Returns:
            The counter value after the increment.
        """
        raise NotImplementedError
