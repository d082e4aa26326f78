"""Fixed-window admission control over a shared counter store.

The controller holds no state of its own; every decision is one read and at
most one atomic increment against the store. Windows start at the first
admitted request for a key and end when the store expires the counter, so a
full burst at the end of one window may be followed by a full burst at the
start of the next.
"""

from __future__ import annotations

import hashlib
import logging

import redis

from app.adapters.rate_limit.base import (
    REASON_ALLOWED,
    REASON_LIMIT_EXCEEDED,
    AbstractCounterStore,
    AdmissionDecision,
    RateLimitPolicy,
)
from app.core.errors import RateLimitStoreAppError

logger = logging.getLogger(__name__)

# Connectivity failures only; data and programming errors surface as 500
STORE_ERRORS: tuple[type[Exception], ...] = (redis.RedisError, OSError)


def hash_limiter_key(key: str) -> str:
    """Hash a limiter key for logging without exposing addresses or ids."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


class AdmissionController:
    """Decide whether a subject may spend one unit of a policy's budget."""

    def __init__(self, store: AbstractCounterStore) -> None:
        self._store = store

    def admit(self, policy: RateLimitPolicy, subject_key: str) -> AdmissionDecision:
        """Check and consume one unit of ``policy`` for ``subject_key``.

        A request is denied without touching the counter once the window's
        budget is spent. Otherwise the counter is incremented (created with
        the window as TTL when absent). If the post-increment value exceeds
        the budget, a concurrent request took the last slot first and this
        one is denied as well.

        Args:
            policy: Budget and namespace to apply.
            subject_key: Client address or authenticated subject id.

        Returns:
            AdmissionDecision for this request.

        Raises:
            ValueError: If ``subject_key`` is empty.
            RateLimitStoreAppError: If the counter store cannot be reached.
        """
        key = policy.key_for(subject_key)

        try:
            count = self._store.get_count(key)
        except STORE_ERRORS as exc:
            raise self._store_error("get_count", policy, key, exc) from exc

        if count >= policy.max_count:
            return self._denied(policy)

        try:
            new_count = self._store.increment_and_expire(key, policy.window_seconds)
        except STORE_ERRORS as exc:
            raise self._store_error("increment_and_expire", policy, key, exc) from exc

        if new_count > policy.max_count:
            logger.info(
                "rate_limit.lost_race",
                extra={
                    "namespace": policy.namespace,
                    "key_hash": hash_limiter_key(key),
                    "count": new_count,
                    "limit": policy.max_count,
                },
            )
            return self._denied(policy)

        return AdmissionDecision(
            allowed=True,
            reason=REASON_ALLOWED,
            limit=policy.max_count,
            remaining=policy.max_count - new_count,
        )

    @staticmethod
    def _denied(policy: RateLimitPolicy) -> AdmissionDecision:
        return AdmissionDecision(
            allowed=False,
            reason=REASON_LIMIT_EXCEEDED,
            limit=policy.max_count,
            remaining=0,
        )

    @staticmethod
    def _store_error(
        operation: str,
        policy: RateLimitPolicy,
        key: str,
        exc: Exception,
    ) -> RateLimitStoreAppError:
        key_hash = hash_limiter_key(key)
        logger.error(
            "rate_limit.store_unavailable",
            extra={
                "operation": operation,
                "namespace": policy.namespace,
                "key_hash": key_hash,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        return RateLimitStoreAppError(
            code="rate_limit_store_unavailable",
            message="Rate limit store is unavailable",
            details={
                "operation": operation,
                "namespace": policy.namespace,
                "key_hash": key_hash,
            },
        )
