"""Rate limiting dependencies for FastAPI routes.

Two key derivation strategies share one admission controller:

- By-address (``enforce_ip_rate_limit``): anonymous endpoints such as
  registration and login are throttled per client network address.
- By-subject (``enforce_user_rate_limit``): endpoints behind a bearer token are
  throttled per authenticated user id, so clients sharing an address do not
  share a budget.

Both are synchronous dependencies; FastAPI runs them in its threadpool, so the
blocking round-trip to Redis never stalls the event loop.

Store failures surface as ``RateLimitStoreAppError`` (HTTP 503) unless
``RATE_LIMIT_FAIL_OPEN=true``, in which case the request is admitted and the
failure logged.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from app.adapters.rate_limit.base import AbstractCounterStore, AdmissionDecision, RateLimitPolicy
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.adapters.rate_limit.redis_store import RedisCounterStore
from app.adapters.redis_client import get_redis_client
from app.core.auth import get_current_user_id
from app.core.config import RateLimitSettings, settings
from app.core.errors import RateLimitStoreAppError
from app.services.admission_controller import AdmissionController, hash_limiter_key

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

_store: AbstractCounterStore | None = None
_store_backend: str | None = None


def build_counter_store(backend: str) -> AbstractCounterStore:
    """Create a counter store for the configured backend name.

    Raises:
        ValueError: If the backend name is not recognised.
    """
    normalized = backend.lower()
    if normalized == "redis":
        return RedisCounterStore(get_redis_client())
    if normalized == "memory":
        return InMemoryCounterStore()
    raise ValueError(f"Unknown rate limit backend: {backend!r} (expected 'redis' or 'memory')")


def get_counter_store() -> AbstractCounterStore:
    """Return the process-wide counter store.

    The instance is cached in-module so in-memory counters survive across
    requests. If the configured backend changes (primarily in tests), the
    store is rebuilt.
    """
    global _store, _store_backend

    backend = settings.rate_limit.backend
    if _store is None or _store_backend != backend:
        _store = build_counter_store(backend)
        _store_backend = backend
        logger.info("rate_limit.store_created", extra={"backend": backend})

    return _store


def get_admission_controller(
    store: Annotated[AbstractCounterStore, Depends(get_counter_store)],
) -> AdmissionController:
    return AdmissionController(store)


def ip_policy(rate_limit_settings: RateLimitSettings | None = None) -> RateLimitPolicy:
    cfg = rate_limit_settings or settings.rate_limit
    return RateLimitPolicy(
        namespace=cfg.ip_namespace,
        max_count=cfg.ip_max_requests,
        window_seconds=cfg.ip_window_seconds,
    )


def user_policy(rate_limit_settings: RateLimitSettings | None = None) -> RateLimitPolicy:
    cfg = rate_limit_settings or settings.rate_limit
    return RateLimitPolicy(
        namespace=cfg.user_namespace,
        max_count=cfg.user_max_requests,
        window_seconds=cfg.user_window_seconds,
    )


def client_address_key(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Derive the by-address subject key for a request.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Prefer the first ``X-Forwarded-For`` hop; enable
            only behind a proxy that overwrites the header.

    Returns:
        str: Client address, or ``"unknown"`` when the transport has none.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def authenticated_subject_key(user_id: str) -> str:
    """Derive the by-subject key from a verified token subject."""
    return user_id


def _rate_limit_headers(decision: AdmissionDecision) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }


def apply_rate_limit(
    controller: AdmissionController,
    policy: RateLimitPolicy,
    subject_key: str,
    *,
    rate_limit_settings: RateLimitSettings | None = None,
) -> AdmissionDecision | None:
    """Run admission control for one request and translate the outcome.

    Args:
        controller: Admission controller bound to the counter store.
        policy: Policy to apply.
        subject_key: Key produced by one of the derivation strategies.
        rate_limit_settings: Settings; defaults to the global settings.

    Returns:
        The decision for admitted requests, or None when the store failed and
        the deployment fails open.

    Raises:
        HTTPException: 429 Too Many Requests when the budget is spent.
        RateLimitStoreAppError: When the store fails and fail-open is off.
    """
    cfg = rate_limit_settings or settings.rate_limit
    key_hash = hash_limiter_key(policy.key_for(subject_key))

    try:
        decision = controller.admit(policy, subject_key)
    except RateLimitStoreAppError:
        if not cfg.fail_open:
            raise
        logger.warning(
            "rate_limit.fail_open",
            extra={"namespace": policy.namespace, "key_hash": key_hash},
        )
        return None

    if decision.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "namespace": policy.namespace,
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "window_s": policy.window_seconds,
            },
        )
        return decision

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "namespace": policy.namespace,
            "key_hash": key_hash,
            "limit": decision.limit,
            "window_s": policy.window_seconds,
        },
    )

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=decision.reason,
        headers=_rate_limit_headers(decision) if cfg.include_headers else None,
    )


def enforce_ip_rate_limit(
    request: Request,
    controller: Annotated[AdmissionController, Depends(get_admission_controller)],
) -> None:
    """FastAPI dependency throttling by client address."""
    if not settings.rate_limit.enabled:
        return

    subject = client_address_key(
        request,
        trust_forwarded_for=settings.rate_limit.trust_forwarded_for,
    )
    apply_rate_limit(controller, ip_policy(), subject)


def enforce_user_rate_limit(
    user_id: Annotated[str, Depends(get_current_user_id)],
    controller: Annotated[AdmissionController, Depends(get_admission_controller)],
) -> None:
    """FastAPI dependency throttling by authenticated user id.

    Depends on ``get_current_user_id``, so an unauthenticated request is
    rejected with 401 before any budget is consulted.
    """
    if not settings.rate_limit.enabled:
        return

    apply_rate_limit(controller, user_policy(), authenticated_subject_key(user_id))
