"""Rate limiting adapters.

Counter stores behind a two-method interface: a Redis implementation shared
by every worker, and an in-process implementation for single-worker runs and
tests.
"""

from app.adapters.rate_limit.base import (
    AbstractCounterStore,
    AdmissionDecision,
    RateLimitPolicy,
)
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.adapters.rate_limit.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "AdmissionDecision",
    "InMemoryCounterStore",
    "RateLimitPolicy",
    "RedisCounterStore",
]
