"""Redis-backed counter store.

Counters are plain Redis integers. The increment runs ``INCR`` and
``EXPIRE ... NX`` inside a ``MULTI/EXEC`` transaction, so the first request of
a window sets the TTL and later increments leave it untouched. ``EXPIRE NX``
requires Redis 7.0 or newer.
"""

from __future__ import annotations

import redis

from app.adapters.rate_limit.base import AbstractCounterStore


class RedisCounterStore(AbstractCounterStore):
    """Counter store over a shared Redis instance.

    Redis errors (connection refused, timeouts, closed client) propagate to
    the caller unchanged.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def get_count(self, key: str) -> int:
        raw = self._client.get(key)
        if raw is None:
            return 0
        return int(raw)

    def increment_and_expire(self, key: str, ttl_seconds: int) -> int:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, ttl_seconds, nx=True)
            count, _ttl_applied = pipe.execute()
        return int(count)
