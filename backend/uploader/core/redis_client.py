from __future__ import annotations

from functools import lru_cache

import redis

from uploader.core.config import settings


@lru_cache(maxsize=1)
def _pool() -> redis.ConnectionPool:
    return redis.ConnectionPool.from_url(settings.redis_url, decode_responses=True)


def get_redis() -> redis.Redis:
    # One pool per process; rate limiting and readiness share it.
    return redis.Redis(connection_pool=_pool())
