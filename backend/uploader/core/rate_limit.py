from __future__ import annotations

from dataclasses import dataclass
import logging

from fastapi import Depends, HTTPException, Request

from uploader.core import redis_client
from uploader.core.config import settings


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimit:
    key: str
    limit: int
    window_seconds: int


def _client_ip(request: Request) -> str:
    # Forwarded headers are client-controlled unless a trusted proxy sets them.
    if bool(settings.trust_proxy_headers):
        xri = str(request.headers.get("x-real-ip") or "").strip()
        if xri:
            return xri
        xff = request.headers.get("x-forwarded-for")
        if xff:
            ip = xff.split(",")[0].strip()
            if ip:
                return ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(*, key_prefix: str, limit: int, window_seconds: int = 60):
    """Fixed-window limiter keyed by client ip. Redis outages fail open."""

    async def _dep(request: Request) -> RateLimit:
        key = f"rl:{key_prefix}:{request.url.path}:{_client_ip(request)}"
        rl = RateLimit(key=key, limit=int(limit), window_seconds=int(window_seconds))
        if rl.limit <= 0:
            return rl

        try:
            r = redis_client.get_redis()
            current = r.incr(key)
            if current == 1:
                r.expire(key, rl.window_seconds)
        except Exception as e:
            log.warning("rate limit skipped, redis unavailable: %s", e)
            return rl

        if int(current) > rl.limit:
            ttl = r.ttl(key)
            retry_after = int(ttl) if ttl and ttl > 0 else rl.window_seconds
            raise HTTPException(
                status_code=429,
                detail="rate limit exceeded",
                headers={"Retry-After": str(retry_after)},
            )

        return rl

    return Depends(_dep)
