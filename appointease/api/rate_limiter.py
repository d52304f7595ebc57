"""Redis-backed fixed-window rate limiter for the public share endpoints.

Uses INCR + EXPIRE. Anonymous visitors are keyed by client IP.

Usage:
    allowed, retry_after = await rate_limiter.check("rate:share:1.2.3.4", limit=60, window=60)
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from appointease.config import settings
from appointease.db.engine import redis_client

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window rate limiter backed by Redis INCR + EXPIRE."""

    def __init__(self, redis: object) -> None:
        self._redis = redis

    async def check(self, key: str, limit: int, window: int) -> tuple[bool, int]:
        """Count one request against ``key``.

        Returns:
            (allowed, retry_after) — retry_after is seconds until the window
            resets, 0 when allowed.
        """
        try:
            count = await self._redis.incr(key)
            if count == 1:
                await self._redis.expire(key, window)

            if count > limit:
                ttl = await self._redis.ttl(key)
                return False, max(ttl, 1)

            return True, 0
        except Exception:
            logger.exception("Rate limiter Redis error for key %s", key)
            # Fail open — a Redis outage must not take public links down
            return True, 0


# Module-level singleton
rate_limiter = RateLimiter(redis_client)


async def limit_public_requests(request: Request) -> None:
    """FastAPI dependency guarding unauthenticated share endpoints."""
    client = request.client.host if request.client else "unknown"
    allowed, retry_after = await rate_limiter.check(
        f"rate:public-share:{client}",
        limit=settings.shares.public_rate_limit,
        window=settings.shares.public_rate_window,
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
            headers={"Retry-After": str(retry_after)},
        )
