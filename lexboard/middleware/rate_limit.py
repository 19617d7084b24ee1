"""
Rate Limiting Middleware
========================

Per-client request allowance over fixed one-minute windows, counted in Redis.

The limiter fails open: if Redis cannot be reached every request passes,
and the connection is retried after a short back-off instead of on every
request. Exceeding the allowance only delays the client; accounts are never
locked.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import redis
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..errors import build_error_payload

logger = logging.getLogger(__name__)

EXEMPT_PATHS = ("/health", "/docs", "/openapi.json", "/redoc")
RECONNECT_AFTER_SECONDS = 30


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: int

    @property
    def retry_after(self) -> int:
        return max(0, self.reset_at - int(time.time()))


class RateLimiter:
    """Fixed-window counter: one Redis key per client per window."""

    def __init__(self, redis_url: str, window_seconds: int = 60):
        self.redis_url = redis_url
        self.window_seconds = window_seconds
        self._client: Optional[redis.Redis] = None
        self._down_since: Optional[float] = None

    def _connection(self) -> Optional[redis.Redis]:
        if self._client is not None:
            return self._client
        if self._down_since and time.monotonic() - self._down_since < RECONNECT_AFTER_SECONDS:
            return None
        try:
            client = redis.from_url(self.redis_url, socket_connect_timeout=1)
            client.ping()
        except redis.RedisError as e:
            logger.warning(f"Rate limiter disabled, Redis unavailable: {e}")
            self._down_since = time.monotonic()
            return None
        self._client = client
        self._down_since = None
        return client

    def hit(self, key: str, limit: int) -> RateLimitDecision:
        """Count one request for `key` and decide whether it may proceed."""
        now = int(time.time())
        window = now // self.window_seconds
        reset_at = (window + 1) * self.window_seconds

        client = self._connection()
        if client is None:
            return RateLimitDecision(True, limit, reset_at)

        try:
            pipe = client.pipeline()
            pipe.incr(f"{key}:{window}")
            pipe.expire(f"{key}:{window}", self.window_seconds + 1)
            count = pipe.execute()[0]
        except redis.RedisError as e:
            logger.warning(f"Rate limit check failed for {key}: {e}")
            self._client = None
            self._down_since = time.monotonic()
            return RateLimitDecision(True, limit, reset_at)

        return RateLimitDecision(count <= limit, max(0, limit - count), reset_at)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies `limit` requests per minute to each client IP."""

    def __init__(self, app, limit: int, redis_url: str = "redis://localhost:6379/0",
                 limiter: Optional[RateLimiter] = None):
        super().__init__(app)
        self.limit = limit
        self.limiter = limiter or RateLimiter(redis_url)

    @staticmethod
    def client_key(request: Request) -> str:
        # First hop of X-Forwarded-For when behind a proxy
        forwarded = request.headers.get("x-forwarded-for", "")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        else:
            ip = request.client.host if request.client else "unknown"
        return f"lexboard:ratelimit:{ip}"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        decision = self.limiter.hit(self.client_key(request), self.limit)
        if not decision.allowed:
            logger.info(f"Rate limited {self.client_key(request)} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content=build_error_payload(
                    "rate_limited",
                    f"Too many requests, limit is {self.limit} per minute",
                    {"retryAfter": decision.retry_after},
                ),
                headers={
                    "Retry-After": str(decision.retry_after),
                    "X-RateLimit-Limit": str(self.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
