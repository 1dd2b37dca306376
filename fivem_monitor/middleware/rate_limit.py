"""
Per-client token bucket rate limiting.

Every client IP gets a bucket of ``limit`` tokens that refills at
``limit / window`` tokens per second; a request costs one token.  Static
dashboard files are limited the same way as the API, like the original
express middleware did.
"""
from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.status import HTTP_429_TOO_MANY_REQUESTS

logger = logging.getLogger(__name__)


@dataclass
class TokenBucket:
    capacity: int
    refill_rate: float  # tokens per second
    tokens: float = field(default=0)
    last_update: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        self.tokens = float(self.capacity)

    def consume(self, now: float) -> bool:
        elapsed = now - self.last_update
        self.last_update = now
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False

    @property
    def retry_after(self) -> int:
        if self.tokens >= 1:
            return 0
        return int((1 - self.tokens) / self.refill_rate) + 1


class RateLimiter:
    """Buckets keyed by client IP, LRU-evicted past ``MAX_TRACKED_IPS``."""

    MAX_TRACKED_IPS = 10000

    def __init__(
        self,
        limit: int = 100,
        window: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock
        self._buckets: OrderedDict[str, TokenBucket] = OrderedDict()
        self._last_cleanup = clock()

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self.window:
            return
        self._last_cleanup = now
        stale = [ip for ip, b in self._buckets.items() if now - b.last_update > self.window]
        for ip in stale:
            del self._buckets[ip]

    def check(self, client_ip: str) -> tuple[bool, int]:
        """Returns (allowed, retry_after_seconds)."""
        now = self._clock()
        self._cleanup(now)

        bucket = self._buckets.get(client_ip)
        if bucket is None:
            bucket = TokenBucket(
                capacity=self.limit,
                refill_rate=self.limit / self.window,
                last_update=now,
            )
            self._buckets[client_ip] = bucket
            while len(self._buckets) > self.MAX_TRACKED_IPS:
                self._buckets.popitem(last=False)
        else:
            self._buckets.move_to_end(client_ip)

        allowed = bucket.consume(now)
        return allowed, 0 if allowed else bucket.retry_after


def client_ip(request: Request) -> str:
    """Client IP, honouring reverse-proxy headers."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    if request.client:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, rate_limiter: RateLimiter):
        super().__init__(app)
        self._limiter = rate_limiter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        ip = client_ip(request)
        allowed, retry_after = self._limiter.check(ip)
        if not allowed:
            logger.warning("Rate limit exceeded: %s %s", ip, request.url.path[:50])
            return JSONResponse(
                status_code=HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "error": "Too many requests, please wait"},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
