"""
Request throttling middleware.

Token bucket per client (session token hash or IP) and endpoint, kept
in memory. This protects the API from floods; the domain rule "one
check-in per shop every two hours" lives in the check-in service.
"""

import asyncio
import hashlib
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware


@dataclass
class RateLimitConfig:
    """Configuration for request throttling."""

    requests_per_minute: int = 60

    # Burst allowance
    burst_size: int = 10

    enabled: bool = True

    excluded_paths: list = field(default_factory=lambda: [
        "/health",
        "/docs",
        "/openapi.json",
        "/redoc",
    ])

    # Per-endpoint limits (path prefix -> requests per minute), write paths
    # only; reads fall back to requests_per_minute
    endpoint_limits: Dict[str, int] = field(default_factory=lambda: {
        "/api/v1/auth": 10,
        "/api/v1/checkins": 20,
        "/api/v1/reviews": 30,
    })
    limited_methods: tuple = ("POST", "PUT", "PATCH", "DELETE")

    trusted_proxy_headers: list = field(default_factory=lambda: [
        "X-Forwarded-For",
        "X-Real-IP",
    ])

    # Buckets idle longer than this are dropped
    bucket_ttl_seconds: float = 3600.0


@dataclass
class RateLimitState:
    tokens: float
    last_update: float


class InMemoryRateLimiter:
    """
    Token bucket limiter.

    Suitable for single-instance deployments.
    """

    def __init__(self, config: RateLimitConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.clock = clock
        self._buckets: Dict[str, RateLimitState] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = 300.0
        self._last_cleanup = clock()

    def limit_for(self, path: str, method: str = "GET") -> int:
        if method in self.config.limited_methods:
            for prefix, limit in self.config.endpoint_limits.items():
                if path.startswith(prefix):
                    return limit
        return self.config.requests_per_minute

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        expired = [
            key for key, state in self._buckets.items()
            if now - state.last_update > self.config.bucket_ttl_seconds
        ]
        for key in expired:
            del self._buckets[key]
        self._last_cleanup = now
        if expired:
            logger.debug(f"Cleaned up {len(expired)} idle rate limit buckets")

    async def check(self, identifier: str, path: str, method: str = "GET") -> Tuple[bool, int, float]:
        """
        Take one token.

        Returns:
            Tuple of (allowed, remaining_tokens, seconds_until_next_token).
        """
        limit = self.limit_for(path, method)
        refill_rate = limit / 60.0
        max_tokens = float(min(self.config.burst_size, limit))
        key = f"{identifier}:{method}:{path}"

        async with self._lock:
            now = self.clock()
            self._cleanup(now)

            state = self._buckets.get(key)
            if state is None:
                state = self._buckets[key] = RateLimitState(tokens=max_tokens, last_update=now)

            state.tokens = min(max_tokens, state.tokens + (now - state.last_update) * refill_rate)
            state.last_update = now

            if state.tokens >= 1:
                state.tokens -= 1
                return True, int(state.tokens), 0.0

            return False, 0, (1 - state.tokens) / refill_rate


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware applying the token bucket to each request."""

    def __init__(
        self,
        app: FastAPI,
        config: Optional[RateLimitConfig] = None,
        limiter: Optional[InMemoryRateLimiter] = None,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.limiter = limiter or InMemoryRateLimiter(self.config)

    def _get_client_identifier(self, request: Request) -> str:
        """Session token hash if present, else client IP."""
        auth = request.headers.get("Authorization", "")
        if auth.lower().startswith("bearer "):
            return f"session:{hashlib.sha256(auth[7:].encode()).hexdigest()[:16]}"

        for header in self.config.trusted_proxy_headers:
            forwarded = request.headers.get(header)
            if forwarded:
                return f"ip:{forwarded.split(',')[0].strip()}"

        if request.client:
            return f"ip:{request.client.host}"
        return "unknown"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not self.config.enabled or any(path.startswith(p) for p in self.config.excluded_paths):
            return await call_next(request)

        identifier = self._get_client_identifier(request)
        allowed, remaining, retry_after = await self.limiter.check(identifier, path, request.method)

        if not allowed:
            logger.warning(f"Request throttled for {identifier} on {request.method} {path}")
            retry_seconds = int(retry_after) + 1
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests. Please try again later.",
                    "code": "TOO_MANY_REQUESTS",
                    "detail": f"Retry after {retry_seconds} seconds",
                },
                headers={
                    "Retry-After": str(retry_seconds),
                    "X-Rate-Limit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-Rate-Limit-Remaining"] = str(remaining)
        return response


def setup_rate_limiting(
    app: FastAPI,
    config: Optional[RateLimitConfig] = None,
) -> InMemoryRateLimiter:
    """
    Configure throttling middleware.

    Returns:
        The limiter instance.
    """
    config = config or RateLimitConfig()
    limiter = InMemoryRateLimiter(config)
    app.add_middleware(RateLimitMiddleware, config=config, limiter=limiter)
    return limiter
