"""
Rate Limiting

Inbound: protects API endpoints from abuse using slowapi.
Uses Redis for distributed rate limiting when available.

Outbound: each source adapter owns a ProviderRateLimiter so one provider's
quota is throttled only by its own adapter and never starves the others.
"""
import asyncio
import time

import redis
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from medsearch.core.config import settings
from medsearch.core.logging import get_logger

logger = get_logger(__name__)


class ProviderRateLimiter:
    """Moving-window limiter for calls to one external provider."""

    def __init__(self, name: str, rate: str):
        self.name = name
        self.rate = rate
        self._item = parse(rate)
        self._strategy = MovingWindowRateLimiter(MemoryStorage())

    async def acquire(self) -> None:
        """Wait (without blocking the event loop) until a call slot is free."""
        while not self._strategy.hit(self._item, self.name):
            reset_time, _ = self._strategy.get_window_stats(self._item, self.name)
            delay = max(reset_time - time.time(), 0.05)
            logger.debug(f"{self.name} throttled ({self.rate}), waiting {delay:.2f}s")
            await asyncio.sleep(delay)


def client_identifier(request: Request) -> str:
    """Key inbound requests by the first forwarded address, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def inbound_storage_uri(host: str, port: int) -> str:
    """Redis URI when the server answers a ping, else slowapi's memory storage."""
    uri = f"redis://{host}:{port}"
    try:
        redis.from_url(uri, socket_connect_timeout=2).ping()
    except (redis.ConnectionError, redis.TimeoutError):
        logger.warning("Redis not available for rate limiting, using in-memory storage")
        return "memory://"
    logger.info("Rate limiter using Redis storage")
    return uri


SEARCH_LIMIT = settings.SEARCH_RATE_LIMIT
DEFAULT_LIMIT = "100/minute"

limiter = Limiter(
    key_func=client_identifier,
    storage_uri=inbound_storage_uri(settings.REDIS_HOST, settings.REDIS_PORT),
    default_limits=[DEFAULT_LIMIT],
    strategy="moving-window",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer 429 with the limit that was hit and when to retry."""
    retry_after = getattr(exc, "retry_after", 60)
    return JSONResponse(
        status_code=429,
        content={
            "error": "Search rate limit exceeded",
            "detail": f"Too many searches. {exc.detail}",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )
