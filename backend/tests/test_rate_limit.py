"""Tests for core/rate_limit.py - Inbound and outbound rate limiting."""
import asyncio
import time

import pytest


class TestProviderRateLimiter:
    """Test the per-provider outbound limiter."""

    def test_calls_within_rate_do_not_wait(self):
        """Calls under the limit should be admitted immediately."""
        from medsearch.core.rate_limit import ProviderRateLimiter

        limiter = ProviderRateLimiter("test-fast", "10/second")

        async def acquire_many():
            for _ in range(5):
                await limiter.acquire()

        start = time.monotonic()
        asyncio.run(acquire_many())
        assert time.monotonic() - start < 0.5

    def test_calls_over_rate_are_delayed(self):
        """The call after the quota should wait for the window to move."""
        from medsearch.core.rate_limit import ProviderRateLimiter

        limiter = ProviderRateLimiter("test-slow", "2/second")

        async def acquire_many():
            for _ in range(3):
                await limiter.acquire()

        start = time.monotonic()
        asyncio.run(acquire_many())
        assert time.monotonic() - start >= 0.5

    def test_limiters_are_independent(self):
        """One provider's exhausted quota should not throttle another."""
        from medsearch.core.rate_limit import ProviderRateLimiter

        slow = ProviderRateLimiter("test-a", "1/minute")
        fast = ProviderRateLimiter("test-b", "1/minute")

        async def acquire_each():
            await slow.acquire()
            await fast.acquire()

        start = time.monotonic()
        asyncio.run(acquire_each())
        assert time.monotonic() - start < 0.5


class TestInboundLimiter:
    """Test the slowapi limiter used by the API."""

    def test_limiter_is_configured(self):
        """The module should export a limiter and the search limit."""
        from slowapi import Limiter
        from medsearch.core.rate_limit import limiter, SEARCH_LIMIT

        assert isinstance(limiter, Limiter)
        assert SEARCH_LIMIT.endswith("/minute")

    def test_exceeded_handler_returns_429(self):
        """The custom handler should answer 429 with a Retry-After header."""
        from unittest.mock import MagicMock
        from medsearch.core.rate_limit import rate_limit_exceeded_handler

        exc = MagicMock()
        exc.detail = "10 per 1 minute"
        exc.retry_after = 30

        response = rate_limit_exceeded_handler(MagicMock(), exc)
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"

    def test_identifier_prefers_forwarded_address(self):
        """The first X-Forwarded-For hop should key the request."""
        from unittest.mock import MagicMock
        from medsearch.core.rate_limit import client_identifier

        request = MagicMock()
        request.headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        assert client_identifier(request) == "203.0.113.7"

    def test_storage_falls_back_to_memory(self):
        """An unreachable Redis should select in-memory storage."""
        import redis
        from unittest.mock import patch
        from medsearch.core.rate_limit import inbound_storage_uri

        with patch("medsearch.core.rate_limit.redis.from_url") as mock_from_url:
            mock_from_url.return_value.ping.side_effect = redis.ConnectionError("refused")
            assert inbound_storage_uri("localhost", 6379) == "memory://"

    def test_storage_uses_reachable_redis(self):
        """A Redis that answers ping should be used for shared limits."""
        from unittest.mock import patch
        from medsearch.core.rate_limit import inbound_storage_uri

        with patch("medsearch.core.rate_limit.redis.from_url"):
            assert inbound_storage_uri("cache", 6380) == "redis://cache:6380"
