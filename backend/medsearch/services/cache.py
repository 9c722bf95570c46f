"""
Redis Cache Service

Caches search results in front of the pipeline with TTL expiration.
Falls back gracefully to an in-memory store when Redis is unavailable.

The cache is a pure key -> SearchResult lookup; it is never consulted
by the pipeline stages themselves. Only complete and partially fulfilled
results are stored, so a transient outage is not remembered.
"""
import hashlib
import time
from datetime import timedelta
from typing import Dict, Iterable, Optional, Tuple

import redis

from medsearch.core.config import settings
from medsearch.core.logging import get_logger
from medsearch.schemas.results import SearchResult, SearchStatus
from medsearch.tools.text_processing import normalize_title

logger = get_logger(__name__)

CACHEABLE_STATUSES = (SearchStatus.COMPLETE, SearchStatus.PARTIAL_FULFILLMENT)


def cache_key(raw_query: str, target_result_count: int, source_keys: Iterable[str]) -> str:
    """Stable key for a query, target size and set of enabled sources."""
    payload = "|".join([
        normalize_title(raw_query),
        str(target_result_count),
        ",".join(sorted(source_keys)),
    ])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:32]


class SearchCache:
    """Redis-based cache for search results with TTL."""

    def __init__(self, ttl: Optional[timedelta] = None, use_redis: bool = True):
        self.ttl = ttl or timedelta(minutes=settings.SEARCH_CACHE_TTL_MINUTES)
        self._client: Optional[redis.Redis] = None
        self._connected = False
        self._fallback_cache: Dict[str, Tuple[float, str]] = {}
        if use_redis:
            self._connect()

    def _connect(self):
        """Attempt to connect to Redis."""
        try:
            self._client = redis.Redis(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                db=0,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2
            )
            self._client.ping()
            self._connected = True
            logger.info("Connected to Redis cache")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis not available, using in-memory fallback: {e}")
            self._connected = False

    def _get_key(self, key: str) -> str:
        return f"search:{key}"

    def set(self, key: str, result: SearchResult) -> bool:
        """
        Store a search result.

        Returns:
            True if stored, False if the result is not cacheable or the write failed
        """
        if result.status not in CACHEABLE_STATUSES:
            return False

        full_key = self._get_key(key)
        payload = result.model_dump_json()
        try:
            if self._connected and self._client:
                self._client.setex(full_key, int(self.ttl.total_seconds()), payload)
            else:
                self._evict_expired()
                self._fallback_cache[full_key] = (time.monotonic() + self.ttl.total_seconds(), payload)
            return True
        except redis.RedisError as e:
            logger.error(f"Cache set error: {e}")
            return False

    def _evict_expired(self) -> None:
        now = time.monotonic()
        for key in [k for k, (expires_at, _) in self._fallback_cache.items() if now >= expires_at]:
            del self._fallback_cache[key]

    def get(self, key: str) -> Optional[SearchResult]:
        """Return the cached result, or None when missing or expired."""
        full_key = self._get_key(key)
        try:
            if self._connected and self._client:
                data = self._client.get(full_key)
            else:
                entry = self._fallback_cache.get(full_key)
                data = None
                if entry:
                    expires_at, data = entry
                    if time.monotonic() >= expires_at:
                        del self._fallback_cache[full_key]
                        data = None
        except redis.RedisError as e:
            logger.error(f"Cache get error: {e}")
            return None

        if not data:
            return None
        result = SearchResult.model_validate_json(data)
        result.diagnostics.cached = True
        return result

    def delete(self, key: str) -> bool:
        full_key = self._get_key(key)
        try:
            if self._connected and self._client:
                return bool(self._client.delete(full_key))
            return self._fallback_cache.pop(full_key, None) is not None
        except redis.RedisError as e:
            logger.error(f"Cache delete error: {e}")
            return False

    @property
    def is_connected(self) -> bool:
        """Check if Redis is connected."""
        return self._connected
