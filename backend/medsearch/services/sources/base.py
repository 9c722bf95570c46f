"""
Base types and interfaces for data sources.

Every provider is wrapped in an adapter that implements one fixed
contract, fetch(query, limit, deadline) -> List[Record], so the rest of
the pipeline never sees a provider's native response shape.

To add a new source:
1. Create a class that inherits from BaseSource (or HTTPSource)
2. Set key, name and query_style, and implement _search
3. Register it in SOURCE_REGISTRY in the sources __init__.py
4. Give it a SourceConfig entry in the search configuration

Example:
    class NewSource(HTTPSource):
        key = "new_source"
        name = "NewSource"
        query_style = QueryStyle.NATURAL

        async def _search(self, query: str, limit: int, timeout: float) -> List[Record]:
            data = await self._get_json("https://api.example.org/search", {"q": query}, timeout)
            return [r for r in (self._parse_item(item) for item in data["items"]) if r]
"""
import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from medsearch.core.config import settings
from medsearch.core.exceptions import (
    SourceAuthError,
    SourceError,
    SourceHTTPError,
    SourceParseError,
    SourceRateLimitError,
    SourceTimeoutError,
)
from medsearch.core.logging import get_logger
from medsearch.core.rate_limit import ProviderRateLimiter
from medsearch.core.retry import retrying
from medsearch.schemas.records import Record
from medsearch.schemas.search import QueryStyle, SourceConfig

logger = get_logger(__name__)

USER_AGENT = f"MedSearch/1.0 (mailto:{settings.API_CONTACT_EMAIL})"


class BaseSource(ABC):
    """
    Abstract base class for all data sources.

    Subclasses implement _search for a single attempt. fetch() wraps it
    with the adapter's own rate limiter and the shared retry helper, bound
    to the caller's deadline, and converts any unexpected failure into a
    SourceError so callers only ever see typed provider errors.

    Adapters hold no per-request state; one instance can serve many runs.
    """

    key: str = ""
    name: str = ""
    query_style: QueryStyle = QueryStyle.NATURAL

    def __init__(self, config: Optional[SourceConfig] = None):
        self.config = config or SourceConfig()
        self.limiter = ProviderRateLimiter(self.name, self.config.rate_limit)

    @abstractmethod
    async def _search(self, query: str, limit: int, timeout: float) -> List[Record]:
        """
        One attempt against the provider.

        Args:
            query: Source-specific query string
            limit: Maximum number of records wanted
            timeout: Seconds this attempt may take

        Returns:
            Parsed records (may be empty)

        Raises:
            SourceError subclasses for provider failures
        """
        pass

    def _remaining(self, deadline: Optional[float]) -> float:
        if deadline is None:
            return self.config.timeout_seconds
        return max(min(self.config.timeout_seconds, deadline - time.monotonic()), 0.0)

    async def fetch(self, query: str, limit: int, deadline: Optional[float] = None) -> List[Record]:
        """
        Search this source and return at most `limit` normalized records.

        Args:
            query: Source-specific query string
            limit: Maximum number of records to return
            deadline: time.monotonic() value after which no attempt starts

        Raises:
            SourceError: on any provider failure, after retries
        """
        logger.info(f"Searching {self.name}: {query[:80]}...")
        records: List[Record] = []
        try:
            async for attempt in retrying(self.config.max_retries, deadline):
                with attempt:
                    timeout = self._remaining(deadline)
                    if timeout <= 0:
                        raise SourceTimeoutError(self.name, self.config.timeout_seconds)
                    await self.limiter.acquire()
                    records = await self._search(query, limit, timeout)
        except SourceError:
            raise
        except Exception as e:
            raise SourceError(self.name, f"unexpected error: {e}") from e

        logger.info(f"{self.name}: returned {len(records)} records")
        return records[:limit]

    def _build_record(self, **fields: Any) -> Optional[Record]:
        """Construct a Record, skipping items that cannot be normalized."""
        fields.setdefault("source_name", self.name)
        try:
            return Record(**fields)
        except ValidationError as e:
            logger.debug(f"{self.name}: skipping unparseable item ({e.error_count()} errors)")
            return None


class HTTPSource(BaseSource):
    """
    Base for JSON-over-HTTP providers using httpx.AsyncClient.

    A transport can be injected (e.g. httpx.MockTransport) for tests.
    """

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": USER_AGENT}

    async def _get_json(self, url: str, params: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        """
        GET a JSON document, translating transport and status failures
        into SourceError subclasses.
        """
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException:
            raise SourceTimeoutError(self.name, round(timeout, 2))
        except httpx.HTTPError as e:
            raise SourceError(self.name, f"network error: {e}")

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise SourceRateLimitError(self.name, int(retry_after) if retry_after and retry_after.isdigit() else None)
        if response.status_code in (401, 403):
            raise SourceAuthError(self.name, response.status_code)
        if response.status_code != 200:
            raise SourceHTTPError(self.name, response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise SourceParseError(self.name, str(e))


async def run_blocking(executor, func, *args):
    """Run a blocking provider client in a worker thread."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, func, *args)
