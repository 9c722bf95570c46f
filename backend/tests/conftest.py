"""
Pytest fixtures and configuration for backend tests.

Provides reusable fixtures for testing API endpoints, services, and utilities.
"""
import asyncio
import os
import sys
from typing import List, Optional
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

REFERENCE_YEAR = 2024


@pytest.fixture(scope="session", autouse=True)
def set_test_environment():
    """Set environment variables for testing."""
    os.environ["REDIS_HOST"] = "localhost"
    os.environ["REDIS_PORT"] = "6379"
    os.environ["API_CONTACT_EMAIL"] = "tests@example.com"
    yield


@pytest.fixture
def mock_redis():
    """Mock Redis connection."""
    with patch("redis.from_url") as mock:
        mock_client = MagicMock()
        mock_client.ping.side_effect = Exception("Redis not available")
        mock.return_value = mock_client
        yield mock


@pytest.fixture
def sample_record():
    """Sample normalized record data for testing."""
    return {
        "identity": {"doi": "10.1000/dc.2021.0001", "pmid": "33445566"},
        "title": "Metformin for type 2 diabetes: a randomized controlled trial",
        "abstract": "Glycemic control and HbA1c outcomes with metformin in patients with type 2 diabetes.",
        "authors": ["Smith J", "Doe A"],
        "venue": "Diabetes Care",
        "year": REFERENCE_YEAR,
        "url": "https://pubmed.ncbi.nlm.nih.gov/33445566/",
        "source_name": "PubMed",
        "study_type": "randomized_trial",
        "publication_types": ["Journal Article", "Randomized Controlled Trial"],
        "citation_count": 120,
    }


@pytest.fixture
def make_record():
    """
    Factory for relevant metformin/diabetes records.

    Every record gets its own DOI so that near-identical titles are never
    merged by the deduplicator unless a test asks for it.
    """
    from medsearch.schemas.records import Record, StudyType

    def _make(index: int, source: str = "PubMed", doi: Optional[str] = None, **overrides) -> Record:
        fields = {
            "identity": {"doi": doi or f"10.1000/{source.lower()}.{index}"},
            "title": f"Metformin for type 2 diabetes randomized controlled trial {index}",
            "abstract": "Glycemic control and HbA1c outcomes with metformin in patients with type 2 diabetes.",
            "authors": ["Smith J"],
            "venue": "Diabetes Care",
            "year": REFERENCE_YEAR,
            "source_name": source,
            "study_type": StudyType.RANDOMIZED_TRIAL,
        }
        fields.update(overrides)
        return Record(**fields)

    return _make


@pytest.fixture
def make_irrelevant_record():
    """Factory for records that match no tier for a metformin query."""
    from medsearch.schemas.records import Record

    def _make(index: int, source: str = "CrossRef") -> Record:
        return Record(
            identity={"doi": f"10.2000/business.{index}"},
            title=f"Corporate strategy and competitive advantage in retail {index}",
            venue="Journal of Business Management",
            year=REFERENCE_YEAR,
            source_name=source,
        )

    return _make


@pytest.fixture
def fake_source_class():
    """An in-process adapter whose behaviour each test scripts."""
    from medsearch.schemas.search import QueryStyle, SourceConfig
    from medsearch.services.sources.base import BaseSource

    class FakeSource(BaseSource):
        query_style = QueryStyle.NATURAL

        def __init__(
            self,
            key: str,
            records: Optional[List] = None,
            error: Optional[Exception] = None,
            delay: float = 0.0,
            config: Optional[SourceConfig] = None,
        ):
            self.key = key
            self.name = key
            self.records = records or []
            self.error = error
            self.delay = delay
            self.calls = 0
            self.queries: List[str] = []
            super().__init__(config or SourceConfig(max_retries=0, rate_limit="100/second", timeout_seconds=5))

        async def _search(self, query: str, limit: int, timeout: float):
            self.calls += 1
            self.queries.append(query)
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error:
                raise self.error
            return list(self.records)

    return FakeSource


@pytest.fixture
def sample_search_result(make_record):
    """A complete SearchResult for API and cache tests."""
    from medsearch.schemas.results import Diagnostics, SearchResult, SearchStatus, SourceReport

    records = [make_record(i) for i in range(3)]
    return SearchResult(
        query="metformin type 2 diabetes",
        status=SearchStatus.COMPLETE,
        target_result_count=3,
        records=records,
        diagnostics=Diagnostics(
            sources=[SourceReport(name="PubMed", record_count=3)],
            raw_record_count=3,
            unique_record_count=3,
            tier_reached="strict",
            tier_index=0,
            eligible_count=3,
            source_contributions={"PubMed": 3},
        ),
    )


@pytest.fixture
def test_client():
    """Create a test client for API testing."""
    # Import here to avoid circular imports
    from medsearch.main import app
    from medsearch.core.dependencies import get_cache
    from medsearch.core.rate_limit import limiter
    from medsearch.services.cache import SearchCache

    app.dependency_overrides[get_cache] = lambda: SearchCache(use_redis=False)
    limiter.enabled = False

    with TestClient(app) as client:
        yield client

    limiter.enabled = True
    app.dependency_overrides.clear()
