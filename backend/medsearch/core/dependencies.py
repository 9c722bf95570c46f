"""
FastAPI Dependencies

FastAPI dependency injection for services and configuration.
Using Depends() pattern makes testing easier: tests swap any of these
through app.dependency_overrides.
"""
from functools import lru_cache

from medsearch.core.config import Settings
from medsearch.schemas.search import SearchConfig
from medsearch.services.cache import SearchCache


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache()
def get_cache() -> SearchCache:
    """
    Get the search result cache instance.

    Uses lru_cache to ensure only one cache instance is created.
    Can be overridden in tests to use an in-memory cache:

        app.dependency_overrides[get_cache] = lambda: SearchCache(use_redis=False)
    """
    return SearchCache()


@lru_cache()
def get_search_config() -> SearchConfig:
    """
    Get the static pipeline configuration (tiers, source budgets, weights).

    Override to change which sources run or how strict the tiers are.
    """
    return SearchConfig.default()
