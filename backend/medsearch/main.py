"""
FastAPI Application Entry Point

Medical Evidence Search API
"""
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from medsearch.core.config import settings
from medsearch.core.dependencies import get_cache, get_search_config
from medsearch.core.rate_limit import SEARCH_LIMIT, limiter, rate_limit_exceeded_handler
from medsearch.api.search import router as search_router
from medsearch.schemas.search import SearchConfig
from medsearch.services.cache import SearchCache

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Multi-source biomedical literature search with deduplication, evidence scoring and progressive filtering",
    version="1.0.0"
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.include_router(search_router)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"]
)


@app.get("/")
async def health_check(
    cache: SearchCache = Depends(get_cache),
    config: SearchConfig = Depends(get_search_config),
):
    """Service status, cache backend and the enabled source budgets."""
    return {
        "status": "active",
        "project": settings.PROJECT_NAME,
        "version": "1.0.0",
        "cache": {
            "type": "redis" if cache.is_connected else "in-memory",
            "connected": cache.is_connected
        },
        "sources": {
            key: {
                "max_results": config.sources[key].max_results,
                "timeout_seconds": config.sources[key].timeout_seconds,
                "rate_limit": config.sources[key].rate_limit,
            }
            for key in config.enabled_sources
        },
        "search": {
            "endpoint": "/api/search",
            "rate_limit": SEARCH_LIMIT,
            "default_target": config.target_result_count,
            "default_time_budget_seconds": config.time_budget_seconds,
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
