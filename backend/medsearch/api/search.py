"""
Search API Routes

FastAPI routes exposing the evidence search pipeline, as one JSON
response or as a Server-Sent Events progress stream.
"""
import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from medsearch.core.dependencies import get_cache, get_search_config
from medsearch.core.exceptions import ConfigurationError
from medsearch.core.logging import get_logger
from medsearch.core.rate_limit import SEARCH_LIMIT, limiter
from medsearch.schemas.events import ProgressStep, progress_event
from medsearch.schemas.results import SearchResult
from medsearch.schemas.search import SearchConfig
from medsearch.services.cache import SearchCache
from medsearch.services.retrieval import search as run_pipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["search"])


class SearchRequest(BaseModel):
    """Request body for a search."""
    query: str = Field(..., min_length=3, max_length=500, description="Free-text clinical question")
    target_result_count: Optional[int] = Field(default=None, ge=1, le=100)
    time_budget_seconds: Optional[float] = Field(default=None, gt=0, le=120)


@router.post("/search", response_model=SearchResult)
@limiter.limit(SEARCH_LIMIT)
async def search_literature(
    request: Request,
    body: SearchRequest,
    config: SearchConfig = Depends(get_search_config),
    cache: SearchCache = Depends(get_cache),
):
    """
    Search all enabled sources and return a ranked, deduplicated record list.

    The response status tells the caller how the search ended:
    - complete: exactly target_result_count records
    - partial_fulfillment: fewer records; see shortfall and diagnostics.tier_reached
    - no_results: no source returned anything
    - deadline_exceeded: every source timed out
    """
    try:
        return await run_pipeline(
            body.query,
            target_result_count=body.target_result_count,
            time_budget=body.time_budget_seconds,
            config=config,
            cache=cache,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/search/stream")
@limiter.limit(SEARCH_LIMIT)
async def search_literature_stream(
    request: Request,
    body: SearchRequest,
    config: SearchConfig = Depends(get_search_config),
    cache: SearchCache = Depends(get_cache),
):
    """
    Run a search and stream its progress as Server-Sent Events.

    Events:
    - progress: one per pipeline step (step, message, detail, progress_percent)
    - result: the final SearchResult
    - error: a configuration error that stopped the search
    - complete: end of stream, with the outcome status
    """
    queue: asyncio.Queue = asyncio.Queue()

    def on_progress(step: ProgressStep, message: str, detail: Optional[str] = None):
        queue.put_nowait(progress_event(step, message, detail))

    async def run() -> SearchResult:
        try:
            return await run_pipeline(
                body.query,
                target_result_count=body.target_result_count,
                time_budget=body.time_budget_seconds,
                config=config,
                cache=cache,
                on_progress=on_progress,
            )
        finally:
            queue.put_nowait(None)

    async def event_generator():
        task = asyncio.create_task(run())
        while True:
            event = await queue.get()
            if event is None:
                break
            yield f"event: progress\ndata: {event.model_dump_json()}\n\n"

        try:
            result = await task
        except ConfigurationError as e:
            logger.warning(f"Streamed search rejected: {e}")
            yield f"event: error\ndata: {json.dumps({'error': str(e)})}\n\n"
            return

        yield f"event: result\ndata: {result.model_dump_json()}\n\n"
        yield f"event: complete\ndata: {json.dumps({'status': result.status.value})}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
    )
