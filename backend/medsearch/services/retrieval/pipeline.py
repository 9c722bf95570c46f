"""
Main search pipeline.

Orchestrates one evidence search:
1. Query refinement (one query per source)
2. Parallel source fetching under a shared deadline
3. Cross-source deduplication
4. Scoring (topical relevance, evidence quality, composite rank)
5. Progressive filter tiers until the target count is reached
6. Result assembly with diagnostics

Only pipeline-level outcomes leave this module: the SearchResult status
is complete, partial_fulfillment, no_results or deadline_exceeded.
Provider failures show up in diagnostics, never as exceptions.
"""
import asyncio
import time
from typing import List, Optional

from medsearch.core.exceptions import ConfigurationError
from medsearch.core.logging import get_logger
from medsearch.schemas.events import ProgressStep
from medsearch.schemas.results import SearchResult
from medsearch.schemas.search import SearchConfig
from medsearch.services.cache import SearchCache, cache_key
from medsearch.services.sources import BaseSource, build_sources

from .assembler import assemble_result
from .dedup import deduplicate_records
from .fanout import gather_records
from .filtering import apply_filter_tiers
from .query_refiner import refine_query
from .scoring import score_records
from .types import ProgressCallback, _noop_callback
from .vocabulary import DEFAULT_TERMS, TermTables

logger = get_logger(__name__)


async def search(
    raw_query: str,
    target_result_count: Optional[int] = None,
    time_budget: Optional[float] = None,
    config: Optional[SearchConfig] = None,
    sources: Optional[List[BaseSource]] = None,
    cache: Optional[SearchCache] = None,
    tables: TermTables = DEFAULT_TERMS,
    reference_year: Optional[int] = None,
    on_progress: ProgressCallback = _noop_callback,
) -> SearchResult:
    """
    Run the full evidence search for one query.

    Args:
        raw_query: The user's question
        target_result_count: Records promised to the caller (default from config)
        time_budget: Seconds for the whole fan-out (default from config)
        config: Static pipeline configuration
        sources: Adapters to use (default: every enabled adapter in config)
        cache: Optional result cache in front of the pipeline
        tables: Vocabulary tables for refinement and scoring
        reference_year: Year recency is measured against (default: this year)
        on_progress: Callback function for progress updates

    Returns:
        SearchResult with ordered records, status and diagnostics

    Raises:
        ConfigurationError: for an unusable target, budget or source set
    """
    config = config or SearchConfig.default()
    target = target_result_count if target_result_count is not None else config.target_result_count
    budget = time_budget if time_budget is not None else config.time_budget_seconds
    if target < 1:
        raise ConfigurationError(f"target_result_count must be at least 1, got {target}")
    if budget <= 0:
        raise ConfigurationError(f"time_budget must be positive, got {budget}")
    if sources is None:
        sources = build_sources(config)

    logger.info(f"\n{'='*60}")
    logger.info(f"EVIDENCE SEARCH: {raw_query}")
    logger.info(f"Target: {target} records, budget {budget:.1f}s, sources: {', '.join(s.name for s in sources)}")
    logger.info(f"{'='*60}")

    key = cache_key(raw_query, target, [s.key for s in sources])
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            logger.info("Returning cached result")
            on_progress(ProgressStep.COMPLETE, "Complete (cached)", f"{len(cached.records)} records")
            return cached

    start_time = time.monotonic()

    query = refine_query(
        raw_query,
        query_styles={s.key: s.query_style for s in sources},
        config=config,
        target_result_count=target,
        tables=tables,
        reference_year=reference_year,
        on_progress=on_progress,
    )

    fanout = await gather_records(query, sources, budget, on_progress)
    logger.info(f"---TOTAL CANDIDATES: {len(fanout.records)} (fetched in {time.monotonic() - start_time:.1f}s)---")

    unique = deduplicate_records(fanout.records, config.dedup, on_progress)
    on_progress(ProgressStep.DEDUPLICATING, "Removed duplicates", f"{len(unique)} unique records")

    scored = score_records(unique, query, config.scoring, tables, on_progress)
    outcome = apply_filter_tiers(scored, config.filter_tiers, target, on_progress)

    result = assemble_result(
        raw_query=query.raw_text,
        target=target,
        fanout=fanout,
        unique_count=len(unique),
        outcome=outcome,
        diversity=config.diversity,
        elapsed_seconds=time.monotonic() - start_time,
        on_progress=on_progress,
    )

    if cache is not None:
        cache.set(key, result)

    on_progress(ProgressStep.COMPLETE, "Complete", f"{len(result.records)} records ({result.status.value})")

    for i, record in enumerate(result.records, 1):
        scores = record.scores
        logger.debug(f"{i}. [{record.year}] {record.title[:60]}...")
        logger.debug(
            f"   {record.study_type.value}, sources={record.sources}, "
            f"rel={scores.topical_relevance:.2f} ev={scores.evidence_quality:.2f} rank={scores.composite_rank:.3f}"
        )
    return result


def run_search(raw_query: str, **kwargs) -> SearchResult:
    """
    Sync wrapper around search().

    Uses asyncio.run(), so it must be called from a thread without a
    running event loop (e.g. a worker thread or a script).
    """
    return asyncio.run(search(raw_query, **kwargs))
