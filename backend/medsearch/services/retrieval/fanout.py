"""
Fan-out coordinator.

Runs every adapter concurrently under one overall deadline. Each adapter
gets a sub-deadline of min(its own timeout, remaining overall budget);
calls still in flight when it expires are cancelled and their source is
reported as timed out. Adapter errors are absorbed into SourceReports.
The coordinator never retries: retries live inside each adapter.
"""
import asyncio
import time
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from medsearch.core.exceptions import SourceError, SourceTimeoutError
from medsearch.core.logging import get_logger
from medsearch.schemas.events import ProgressStep
from medsearch.schemas.records import Record
from medsearch.schemas.results import SourceReport, SourceStatus
from medsearch.schemas.search import Query
from medsearch.services.sources.base import BaseSource
from .types import ProgressCallback, _noop_callback, deadline_after, seconds_left

logger = get_logger(__name__)


class FanOutResult(BaseModel):
    """Raw pool from one gather plus what each source contributed."""
    records: List[Record] = Field(default_factory=list)
    reports: List[SourceReport] = Field(default_factory=list)
    deadline_exceeded: bool = False

    @property
    def failed_count(self) -> int:
        return sum(1 for report in self.reports if report.failed)


async def _run_source(
    source: BaseSource,
    query: Query,
    overall_deadline: float,
) -> Tuple[SourceReport, List[Record]]:
    started = time.monotonic()
    deadline = min(deadline_after(source.config.timeout_seconds), overall_deadline)
    limit = query.limit_for(source.key, source.config.max_results)

    def report(status: SourceStatus, count: int = 0, error: Optional[BaseException] = None) -> SourceReport:
        return SourceReport(
            name=source.name,
            status=status,
            record_count=count,
            error=str(error) if error else None,
            error_type=type(error).__name__ if error else None,
            elapsed_seconds=round(time.monotonic() - started, 3),
        )

    try:
        records = await asyncio.wait_for(
            source.fetch(query.query_for(source.key), limit, deadline),
            timeout=seconds_left(deadline),
        )
    except asyncio.TimeoutError:
        logger.warning(f"{source.name} cancelled at its deadline")
        return report(SourceStatus.TIMEOUT, error=SourceTimeoutError(source.name, round(deadline - started, 2))), []
    except SourceTimeoutError as e:
        logger.warning(f"{source.name} timed out: {e.message}")
        return report(SourceStatus.TIMEOUT, error=e), []
    except SourceError as e:
        logger.warning(f"{source.name} failed: {e.message}")
        return report(SourceStatus.ERROR, error=e), []

    records = records[:limit]
    return report(SourceStatus.OK, len(records)), records


async def gather_records(
    query: Query,
    sources: List[BaseSource],
    time_budget: float,
    on_progress: ProgressCallback = _noop_callback,
) -> FanOutResult:
    """
    Invoke all adapters concurrently and collect whatever arrives in time.

    Args:
        query: Refined query (per-source strings and fetch limits)
        sources: Adapters to run
        time_budget: Overall seconds for the whole gather
        on_progress: Callback for progress updates

    Returns:
        FanOutResult. Never raises for adapter failures; an empty pool is
        a valid outcome.
    """
    on_progress(ProgressStep.SEARCHING, f"Searching {len(sources)} sources...", None)
    if not sources:
        return FanOutResult()

    overall_deadline = deadline_after(time_budget)
    outcomes = await asyncio.gather(*(_run_source(s, query, overall_deadline) for s in sources))

    records: List[Record] = []
    reports: List[SourceReport] = []
    for report, source_records in outcomes:
        reports.append(report)
        records.extend(source_records)
        on_progress(
            ProgressStep.SEARCHING,
            f"{report.name}: {report.status.value}",
            f"Found {report.record_count} records",
        )

    deadline_exceeded = all(r.status == SourceStatus.TIMEOUT for r in reports)
    failed = sum(1 for r in reports if r.failed)
    logger.info(f"Fan-out: {len(records)} raw records from {len(reports) - failed}/{len(reports)} sources")
    return FanOutResult(records=records, reports=reports, deadline_exceeded=deadline_exceeded)
