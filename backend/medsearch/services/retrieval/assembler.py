"""
Result assembly.

Turns the filter outcome into the SearchResult handed to the caller:
final ordering (with optional source-diversity rebalancing), the
pipeline-level status, and the diagnostics block.
"""
import math
from typing import Dict, List, Optional

from medsearch.core.logging import get_logger
from medsearch.schemas.events import ProgressStep
from medsearch.schemas.records import Record
from medsearch.schemas.results import Diagnostics, SearchResult, SearchStatus
from medsearch.schemas.search import DiversityConfig
from .fanout import FanOutResult
from .filtering import FilterOutcome
from .types import ProgressCallback, _noop_callback

logger = get_logger(__name__)


def rebalance_for_diversity(pool: List[Record], size: int, config: DiversityConfig) -> List[Record]:
    """
    Pick `size` records from a ranked pool, limiting any one source's share.

    When the next record's source is already at its cap, the best record
    from another source within the next `config.window` positions is taken
    instead. If none exists, rank order wins. window=0 returns pool[:size].

    Each record takes one slot of its primary source_name only, even when
    it was merged from several sources; source_contributions() still
    credits every contributing source.
    """
    if config.window <= 0 or size <= 0:
        return pool[:size]

    cap = max(1, math.ceil(config.max_source_share * size))
    remaining = list(pool)
    selected: List[Record] = []
    counts: Dict[str, int] = {}

    while remaining and len(selected) < size:
        pick = 0
        if counts.get(remaining[0].source_name, 0) >= cap:
            for offset in range(1, min(config.window, len(remaining) - 1) + 1):
                if counts.get(remaining[offset].source_name, 0) < cap:
                    pick = offset
                    break
        record = remaining.pop(pick)
        counts[record.source_name] = counts.get(record.source_name, 0) + 1
        selected.append(record)
    return selected


def source_contributions(records: List[Record]) -> Dict[str, int]:
    """How many final records each source contributed to (merged records count for every source)."""
    counts: Dict[str, int] = {}
    for record in records:
        for source in record.sources:
            counts[source] = counts.get(source, 0) + 1
    return dict(sorted(counts.items()))


def _status(fanout: FanOutResult, outcome: FilterOutcome) -> SearchStatus:
    if not fanout.records:
        if fanout.deadline_exceeded:
            return SearchStatus.DEADLINE_EXCEEDED
        return SearchStatus.NO_RESULTS
    if outcome.target_met:
        return SearchStatus.COMPLETE
    return SearchStatus.PARTIAL_FULFILLMENT


def assemble_result(
    raw_query: str,
    target: int,
    fanout: FanOutResult,
    unique_count: int,
    outcome: FilterOutcome,
    diversity: Optional[DiversityConfig] = None,
    elapsed_seconds: float = 0.0,
    on_progress: ProgressCallback = _noop_callback,
) -> SearchResult:
    """
    Build the final SearchResult.

    Args:
        raw_query: The caller's query text
        target: Target result count for this run
        fanout: Raw pool and per-source reports
        unique_count: Records left after deduplication
        outcome: Filter pipeline outcome
        diversity: Optional rebalancing settings
        elapsed_seconds: Wall time of the run so far
    """
    on_progress(ProgressStep.ASSEMBLING, "Assembling results...", None)
    diversity = diversity or DiversityConfig()

    if outcome.target_met:
        records = rebalance_for_diversity(outcome.eligible, target, diversity)
    else:
        records = list(outcome.records)

    status = _status(fanout, outcome)
    raw_count = len(fanout.records)
    diagnostics = Diagnostics(
        sources=fanout.reports,
        raw_record_count=raw_count,
        unique_record_count=unique_count,
        duplicates_collapsed=raw_count - unique_count,
        tier_reached=outcome.tier_label,
        tier_index=outcome.tier_index,
        tiers=outcome.tiers,
        eligible_count=len(outcome.eligible),
        source_contributions=source_contributions(records),
        deadline_exceeded=fanout.deadline_exceeded,
        elapsed_seconds=round(elapsed_seconds, 3),
    )

    logger.info(
        f"Result: {status.value}, {len(records)}/{target} records, "
        f"tier={outcome.tier_label}, duplicates={diagnostics.duplicates_collapsed}"
    )
    return SearchResult(
        query=raw_query,
        status=status,
        target_result_count=target,
        records=records,
        diagnostics=diagnostics,
    )
