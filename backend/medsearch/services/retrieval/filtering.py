"""
Progressive filter pipeline.

Walks the configured tiers from strictest to most permissive. At each
tier every scored record meeting the tier's thresholds is eligible; the
first tier with at least `target` eligible records wins and its top
`target` records are returned. If even the last tier falls short, all of
its eligible records are returned and the outcome is flagged as a
shortfall. Ineligible records are never used as filler.

Ordering everywhere is composite_rank desc, evidence_quality desc,
canonical id asc.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from medsearch.core.logging import get_logger
from medsearch.schemas.events import ProgressStep
from medsearch.schemas.records import Record
from medsearch.schemas.results import TierReport
from medsearch.schemas.search import FilterTier
from .types import ProgressCallback, _noop_callback

logger = get_logger(__name__)


class FilterOutcome(BaseModel):
    records: List[Record] = Field(default_factory=list)
    eligible: List[Record] = Field(default_factory=list)  # Ranked pool of the tier reached
    tier_label: Optional[str] = None
    tier_index: Optional[int] = None
    tiers: List[TierReport] = Field(default_factory=list)
    target_met: bool = False


def rank_key(record: Record):
    scores = record.scores
    return (-scores.composite_rank, -scores.evidence_quality, record.record_id)


def rank_records(records: List[Record]) -> List[Record]:
    """Deterministic ranking of scored records."""
    return sorted(records, key=rank_key)


def passes_tier(record: Record, tier: FilterTier) -> bool:
    scores = record.scores
    if scores is None:
        return False
    if scores.topical_relevance < tier.min_topical_relevance:
        return False
    if scores.evidence_quality < tier.min_evidence_quality:
        return False
    if tier.require_medical_domain_match and not scores.medical_domain_match:
        return False
    return True


def apply_filter_tiers(
    records: List[Record],
    tiers: List[FilterTier],
    target: int,
    on_progress: ProgressCallback = _noop_callback,
) -> FilterOutcome:
    """
    Run the tier state machine over a scored pool.

    Args:
        records: Scored, deduplicated records
        tiers: Ordered strictest to most permissive
        target: Required output size

    Returns:
        FilterOutcome with the selected records and per-tier counts
    """
    on_progress(ProgressStep.FILTERING, "Applying filter tiers...", None)
    if not records or not tiers:
        return FilterOutcome()

    ranked = rank_records(records)
    reports: List[TierReport] = []
    eligible: List[Record] = []

    for index, tier in enumerate(tiers):
        eligible = [record for record in ranked if passes_tier(record, tier)]
        reports.append(TierReport(label=tier.label, eligible_count=len(eligible)))
        logger.info(f"Tier '{tier.label}': {len(eligible)} eligible (target {target})")

        if len(eligible) >= target:
            return FilterOutcome(
                records=eligible[:target],
                eligible=eligible,
                tier_label=tier.label,
                tier_index=index,
                tiers=reports,
                target_met=True,
            )

    logger.warning(f"All tiers exhausted: {len(eligible)} of {target} records available")
    return FilterOutcome(
        records=eligible,
        eligible=eligible,
        tier_label=tiers[-1].label,
        tier_index=len(tiers) - 1,
        tiers=reports,
        target_met=False,
    )
