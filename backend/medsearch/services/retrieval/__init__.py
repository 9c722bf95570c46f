"""
Evidence Aggregation and Ranking Pipeline

This package turns one free-text question into a ranked, deduplicated
list of bibliographic records by:
1. Refining the query for each source's syntax
2. Fetching from all enabled sources concurrently under one deadline
3. Collapsing cross-source duplicates
4. Scoring topical relevance and evidence quality
5. Relaxing filter tiers until the target count is reached
6. Assembling the result with diagnostics

Package Structure:
- pipeline.py: search() orchestration and the sync run_search() wrapper
- query_refiner.py: table-driven per-source query building
- vocabulary.py: term tables (synonyms, MeSH, domains, intents)
- fanout.py: concurrent adapter coordination
- dedup.py: identity clustering and field merge
- scoring.py: relevance, evidence and composite scores
- filtering.py: progressive filter tiers
- assembler.py: final ordering, status and diagnostics
- types.py: Common types
"""

# Main pipeline function - primary public interface
from .pipeline import search, run_search

# Individual components for advanced usage
from .query_refiner import refine_query
from .fanout import gather_records, FanOutResult
from .dedup import deduplicate_records
from .scoring import score_record, score_records
from .filtering import apply_filter_tiers, FilterOutcome
from .assembler import assemble_result
from .vocabulary import DEFAULT_TERMS, TermTables

# Types for callers
from .types import ProgressCallback, _noop_callback

__all__ = [
    # Main pipeline
    "search",
    "run_search",

    # Components
    "refine_query",
    "gather_records",
    "FanOutResult",
    "deduplicate_records",
    "score_record",
    "score_records",
    "apply_filter_tiers",
    "FilterOutcome",
    "assemble_result",
    "DEFAULT_TERMS",
    "TermTables",

    # Types
    "ProgressCallback",
]
