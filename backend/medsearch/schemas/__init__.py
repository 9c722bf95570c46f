"""
Schemas Module

Contains all Pydantic models (DTOs) for:
- Normalized records and their scores
- The refined query and pipeline configuration
- Search results and diagnostics
- Progress events
"""
from .records import StudyType, RecordIdentity, Scores, Record
from .search import (
    QueryStyle,
    Query,
    FilterTier,
    SourceConfig,
    ScoringConfig,
    DedupConfig,
    DiversityConfig,
    SearchConfig,
)
from .results import (
    SourceStatus,
    SearchStatus,
    SourceReport,
    TierReport,
    Diagnostics,
    SearchResult,
)
from .events import (
    ProgressStep,
    ProgressEvent,
    STEP_CONFIG,
    progress_event,
)

__all__ = [
    "StudyType",
    "RecordIdentity",
    "Scores",
    "Record",
    "QueryStyle",
    "Query",
    "FilterTier",
    "SourceConfig",
    "ScoringConfig",
    "DedupConfig",
    "DiversityConfig",
    "SearchConfig",
    "SourceStatus",
    "SearchStatus",
    "SourceReport",
    "TierReport",
    "Diagnostics",
    "SearchResult",
    "ProgressStep",
    "ProgressEvent",
    "STEP_CONFIG",
    "progress_event",
]
