"""
Result Schemas

What crosses the pipeline boundary: the ordered records plus a diagnostics
block owned by one pipeline invocation. Adapter-level failures appear here
as SourceReport entries, never as exceptions.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from medsearch.schemas.records import Record


class SourceStatus(str, Enum):
    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"


class SearchStatus(str, Enum):
    """Pipeline-level outcome."""
    COMPLETE = "complete"
    PARTIAL_FULFILLMENT = "partial_fulfillment"
    NO_RESULTS = "no_results"
    DEADLINE_EXCEEDED = "deadline_exceeded"


class SourceReport(BaseModel):
    """What one adapter contributed to this run."""
    name: str
    status: SourceStatus = SourceStatus.OK
    record_count: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status != SourceStatus.OK


class TierReport(BaseModel):
    label: str
    eligible_count: int


class Diagnostics(BaseModel):
    sources: List[SourceReport] = Field(default_factory=list)
    raw_record_count: int = 0
    unique_record_count: int = 0
    duplicates_collapsed: int = 0
    tier_reached: Optional[str] = None
    tier_index: Optional[int] = None
    tiers: List[TierReport] = Field(default_factory=list)
    eligible_count: int = 0
    source_contributions: Dict[str, int] = Field(default_factory=dict)  # Final list, per source
    deadline_exceeded: bool = False
    cached: bool = False
    elapsed_seconds: float = 0.0

    @property
    def failed_sources(self) -> List[str]:
        return [report.name for report in self.sources if report.failed]


class SearchResult(BaseModel):
    query: str
    status: SearchStatus
    target_result_count: int
    records: List[Record] = Field(default_factory=list)
    diagnostics: Diagnostics = Field(default_factory=Diagnostics)

    @computed_field
    @property
    def shortfall(self) -> int:
        """How many records short of the target the result is."""
        return max(self.target_result_count - len(self.records), 0)

    @property
    def is_empty(self) -> bool:
        return self.status in (SearchStatus.NO_RESULTS, SearchStatus.DEADLINE_EXCEEDED)
