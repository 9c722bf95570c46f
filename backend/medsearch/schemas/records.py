"""
Record Schemas

The normalized bibliographic record every source adapter produces.

Records are created by adapters, merged only by the deduplicator, and
given scores only by the scorer (which returns copies). The pipeline
never persists them.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from medsearch.tools.text_processing import normalize_doi, normalize_pmid, title_hash


class StudyType(str, Enum):
    """Inferred study design. Derived from provider labels and text, not authoritative."""
    META_ANALYSIS = "meta_analysis"
    SYSTEMATIC_REVIEW = "systematic_review"
    GUIDELINE = "guideline"
    RANDOMIZED_TRIAL = "randomized_trial"
    CLINICAL_TRIAL = "clinical_trial"
    COHORT = "cohort"
    CASE_CONTROL = "case_control"
    CROSS_SECTIONAL = "cross_sectional"
    REVIEW = "review"
    CASE_REPORT = "case_report"
    EXPERT_OPINION = "expert_opinion"
    PREPRINT = "preprint"
    UNKNOWN = "unknown"


class RecordIdentity(BaseModel):
    """
    Best-available stable identifiers for one publication.

    native_ids are namespaced provider identifiers such as "openalex:W2741809807",
    "s2:649def34...", "nct:NCT01234567" or "pmcid:PMC1234567".
    """
    doi: str = ""
    pmid: str = ""
    native_ids: List[str] = Field(default_factory=list)
    title_hash: str = ""

    @field_validator("doi", mode="before")
    @classmethod
    def _normalize_doi(cls, value):
        return normalize_doi(value)

    @field_validator("pmid", mode="before")
    @classmethod
    def _normalize_pmid(cls, value):
        return normalize_pmid(value)

    @field_validator("native_ids", mode="before")
    @classmethod
    def _clean_native_ids(cls, value):
        return sorted({str(v).strip() for v in (value or []) if v and str(v).strip()})

    @property
    def is_empty(self) -> bool:
        return not (self.doi or self.pmid or self.native_ids or self.title_hash)

    def canonical_id(self) -> str:
        """Single identifier string used for deterministic tie-breaks."""
        if self.doi:
            return f"doi:{self.doi}"
        if self.pmid:
            return f"pmid:{self.pmid}"
        if self.native_ids:
            return self.native_ids[0]
        return f"title:{self.title_hash}"


class Scores(BaseModel):
    topical_relevance: float = Field(ge=0.0, le=1.0)
    evidence_quality: float = Field(ge=0.0, le=1.0)
    composite_rank: float
    medical_domain_match: bool = False


class Record(BaseModel):
    """
    Standard record format used across all sources.

    Providers that do not supply a field leave it empty; nothing is
    fabricated. A record must carry at least one identity field, and the
    normalized-title hash is filled in automatically from the title.
    """
    identity: RecordIdentity = Field(default_factory=RecordIdentity)
    title: str
    abstract: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    venue: str = ""
    year: Optional[int] = None
    url: str = ""

    source_name: str  # Adapter that produced it (e.g., "PubMed", "OpenAlex")
    sources: List[str] = Field(default_factory=list)  # All contributing adapters after merge

    study_type: StudyType = StudyType.UNKNOWN
    publication_types: List[str] = Field(default_factory=list)
    citation_count: int = Field(default=0, ge=0)

    # Populated by the scorer
    scores: Optional[Scores] = None

    @field_validator("year", mode="before")
    @classmethod
    def _zero_year_is_unknown(cls, value):
        if value in (None, "", 0, "0"):
            return None
        return value

    @field_validator("citation_count", mode="before")
    @classmethod
    def _missing_citations_are_zero(cls, value):
        return value or 0

    @model_validator(mode="after")
    def _fill_identity(self) -> "Record":
        if not self.identity.title_hash:
            self.identity.title_hash = title_hash(self.title)
        if self.identity.is_empty:
            raise ValueError("record has no identifier and no usable title")
        if not self.sources:
            self.sources = [self.source_name]
        else:
            self.sources = sorted(set(self.sources) | {self.source_name})
        return self

    @property
    def record_id(self) -> str:
        return self.identity.canonical_id()

    @property
    def text(self) -> str:
        """Title and abstract, used for topical matching."""
        return f"{self.title} {self.abstract or ''}"
