"""
Search Schemas

The refined query handed to every adapter and the static configuration
surface of the pipeline: enabled sources with their budgets, the ordered
filter tiers, scoring weights, dedup and diversity tunables.

All numeric defaults are tuning values, not proven constants. Override
them per deployment rather than treating them as ground truth.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from medsearch.schemas.records import StudyType


class QueryStyle(str, Enum):
    """Query syntax family a provider expects."""
    PUBMED_BOOLEAN = "pubmed_boolean"  # Field-qualified boolean with MeSH tags
    BOOLEAN = "boolean"                # Boolean without controlled-vocabulary tags
    NATURAL = "natural"                # Natural-language keywords
    CONCEPT = "concept"                # Short phrase of key concepts


class Query(BaseModel):
    """
    The refined search request.

    target_result_count is fixed for the lifetime of a pipeline run; the
    model is frozen so no stage can change it.
    """
    model_config = ConfigDict(frozen=True)

    raw_text: str
    per_source_queries: Dict[str, str] = Field(default_factory=dict)
    target_result_count: int = Field(default=10, ge=1)
    max_per_source_fetch: Dict[str, int] = Field(default_factory=dict)

    # Refinement analysis, consumed by the scorer
    terms: List[str] = Field(default_factory=list)
    key_concepts: List[str] = Field(default_factory=list)
    intent: Optional[str] = None
    domains: List[str] = Field(default_factory=list)
    reference_year: Optional[int] = None

    def query_for(self, source_key: str) -> str:
        """Source-specific query string, or the raw text when none was produced."""
        return self.per_source_queries.get(source_key) or self.raw_text

    def limit_for(self, source_key: str, default: int = 20) -> int:
        return self.max_per_source_fetch.get(source_key, default)


class FilterTier(BaseModel):
    """One step of the progressive filter, strictest first."""
    label: str
    min_topical_relevance: float = Field(ge=0.0, le=1.0)
    min_evidence_quality: float = Field(ge=0.0, le=1.0)
    require_medical_domain_match: bool = True


class SourceConfig(BaseModel):
    """Per-source budget and limits."""
    enabled: bool = True
    max_results: int = Field(default=20, ge=1, le=200)
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=2, ge=0, le=5)
    rate_limit: str = "3/second"  # limits-style rate string


DEFAULT_STUDY_TYPE_RANKS: Dict[StudyType, float] = {
    StudyType.META_ANALYSIS: 1.0,
    StudyType.SYSTEMATIC_REVIEW: 0.95,
    StudyType.GUIDELINE: 0.9,
    StudyType.RANDOMIZED_TRIAL: 0.8,
    StudyType.CLINICAL_TRIAL: 0.65,
    StudyType.COHORT: 0.55,
    StudyType.CASE_CONTROL: 0.5,
    StudyType.CROSS_SECTIONAL: 0.4,
    StudyType.REVIEW: 0.35,
    StudyType.UNKNOWN: 0.3,
    StudyType.CASE_REPORT: 0.2,
    StudyType.EXPERT_OPINION: 0.15,
    StudyType.PREPRINT: 0.15,
}

DEFAULT_INTENT_RANK_OVERRIDES: Dict[str, Dict[StudyType, float]] = {
    "prognosis": {StudyType.COHORT: 0.8, StudyType.CASE_CONTROL: 0.6},
    "diagnosis": {StudyType.CROSS_SECTIONAL: 0.7, StudyType.COHORT: 0.7},
    "safety": {StudyType.COHORT: 0.7, StudyType.CASE_CONTROL: 0.6, StudyType.CASE_REPORT: 0.3},
}


class ScoringConfig(BaseModel):
    """
    Weights for the scorer.

    composite_rank = relevance_weight * topical_relevance
                   + evidence_weight * evidence_quality
    """
    relevance_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    evidence_weight: float = Field(default=0.4, ge=0.0, le=1.0)

    # Topical relevance components
    term_weight: float = Field(default=0.6, ge=0.0)
    domain_weight: float = Field(default=0.25, ge=0.0)
    phrase_weight: float = Field(default=0.15, ge=0.0)

    # Evidence quality components
    study_type_ranks: Dict[StudyType, float] = Field(
        default_factory=lambda: dict(DEFAULT_STUDY_TYPE_RANKS)
    )
    recency_half_life_years: float = Field(default=10.0, gt=0)
    recency_floor: float = Field(default=0.5, gt=0.0, le=1.0)
    citation_weight: float = Field(default=0.15, ge=0.0, le=1.0)
    citation_saturation: int = Field(default=1000, ge=1)

    # Observational designs are the right evidence for some intents
    intent_rank_overrides: Dict[str, Dict[StudyType, float]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_INTENT_RANK_OVERRIDES.items()}
    )

    @model_validator(mode="after")
    def _check_weights(self) -> "ScoringConfig":
        if abs(self.relevance_weight + self.evidence_weight - 1.0) > 1e-6:
            raise ValueError("relevance_weight and evidence_weight must sum to 1")
        if self.term_weight + self.domain_weight + self.phrase_weight <= 0:
            raise ValueError("at least one topical relevance weight must be positive")
        for study_type in StudyType:
            self.study_type_ranks.setdefault(study_type, DEFAULT_STUDY_TYPE_RANKS[study_type])
        return self

    def rank_for(self, study_type: StudyType, intent: Optional[str] = None) -> float:
        overrides = self.intent_rank_overrides.get(intent or "", {})
        return overrides.get(study_type, self.study_type_ranks[study_type])


class DedupConfig(BaseModel):
    title_similarity_threshold: float = Field(default=0.9, gt=0.0, le=1.0)
    year_tolerance: int = Field(default=1, ge=0)


class DiversityConfig(BaseModel):
    """Best-effort source rebalancing of the final list. window=0 disables it."""
    window: int = Field(default=0, ge=0)
    max_source_share: float = Field(default=0.6, gt=0.0, le=1.0)


DEFAULT_FILTER_TIERS = [
    FilterTier(label="strict", min_topical_relevance=0.5, min_evidence_quality=0.4, require_medical_domain_match=True),
    FilterTier(label="standard", min_topical_relevance=0.35, min_evidence_quality=0.25, require_medical_domain_match=True),
    FilterTier(label="relaxed", min_topical_relevance=0.2, min_evidence_quality=0.1, require_medical_domain_match=True),
    FilterTier(label="permissive", min_topical_relevance=0.1, min_evidence_quality=0.0, require_medical_domain_match=False),
]

DEFAULT_SOURCES: Dict[str, SourceConfig] = {
    "pubmed": SourceConfig(max_results=20, timeout_seconds=12.0, rate_limit="3/second"),
    "europe_pmc": SourceConfig(max_results=20, timeout_seconds=10.0, rate_limit="10/second"),
    "openalex": SourceConfig(max_results=20, timeout_seconds=10.0, rate_limit="10/second"),
    "semantic_scholar": SourceConfig(max_results=20, timeout_seconds=10.0, rate_limit="1/second"),
    "crossref": SourceConfig(max_results=20, timeout_seconds=10.0, rate_limit="5/second"),
    "clinical_trials": SourceConfig(max_results=10, timeout_seconds=10.0, rate_limit="5/second"),
}


class SearchConfig(BaseModel):
    """Static configuration supplied by the hosting application."""
    target_result_count: int = Field(default=10, ge=1, le=100)
    time_budget_seconds: float = Field(default=20.0, gt=0)
    sources: Dict[str, SourceConfig] = Field(
        default_factory=lambda: {k: v.model_copy() for k, v in DEFAULT_SOURCES.items()}
    )
    filter_tiers: List[FilterTier] = Field(
        default_factory=lambda: [t.model_copy() for t in DEFAULT_FILTER_TIERS]
    )
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    dedup: DedupConfig = Field(default_factory=DedupConfig)
    diversity: DiversityConfig = Field(default_factory=DiversityConfig)

    @field_validator("filter_tiers")
    @classmethod
    def _tiers_are_monotone(cls, tiers: List[FilterTier]) -> List[FilterTier]:
        if not tiers:
            raise ValueError("at least one filter tier is required")
        for previous, current in zip(tiers, tiers[1:]):
            if current.min_topical_relevance > previous.min_topical_relevance:
                raise ValueError(f"tier '{current.label}' raises min_topical_relevance")
            if current.min_evidence_quality > previous.min_evidence_quality:
                raise ValueError(f"tier '{current.label}' raises min_evidence_quality")
            if current.require_medical_domain_match and not previous.require_medical_domain_match:
                raise ValueError(f"tier '{current.label}' re-enables the medical domain requirement")
        return tiers

    @classmethod
    def default(cls) -> "SearchConfig":
        return cls()

    @property
    def enabled_sources(self) -> List[str]:
        return [key for key, source in self.sources.items() if source.enabled]
