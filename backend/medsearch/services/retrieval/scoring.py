"""
Record scoring.

Computes, per record:
- topical_relevance: query-term coverage, domain vocabulary, title phrase bonus
- evidence_quality: study-type rank decayed by age toward a floor, plus a
  log-scaled citation component
- composite_rank: fixed-weight blend of the two (60/40 by default)
- medical_domain_match: whether the record is plausibly clinical literature
  for this query

score_record is a pure function of (record, query, config, tables). The
query carries its own reference year, so results never depend on the
wall clock.
"""
import math
from typing import List, Optional

from medsearch.core.logging import get_logger
from medsearch.schemas.events import ProgressStep
from medsearch.schemas.records import Record, Scores
from medsearch.schemas.search import Query, ScoringConfig
from medsearch.tools.text_processing import normalize_title, stem, tokenize
from .types import ProgressCallback, _noop_callback
from .vocabulary import DEFAULT_TERMS, TermTables, contains_term, count_terms

logger = get_logger(__name__)

DOMAIN_HITS_FOR_FULL_SCORE = 3
MIN_GENERAL_MEDICAL_TERMS = 2


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def _term_coverage(normalized_text: str, stems: set, terms: List[str]) -> float:
    if not terms:
        return 0.0
    matched = 0
    for term in terms:
        normalized_term = normalize_title(term)
        if contains_term(normalized_text, term) or stem(normalized_term) in stems:
            matched += 1
    return matched / len(terms)


def _domain_terms(query: Query, tables: TermTables) -> List[str]:
    vocabulary: List[str] = []
    for domain in query.domains:
        vocabulary.extend(tables.domain_vocabulary(domain))
    return vocabulary


def _phrase_bonus(normalized_title: str, query: Query) -> float:
    """1.0 for the whole query in the title, else the share of key concepts in it."""
    if not normalized_title:
        return 0.0
    whole = normalize_title(query.raw_text)
    if whole and contains_term(normalized_title, whole):
        return 1.0
    if not query.key_concepts:
        return 0.0
    found = sum(1 for concept in query.key_concepts if contains_term(normalized_title, concept))
    return found / len(query.key_concepts)


def topical_relevance(record: Record, query: Query, config: ScoringConfig, tables: TermTables) -> float:
    text = normalize_title(record.text)
    stems = {stem(token) for token in tokenize(text)}
    coverage = _term_coverage(text, stems, query.terms)

    vocabulary = _domain_terms(query, tables)
    if vocabulary:
        domain = min(count_terms(text, vocabulary) / DOMAIN_HITS_FOR_FULL_SCORE, 1.0)
    else:
        # No domain detected in the query: fall back to term coverage
        domain = coverage

    phrase = _phrase_bonus(normalize_title(record.title), query)

    total_weight = config.term_weight + config.domain_weight + config.phrase_weight
    score = (
        config.term_weight * coverage
        + config.domain_weight * domain
        + config.phrase_weight * phrase
    ) / total_weight
    return _clamp(score)


def recency_factor(year: Optional[int], reference_year: Optional[int], config: ScoringConfig) -> float:
    """Exponential decay by age with a floor; unknown years get the floor."""
    if year is None:
        return config.recency_floor
    if reference_year is None:
        return 1.0
    age = max(reference_year - year, 0)
    return max(config.recency_floor, 0.5 ** (age / config.recency_half_life_years))


def citation_factor(citation_count: int, config: ScoringConfig) -> float:
    """Logarithmic, saturating at config.citation_saturation citations."""
    if citation_count <= 0:
        return 0.0
    return min(math.log1p(citation_count) / math.log1p(config.citation_saturation), 1.0)


def evidence_quality(record: Record, query: Query, config: ScoringConfig) -> float:
    rank = config.rank_for(record.study_type, query.intent)
    recency = recency_factor(record.year, query.reference_year, config)
    citations = citation_factor(record.citation_count, config)
    score = (1 - config.citation_weight) * rank * recency + config.citation_weight * citations
    return _clamp(score)


def medical_domain_match(record: Record, query: Query, tables: TermTables) -> bool:
    text = normalize_title(f"{record.text} {record.venue}")
    vocabulary = _domain_terms(query, tables)
    if vocabulary and count_terms(text, vocabulary):
        return True
    if count_terms(text, tables.non_medical_terms):
        return False
    return count_terms(text, tables.general_medical_terms) >= MIN_GENERAL_MEDICAL_TERMS


def score_record(
    record: Record,
    query: Query,
    config: Optional[ScoringConfig] = None,
    tables: TermTables = DEFAULT_TERMS,
) -> Record:
    """
    Score one record against a query.

    Returns:
        A copy of the record with scores populated; the input is not modified.
    """
    config = config or ScoringConfig()
    relevance = round(topical_relevance(record, query, config, tables), 6)
    evidence = round(evidence_quality(record, query, config), 6)
    composite = round(config.relevance_weight * relevance + config.evidence_weight * evidence, 6)

    scores = Scores(
        topical_relevance=relevance,
        evidence_quality=evidence,
        composite_rank=composite,
        medical_domain_match=medical_domain_match(record, query, tables),
    )
    return record.model_copy(update={"scores": scores})


def score_records(
    records: List[Record],
    query: Query,
    config: Optional[ScoringConfig] = None,
    tables: TermTables = DEFAULT_TERMS,
    on_progress: ProgressCallback = _noop_callback,
) -> List[Record]:
    on_progress(ProgressStep.SCORING, f"Scoring {len(records)} records...", None)
    scored = [score_record(record, query, config, tables) for record in records]
    if scored:
        top = max(r.scores.composite_rank for r in scored)
        logger.info(f"Scored {len(scored)} records (top composite {top:.3f})")
    return scored
