"""Tests for services/retrieval/scoring.py - Relevance and evidence scoring."""
import pytest


@pytest.fixture
def query():
    """Refined metformin query with a fixed reference year."""
    from medsearch.services.retrieval.query_refiner import refine_query

    return refine_query("metformin type 2 diabetes", query_styles={}, reference_year=2024)


class TestTopicalRelevance:
    """Test topical relevance."""

    def test_on_topic_record_scores_high(self, query, make_record):
        """A record covering every query term should score near 1."""
        from medsearch.services.retrieval.scoring import score_record

        scored = score_record(make_record(1), query)
        assert scored.scores.topical_relevance > 0.9
        assert scored.scores.medical_domain_match is True

    def test_off_topic_record_scores_zero(self, query, make_irrelevant_record):
        """A business paper shares nothing with a metformin query."""
        from medsearch.services.retrieval.scoring import score_record

        scored = score_record(make_irrelevant_record(1), query)
        assert scored.scores.topical_relevance == 0.0
        assert scored.scores.medical_domain_match is False

    def test_plural_forms_match(self, query):
        """'diabetes' terms should match inflected record text."""
        from medsearch.schemas.records import Record
        from medsearch.services.retrieval.scoring import score_record

        record = Record(title="Metformins in types of diabetes", source_name="OpenAlex")
        assert score_record(record, query).scores.topical_relevance > 0.3

    def test_partial_match_ranks_between(self, query, make_record, make_irrelevant_record):
        """A record mentioning only some terms should sit between the extremes."""
        from medsearch.schemas.records import Record
        from medsearch.services.retrieval.scoring import score_record

        partial = Record(title="Metformin pharmacokinetics in healthy volunteers", source_name="PubMed")
        full = score_record(make_record(1), query).scores.topical_relevance
        none = score_record(make_irrelevant_record(1), query).scores.topical_relevance
        middle = score_record(partial, query).scores.topical_relevance
        assert none < middle < full


class TestEvidenceQuality:
    """Test evidence quality."""

    def test_study_type_hierarchy(self, query, make_record):
        """A meta-analysis should outscore a case report of the same age."""
        from medsearch.schemas.records import StudyType
        from medsearch.services.retrieval.scoring import score_record

        meta = score_record(make_record(1, study_type=StudyType.META_ANALYSIS), query)
        case = score_record(make_record(2, study_type=StudyType.CASE_REPORT), query)
        assert meta.scores.evidence_quality > case.scores.evidence_quality

    def test_older_records_decay(self, query, make_record):
        """The same design published earlier should score lower."""
        from medsearch.services.retrieval.scoring import score_record

        recent = score_record(make_record(1, year=2024), query)
        older = score_record(make_record(2, year=2009), query)
        assert recent.scores.evidence_quality > older.scores.evidence_quality

    def test_recency_floor(self):
        """Very old or undated records should not decay below the floor."""
        from medsearch.schemas.search import ScoringConfig
        from medsearch.services.retrieval.scoring import recency_factor

        config = ScoringConfig()
        assert recency_factor(1950, 2024, config) == config.recency_floor
        assert recency_factor(None, 2024, config) == config.recency_floor
        assert recency_factor(2024, 2024, config) == 1.0
        assert recency_factor(2014, 2024, config) == pytest.approx(0.5)

    def test_citation_factor_saturates(self):
        """Citations should help logarithmically and cap at 1."""
        from medsearch.schemas.search import ScoringConfig
        from medsearch.services.retrieval.scoring import citation_factor

        config = ScoringConfig()
        assert citation_factor(0, config) == 0.0
        assert citation_factor(1000, config) == pytest.approx(1.0)
        assert citation_factor(50000, config) == 1.0
        assert 0 < citation_factor(10, config) < citation_factor(100, config) < 1

    def test_intent_changes_rank(self, make_record):
        """A prognosis question should value cohort evidence more."""
        from medsearch.schemas.records import StudyType
        from medsearch.schemas.search import Query
        from medsearch.services.retrieval.scoring import score_record

        cohort = make_record(1, study_type=StudyType.COHORT)
        plain = Query(raw_text="metformin", terms=["metformin"], reference_year=2024)
        prognosis = plain.model_copy(update={"intent": "prognosis"})

        assert (score_record(cohort, prognosis).scores.evidence_quality
                > score_record(cohort, plain).scores.evidence_quality)


class TestScoreRecord:
    """Test the composite and the scoring contract."""

    def test_scores_are_bounded(self, query, make_record):
        """Relevance and evidence should stay within [0, 1]."""
        from medsearch.schemas.records import StudyType
        from medsearch.services.retrieval.scoring import score_records

        records = [make_record(i, study_type=t, citation_count=10 ** i) for i, t in enumerate(StudyType)]
        for record in score_records(records, query):
            assert 0.0 <= record.scores.topical_relevance <= 1.0
            assert 0.0 <= record.scores.evidence_quality <= 1.0

    def test_composite_is_weighted_blend(self, query, make_record):
        """composite_rank should be 0.6 relevance + 0.4 evidence by default."""
        from medsearch.services.retrieval.scoring import score_record

        scores = score_record(make_record(1), query).scores
        assert scores.composite_rank == pytest.approx(
            0.6 * scores.topical_relevance + 0.4 * scores.evidence_quality, abs=1e-6
        )

    def test_deterministic(self, query, make_record):
        """Scoring the same record twice should give identical scores."""
        from medsearch.services.retrieval.scoring import score_record

        record = make_record(1, citation_count=37, year=2016)
        assert score_record(record, query).scores == score_record(record, query).scores

    def test_input_not_modified(self, query, make_record):
        """score_record should return a copy."""
        from medsearch.services.retrieval.scoring import score_record

        record = make_record(1)
        scored = score_record(record, query)
        assert record.scores is None
        assert scored.scores is not None
        assert scored.record_id == record.record_id

    def test_general_medical_fallback(self):
        """Clinical wording outside the query's domain should still count as medical."""
        from medsearch.schemas.records import Record
        from medsearch.services.retrieval.query_refiner import refine_query
        from medsearch.services.retrieval.scoring import score_record

        query = refine_query("sleep hygiene", query_styles={}, reference_year=2024)
        record = Record(
            title="Sleep hygiene in hospital patients",
            abstract="A randomized trial of clinical outcomes.",
            source_name="PubMed",
        )
        assert score_record(record, query).scores.medical_domain_match is True
