"""Tests for services/retrieval/filtering.py - Progressive filter tiers."""
import pytest


def _scored(index, relevance, evidence, domain=True, source="PubMed"):
    from medsearch.schemas.records import Record, Scores

    return Record(
        identity={"doi": f"10.1000/f.{index:03d}"},
        title=f"Record {index}",
        source_name=source,
        scores=Scores(
            topical_relevance=relevance,
            evidence_quality=evidence,
            composite_rank=round(0.6 * relevance + 0.4 * evidence, 6),
            medical_domain_match=domain,
        ),
    )


@pytest.fixture
def tiers():
    from medsearch.schemas.search import DEFAULT_FILTER_TIERS

    return list(DEFAULT_FILTER_TIERS)


class TestApplyFilterTiers:
    """Test the tier state machine."""

    def test_strict_tier_satisfies_target(self, tiers):
        """Enough strong records should stop at the first tier."""
        from medsearch.services.retrieval.filtering import apply_filter_tiers

        records = [_scored(i, 0.9, 0.8) for i in range(12)]
        outcome = apply_filter_tiers(records, tiers, target=10)

        assert outcome.tier_label == "strict"
        assert outcome.tier_index == 0
        assert outcome.target_met is True
        assert len(outcome.records) == 10
        assert len(outcome.eligible) == 12

    def test_relaxes_until_target_met(self, tiers):
        """Tiers should relax only as far as needed."""
        from medsearch.services.retrieval.filtering import apply_filter_tiers

        records = [_scored(i, 0.9, 0.8) for i in range(3)]
        records += [_scored(i, 0.4, 0.3) for i in range(3, 8)]
        records += [_scored(i, 0.25, 0.15) for i in range(8, 20)]
        outcome = apply_filter_tiers(records, tiers, target=8)

        assert outcome.tier_label == "standard"
        assert [t.eligible_count for t in outcome.tiers] == [3, 8]
        assert len(outcome.records) == 8

    def test_shortfall_returns_only_eligible(self, tiers):
        """When even the last tier falls short, no ineligible filler is added."""
        from medsearch.services.retrieval.filtering import apply_filter_tiers, passes_tier

        records = [_scored(i, 0.9, 0.8) for i in range(4)]
        records += [_scored(i, 0.0, 0.9) for i in range(4, 10)]
        outcome = apply_filter_tiers(records, tiers, target=10)

        assert outcome.target_met is False
        assert outcome.tier_label == "permissive"
        assert len(outcome.records) == 4
        assert all(passes_tier(r, tiers[-1]) for r in outcome.records)

    def test_domain_requirement_dropped_last(self, tiers):
        """Non-medical matches only qualify in the permissive tier."""
        from medsearch.services.retrieval.filtering import apply_filter_tiers

        records = [_scored(i, 0.9, 0.8, domain=False) for i in range(5)]
        outcome = apply_filter_tiers(records, tiers, target=5)

        assert outcome.tier_label == "permissive"
        assert [t.eligible_count for t in outcome.tiers] == [0, 0, 0, 5]

    def test_eligible_counts_never_decrease(self, tiers):
        """Relaxing a tier can only add eligible records."""
        from medsearch.services.retrieval.filtering import apply_filter_tiers

        records = [_scored(i, (i % 10) / 10, ((i * 7) % 10) / 10, domain=i % 3 != 0) for i in range(60)]
        outcome = apply_filter_tiers(records, tiers, target=1000)

        counts = [t.eligible_count for t in outcome.tiers]
        assert counts == sorted(counts)
        assert len(counts) == len(tiers)

    def test_never_exceeds_target(self, tiers):
        """The output size should be exactly the target when met."""
        from medsearch.services.retrieval.filtering import apply_filter_tiers

        records = [_scored(i, 0.9, 0.8) for i in range(30)]
        for target in (1, 5, 30):
            assert len(apply_filter_tiers(records, tiers, target=target).records) == target

    def test_ordering_and_ties(self, tiers):
        """Order is composite desc, evidence desc, then canonical id."""
        from medsearch.services.retrieval.filtering import apply_filter_tiers

        records = [
            _scored(3, 0.9, 0.8),
            _scored(1, 0.9, 0.8),
            _scored(2, 1.0, 0.9),
            _scored(4, 0.9333334, 0.75),
        ]
        outcome = apply_filter_tiers(records, tiers, target=4)
        ids = [r.identity.doi for r in outcome.records]
        assert ids == ["10.1000/f.002", "10.1000/f.001", "10.1000/f.003", "10.1000/f.004"]

    def test_empty_pool(self, tiers):
        """An empty pool should give an empty outcome without a tier."""
        from medsearch.services.retrieval.filtering import apply_filter_tiers

        outcome = apply_filter_tiers([], tiers, target=10)
        assert outcome.records == []
        assert outcome.tier_label is None
        assert outcome.target_met is False

    def test_unscored_records_never_pass(self, tiers):
        """Records without scores are not eligible anywhere."""
        from medsearch.schemas.records import Record
        from medsearch.services.retrieval.filtering import passes_tier

        record = Record(title="Unscored", source_name="PubMed")
        assert not passes_tier(record, tiers[-1])
