"""Tests for services/retrieval/assembler.py - Result assembly."""
import pytest


def _pool(layout):
    """Ranked records whose source order follows layout, e.g. 'AAAB'."""
    from medsearch.schemas.records import Record

    return [
        Record(identity={"doi": f"10.1000/p.{i}"}, title=f"Record {i}", source_name=source)
        for i, source in enumerate(layout)
    ]


class TestRebalanceForDiversity:
    """Test source-diversity rebalancing."""

    def test_disabled_by_default(self):
        """window=0 should keep rank order untouched."""
        from medsearch.schemas.search import DiversityConfig
        from medsearch.services.retrieval.assembler import rebalance_for_diversity

        pool = _pool("AAAAAABB")
        assert rebalance_for_diversity(pool, 4, DiversityConfig()) == pool[:4]

    def test_caps_dominant_source(self):
        """A source at its cap should yield to the next source in the window."""
        from medsearch.schemas.search import DiversityConfig
        from medsearch.services.retrieval.assembler import rebalance_for_diversity

        pool = _pool("AAAAAABB")
        result = rebalance_for_diversity(pool, 4, DiversityConfig(window=6, max_source_share=0.5))
        assert [r.source_name for r in result] == ["A", "A", "B", "B"]
        assert [r.title for r in result[:2]] == ["Record 0", "Record 1"]

    def test_small_window_keeps_rank_order(self):
        """Without an alternative inside the window rank order wins."""
        from medsearch.schemas.search import DiversityConfig
        from medsearch.services.retrieval.assembler import rebalance_for_diversity

        pool = _pool("AAAAAABB")
        result = rebalance_for_diversity(pool, 4, DiversityConfig(window=1, max_source_share=0.5))
        assert [r.source_name for r in result] == ["A", "A", "A", "A"]

    def test_size_is_preserved(self):
        """Rebalancing never changes how many records are returned."""
        from medsearch.schemas.search import DiversityConfig
        from medsearch.services.retrieval.assembler import rebalance_for_diversity

        pool = _pool("ABABABAB")
        assert len(rebalance_for_diversity(pool, 5, DiversityConfig(window=3))) == 5

    def test_merged_record_counts_against_primary_source_only(self):
        """A record merged from several sources should use only its primary source's slot."""
        from medsearch.schemas.records import Record
        from medsearch.schemas.search import DiversityConfig
        from medsearch.services.retrieval.assembler import rebalance_for_diversity

        merged = Record(identity={"doi": "10.1000/m"}, title="Merged", source_name="A", sources=["A", "B"])
        pool = [merged] + _pool("BC")

        result = rebalance_for_diversity(pool, 2, DiversityConfig(window=2, max_source_share=0.5))
        assert [r.source_name for r in result] == ["A", "B"]


class TestAssembleResult:
    """Test statuses and diagnostics."""

    def test_complete(self, make_record):
        """Target met should give COMPLETE with diagnostics filled in."""
        from medsearch.schemas.results import SearchStatus, SourceReport
        from medsearch.services.retrieval.assembler import assemble_result
        from medsearch.services.retrieval.fanout import FanOutResult
        from medsearch.services.retrieval.filtering import FilterOutcome

        records = [make_record(i, "PubMed") for i in range(3)]
        fanout = FanOutResult(records=records + [make_record(0, "OpenAlex")], reports=[SourceReport(name="PubMed")])
        outcome = FilterOutcome(records=records, eligible=records, tier_label="strict", tier_index=0, target_met=True)

        result = assemble_result("q", 3, fanout, unique_count=3, outcome=outcome)
        assert result.status == SearchStatus.COMPLETE
        assert result.shortfall == 0
        assert result.diagnostics.raw_record_count == 4
        assert result.diagnostics.duplicates_collapsed == 1
        assert result.diagnostics.tier_reached == "strict"
        assert result.diagnostics.source_contributions == {"PubMed": 3}

    def test_partial(self, make_record):
        """Target missed with some records should give PARTIAL_FULFILLMENT."""
        from medsearch.schemas.results import SearchStatus
        from medsearch.services.retrieval.assembler import assemble_result
        from medsearch.services.retrieval.fanout import FanOutResult
        from medsearch.services.retrieval.filtering import FilterOutcome

        records = [make_record(i) for i in range(2)]
        outcome = FilterOutcome(records=records, eligible=records, tier_label="permissive", tier_index=3)
        result = assemble_result("q", 5, FanOutResult(records=records), 2, outcome)

        assert result.status == SearchStatus.PARTIAL_FULFILLMENT
        assert result.shortfall == 3

    def test_partial_with_nothing_eligible(self, make_record):
        """Records fetched but none eligible is still a partial result."""
        from medsearch.schemas.results import SearchStatus
        from medsearch.services.retrieval.assembler import assemble_result
        from medsearch.services.retrieval.fanout import FanOutResult
        from medsearch.services.retrieval.filtering import FilterOutcome

        result = assemble_result("q", 5, FanOutResult(records=[make_record(1)]), 1, FilterOutcome(tier_label="permissive"))
        assert result.status == SearchStatus.PARTIAL_FULFILLMENT
        assert result.records == []

    def test_no_results(self):
        """An empty pool without timeouts is NO_RESULTS."""
        from medsearch.schemas.results import SearchStatus
        from medsearch.services.retrieval.assembler import assemble_result
        from medsearch.services.retrieval.fanout import FanOutResult
        from medsearch.services.retrieval.filtering import FilterOutcome

        result = assemble_result("q", 5, FanOutResult(), 0, FilterOutcome())
        assert result.status == SearchStatus.NO_RESULTS
        assert result.is_empty

    def test_deadline_exceeded(self):
        """An empty pool because every source timed out is DEADLINE_EXCEEDED."""
        from medsearch.schemas.results import SearchStatus
        from medsearch.services.retrieval.assembler import assemble_result
        from medsearch.services.retrieval.fanout import FanOutResult
        from medsearch.services.retrieval.filtering import FilterOutcome

        result = assemble_result("q", 5, FanOutResult(deadline_exceeded=True), 0, FilterOutcome())
        assert result.status == SearchStatus.DEADLINE_EXCEEDED
        assert result.diagnostics.deadline_exceeded is True

    def test_merged_records_count_for_each_source(self):
        """source_contributions should credit every contributing source."""
        from medsearch.schemas.records import Record
        from medsearch.services.retrieval.assembler import source_contributions

        merged = Record(title="T", source_name="PubMed", sources=["OpenAlex", "PubMed"])
        single = Record(title="U", source_name="CrossRef")
        assert source_contributions([merged, single]) == {"CrossRef": 1, "OpenAlex": 1, "PubMed": 1}
