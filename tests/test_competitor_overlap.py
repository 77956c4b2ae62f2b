"""
Test Suite for Competitor Overlap

Tests:
- Overlap score and self-exclusion
- Share of voice
- Competitor ranking (ties, unscored competitors)
- Query-level drill-down and single-query comparison
"""

import pytest
from searchable.competitors.overlap import (
    QueryCitation,
    QueryWinner,
    calculate_share_of_voice,
    compare_query,
    compare_shared_queries,
    compute_competitors,
    get_target_queries,
    get_win_summary,
)


# =============================================================================
# OVERLAP TESTS
# =============================================================================


class TestOverlap:
    """Test shared-query ratios."""

    def test_target_queries(self, overlap_observations):
        assert get_target_queries("acme.com", overlap_observations) == {"q1", "q2", "q4"}

    def test_overlap_scores(self, overlap_observations):
        results = {r.competitor_domain: r for r in compute_competitors("acme.com", overlap_observations, {})}

        assert results["rival.com"].shared_queries == 2
        assert results["rival.com"].total_queries_target == 3
        assert results["rival.com"].overlap_score == pytest.approx(2 / 3)
        assert results["other.com"].overlap_score == pytest.approx(1 / 3)
        assert results["third.com"].shared_queries == 1

    def test_target_never_its_own_competitor(self, overlap_observations):
        results = compute_competitors("acme.com", overlap_observations, {"acme.com": 90.0})
        assert "acme.com" not in {r.competitor_domain for r in results}

    def test_query_without_target_ignored(self, overlap_observations):
        """other.com's q3 citation does not count as shared."""
        results = {r.competitor_domain: r for r in compute_competitors("acme.com", overlap_observations, {})}
        assert results["other.com"].shared_queries == 1

    def test_unknown_target(self, overlap_observations):
        assert compute_competitors("nobody.com", overlap_observations, {}) == []


# =============================================================================
# SHARE OF VOICE TESTS
# =============================================================================


class TestShareOfVoice:
    """Test raw-count share of voice inside the target's queries."""

    def test_values(self, overlap_observations):
        voice = calculate_share_of_voice("acme.com", overlap_observations)
        # 8 citations in q1, q2, q4
        assert voice["acme.com"] == pytest.approx(3 / 8)
        assert voice["rival.com"] == pytest.approx(3 / 8)
        assert voice["other.com"] == pytest.approx(1 / 8)
        assert voice["third.com"] == pytest.approx(1 / 8)

    def test_sums_to_one(self, overlap_observations):
        voice = calculate_share_of_voice("acme.com", overlap_observations)
        assert sum(voice.values()) == pytest.approx(1.0)

    def test_empty_when_target_absent(self, overlap_observations):
        assert calculate_share_of_voice("nobody.com", overlap_observations) == {}

    def test_attached_to_competitors(self, overlap_observations):
        results = {r.competitor_domain: r for r in compute_competitors("acme.com", overlap_observations, {})}
        assert results["rival.com"].share_of_voice == pytest.approx(3 / 8)


# =============================================================================
# RANKING TESTS
# =============================================================================


class TestCompetitorRanking:
    """Test RANK() over competitor visibility scores."""

    def test_ties_share_rank(self, overlap_observations):
        scores = {"rival.com": 40.0, "other.com": 40.0, "third.com": 30.0}
        results = compute_competitors("acme.com", overlap_observations, scores)

        ranks = {r.competitor_domain: r.competitor_rank for r in results}
        assert ranks == {"rival.com": 1, "other.com": 1, "third.com": 3}

    def test_order_rank_then_overlap(self, overlap_observations):
        scores = {"rival.com": 40.0, "other.com": 40.0, "third.com": 30.0}
        results = compute_competitors("acme.com", overlap_observations, scores)
        assert [r.competitor_domain for r in results] == ["rival.com", "other.com", "third.com"]

    def test_unscored_competitor_last(self, overlap_observations):
        scores = {"other.com": 10.0, "third.com": 20.0}
        results = compute_competitors("acme.com", overlap_observations, scores)

        assert results[-1].competitor_domain == "rival.com"
        assert results[-1].competitor_rank is None
        assert results[-1].competitor_visibility_score is None
        assert [r.competitor_domain for r in results[:2]] == ["third.com", "other.com"]

    def test_to_dict(self, overlap_observations):
        result = compute_competitors("acme.com", overlap_observations, {"rival.com": 55.5})[0]
        data = result.to_dict()
        assert data["competitor_domain"] == "rival.com"
        assert data["overlap_score"] == 0.6667
        assert data["competitor_rank"] == 1


# =============================================================================
# DRILL-DOWN TESTS
# =============================================================================


class TestSharedQueryDrillDown:
    """Test the win/lose/tie breakdown."""

    def test_winners(self, overlap_observations):
        comparisons = compare_shared_queries(
            "acme.com", "rival.com", overlap_observations,
            query_texts={"q1": "best crm", "q2": "crm pricing"},
        )

        assert [c.query_id for c in comparisons] == ["q2", "q1"]

        q2, q1 = comparisons
        assert q2.winner == QueryWinner.TIE
        assert q2.query_text == "crm pricing"
        assert (q1.target_citations, q1.competitor_citations) == (1, 2)
        assert (q1.target_rank, q1.competitor_rank) == (2, 1)
        assert q1.winner == QueryWinner.COMPETITOR

    def test_only_shared_queries(self, overlap_observations):
        comparisons = compare_shared_queries("acme.com", "other.com", overlap_observations)
        assert [c.query_id for c in comparisons] == ["q1"]
        assert comparisons[0].query_text == ""

    def test_target_wins(self):
        observations = [
            QueryCitation("q1", "acme.com"),
            QueryCitation("q1", "acme.com"),
            QueryCitation("q1", "rival.com"),
        ]
        [comparison] = compare_shared_queries("acme.com", "rival.com", observations)
        assert comparison.winner == QueryWinner.TARGET
        assert comparison.to_dict()["winner"] == "target"

    def test_win_summary(self, overlap_observations):
        summary = get_win_summary(compare_shared_queries("acme.com", "rival.com", overlap_observations))
        assert summary == {"target": 0, "competitor": 1, "tie": 1, "total": 2}


class TestSingleQueryComparison:
    """Test side-by-side standing on one query."""

    def test_both_present(self, overlap_observations):
        comparison = compare_query("acme.com", "rival.com", "q1", overlap_observations, query_text="best crm")

        assert comparison.target.citation_count == 1
        assert comparison.target.rank_in_query == 2
        assert comparison.competitor.citation_count == 2
        assert comparison.competitor.rank_in_query == 1
        assert comparison.to_dict()["query_text"] == "best crm"

    def test_competitor_absent(self, overlap_observations):
        comparison = compare_query("acme.com", "rival.com", "q4", overlap_observations)
        assert comparison.target.rank_in_query == 1
        assert comparison.competitor is None
        assert comparison.to_dict()["competitor"] is None
