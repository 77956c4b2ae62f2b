"""
Test Suite for the Visibility Score

Tests:
- Weights and the 100.0000 maximum
- Position score linearity and floor
- Relative recency score
- Deterministic output and run-over-run change
"""

import pytest
from decimal import Decimal

from searchable.scoring.aggregation import DomainAggregate
from searchable.scoring.helpers import VISIBILITY_WEIGHTS, quantize_score
from searchable.scoring.visibility import (
    ScoreBreakdown,
    compute_scores,
    get_score_summary,
    position_score,
    recency_score,
)


def make_aggregate(domain, count, queries, avg_position, recency, total_citations=10, total_queries=10):
    return DomainAggregate(
        domain=domain,
        citation_count=count,
        distinct_query_count=queries,
        avg_position=avg_position,
        recency_weight_sum=recency,
        total_citations=total_citations,
        total_queries=total_queries,
    )


@pytest.fixture
def two_domains():
    """
    A: share 0.6, coverage 0.5, avg position 1, recency max
    B: share 0.4, coverage 0.5, avg position 3, recency half of max
    """
    return [
        make_aggregate("a.com", count=6, queries=5, avg_position=1.0, recency=2.0),
        make_aggregate("b.com", count=4, queries=5, avg_position=3.0, recency=1.0),
    ]


# =============================================================================
# WEIGHT TESTS
# =============================================================================


class TestWeights:
    """Test the fixed weights."""

    def test_weights_sum_to_one(self):
        assert sum(VISIBILITY_WEIGHTS.values()) == Decimal("1")

    def test_maximum_score(self):
        """Full share, coverage, first position and max recency score 100.0000."""
        [result] = compute_scores(
            [make_aggregate("a.com", count=10, queries=10, avg_position=1.0, recency=3.7)],
            previous_scores={},
        )
        assert result.score == 100.0
        assert str(quantize_score(result.breakdown.weighted_total())) == "100.0000"


# =============================================================================
# COMPONENT TESTS
# =============================================================================


class TestPositionScore:
    """Test the linear position score."""

    def test_first_position(self):
        assert position_score(1) == Decimal(1)

    def test_linear_between_one_and_eleven(self):
        assert position_score(2) == Decimal("0.9")
        assert position_score(6) == Decimal("0.5")
        assert position_score(3) - position_score(2) == position_score(2) - position_score(1)

    @pytest.mark.parametrize("avg_position", [11, 11.0, 15, 100])
    def test_floor_at_zero(self, avg_position):
        assert position_score(avg_position) == Decimal(0)

    def test_no_citations(self):
        assert position_score(None) == Decimal(0)

    def test_custom_decay_range(self):
        assert position_score(3, decay_range=4) == Decimal("0.5")


class TestRecencyScore:
    """Test relative recency."""

    def test_relative_to_max(self):
        assert recency_score(1.0, Decimal("2.0")) == Decimal("0.5")

    def test_all_zero(self):
        assert recency_score(0.0, Decimal(0)) == Decimal(0)

    def test_clamped(self):
        assert recency_score(5.0, Decimal("2.0")) == Decimal(1)


# =============================================================================
# SCORING TESTS
# =============================================================================


class TestComputeScores:
    """Test scores and change."""

    def test_two_domain_scenario(self, two_domains):
        results = {r.domain: r for r in compute_scores(two_domains, previous_scores={"a.com": 50.0})}

        assert results["a.com"].score == 69.0
        assert results["b.com"].score == 52.0
        assert results["a.com"].score > results["b.com"].score

        assert results["a.com"].change == 19.0
        assert results["a.com"].previous_score == 50.0
        assert results["b.com"].change is None
        assert results["b.com"].previous_score is None

    def test_breakdown(self, two_domains):
        b = compute_scores(two_domains, previous_scores={})[1]
        assert b.breakdown.to_dict() == {
            "citation_share": 0.4,
            "query_coverage": 0.5,
            "position_score": 0.8,
            "recency_score": 0.5,
        }

    def test_deterministic(self, two_domains):
        first = [r.to_dict() for r in compute_scores(two_domains, {"a.com": 41.23})]
        second = [r.to_dict() for r in compute_scores(two_domains, {"a.com": 41.23})]
        assert repr(first) == repr(second)

    def test_rounded_to_four_places(self):
        aggregates = [
            make_aggregate("a.com", count=1, queries=1, avg_position=1.0, recency=1.0, total_citations=3, total_queries=3),
        ]
        [result] = compute_scores(aggregates, previous_scores={})
        # 100 × (0.4/3 + 0.3/3 + 0.2 + 0.1) = 53.3333...
        assert result.score == 53.3333

    def test_zero_recency_everywhere(self):
        aggregates = [
            make_aggregate("a.com", count=5, queries=5, avg_position=1.0, recency=0.0),
            make_aggregate("b.com", count=5, queries=5, avg_position=1.0, recency=0.0),
        ]
        results = compute_scores(aggregates, previous_scores={})
        assert all(r.breakdown.recency_score == Decimal(0) for r in results)
        # 100 × (0.4 × 0.5 + 0.3 × 0.5 + 0.2 × 1)
        assert all(r.score == 55.0 for r in results)

    def test_input_order_preserved(self, two_domains):
        results = compute_scores(list(reversed(two_domains)), previous_scores={})
        assert [r.domain for r in results] == ["b.com", "a.com"]

    def test_empty(self):
        assert compute_scores([], {}) == []


class TestScoreSummary:
    """Test summary statistics."""

    def test_summary(self, two_domains):
        results = compute_scores(two_domains, previous_scores={"a.com": 50.0, "b.com": 60.0})
        summary = get_score_summary(results)

        assert summary["total_domains"] == 2
        assert summary["max_score"] == 69.0
        assert summary["top_domains"][0]["domain"] == "a.com"
        assert summary["top_gainers"] == [{"domain": "a.com", "change": 19.0}]
        assert summary["top_decliners"] == [{"domain": "b.com", "change": -8.0}]

    def test_summary_empty(self):
        assert get_score_summary([])["total_domains"] == 0

    def test_breakdown_weighted_total(self):
        breakdown = ScoreBreakdown(Decimal(1), Decimal(0), Decimal(0), Decimal(0))
        assert breakdown.weighted_total() == Decimal("40.0")
