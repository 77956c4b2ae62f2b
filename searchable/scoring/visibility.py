"""
Visibility Score Calculator

Composite 0-100 score ranking a domain's citation prominence in AI answers.

Formula:
    Visibility_Score = 100 × (
        Citation_Share × 0.40 +
        Query_Coverage × 0.30 +
        Position_Score × 0.20 +
        Recency_Score  × 0.10
    )

Where:
    Position_Score = max(0, 1 - (Avg_Position - 1) / 10)
    Recency_Score  = Recency_Weight / max(Recency_Weight across domains), clamped to [0, 1]

All arithmetic runs on Decimal so repeated runs over identical input give
identical output. Score and change are rounded to 4 decimal places.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .aggregation import DomainAggregate
from .helpers import (
    DEFAULT_POSITION_DECAY_RANGE,
    VISIBILITY_WEIGHTS,
    quantize_score,
    to_decimal,
)

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class ScoreBreakdown:
    """Component values (0-1 each) behind a Visibility Score."""
    citation_share: Decimal
    query_coverage: Decimal
    position_score: Decimal
    recency_score: Decimal

    def weighted_total(self) -> Decimal:
        """Unrounded 0-100 score."""
        weighted = (
            self.citation_share * VISIBILITY_WEIGHTS["citation_share"]
            + self.query_coverage * VISIBILITY_WEIGHTS["query_coverage"]
            + self.position_score * VISIBILITY_WEIGHTS["position"]
            + self.recency_score * VISIBILITY_WEIGHTS["recency"]
        )
        return weighted * HUNDRED

    def to_dict(self) -> Dict[str, float]:
        return {
            "citation_share": float(quantize_score(self.citation_share)),
            "query_coverage": float(quantize_score(self.query_coverage)),
            "position_score": float(quantize_score(self.position_score)),
            "recency_score": float(quantize_score(self.recency_score)),
        }


@dataclass(frozen=True)
class DomainScoreResult:
    """Visibility Score for one domain in one run."""
    domain: str
    score: float
    previous_score: Optional[float]
    change: Optional[float]
    breakdown: ScoreBreakdown

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "score": self.score,
            "previous_score": self.previous_score,
            "change": self.change,
            "breakdown": self.breakdown.to_dict(),
        }


# =============================================================================
# COMPONENT SCORES
# =============================================================================

def position_score(
    avg_position: Optional[float],
    decay_range: int = DEFAULT_POSITION_DECAY_RANGE,
) -> Decimal:
    """
    Linear position score, floored at 0.

    1.0 at avg position 1, 0.0 at avg position 1 + decay_range and beyond.
    Domains without citations (avg_position None) score 0.
    """
    if avg_position is None:
        return ZERO
    if isinstance(avg_position, float) and math.isnan(avg_position):
        return ZERO

    raw = ONE - (to_decimal(avg_position) - ONE) / Decimal(decay_range)
    if raw < ZERO:
        return ZERO
    return min(raw, ONE)


def recency_score(recency_weight_sum: float, max_recency: Decimal) -> Decimal:
    """
    Relative recency: 1.0 for the domain with the most recent citation mass.

    Returns 0 for every domain when no domain has recent citations.
    """
    if max_recency <= ZERO:
        return ZERO
    ratio = to_decimal(recency_weight_sum) / max_recency
    if ratio > ONE:
        return ONE
    if ratio < ZERO:
        return ZERO
    return ratio


def _ratio(numerator: int, denominator: int) -> Decimal:
    if denominator <= 0:
        return ZERO
    return Decimal(numerator) / Decimal(denominator)


# =============================================================================
# SCORING
# =============================================================================

def compute_scores(
    aggregates: Sequence[DomainAggregate],
    previous_scores: Mapping[str, float],
    position_decay_range: int = DEFAULT_POSITION_DECAY_RANGE,
) -> List[DomainScoreResult]:
    """
    Compute Visibility Scores and run-over-run change per domain.

    Args:
        aggregates: Per-domain signals from aggregate_domains
        previous_scores: domain -> score from the previous run
        position_decay_range: Positions over which the position score decays to 0

    Returns:
        One DomainScoreResult per aggregate, in input order
    """
    if not aggregates:
        return []

    max_recency = max(
        (to_decimal(a.recency_weight_sum) for a in aggregates),
        default=ZERO,
    )

    results: List[DomainScoreResult] = []
    for aggregate in aggregates:
        breakdown = ScoreBreakdown(
            citation_share=_ratio(aggregate.citation_count, aggregate.total_citations),
            query_coverage=_ratio(aggregate.distinct_query_count, aggregate.total_queries),
            position_score=position_score(aggregate.avg_position, position_decay_range),
            recency_score=recency_score(aggregate.recency_weight_sum, max_recency),
        )

        score = quantize_score(breakdown.weighted_total())
        previous = previous_scores.get(aggregate.domain)
        if previous is not None:
            change: Optional[float] = float(quantize_score(score - to_decimal(previous)))
            previous = float(previous)
        else:
            change = None

        results.append(DomainScoreResult(
            domain=aggregate.domain,
            score=float(score),
            previous_score=previous,
            change=change,
            breakdown=breakdown,
        ))

    logger.debug(f"Computed visibility scores for {len(results)} domains")
    return results


def get_score_summary(results: Sequence[DomainScoreResult]) -> Dict[str, Any]:
    """
    Summary statistics for a scoring run.

    Args:
        results: Output of compute_scores

    Returns:
        Summary dict with averages, top movers and the leaderboard head
    """
    if not results:
        return {
            "total_domains": 0,
            "avg_score": 0,
            "max_score": 0,
            "new_domains": 0,
            "top_domains": [],
            "top_gainers": [],
            "top_decliners": [],
        }

    scores = [r.score for r in results]
    with_change = [r for r in results if r.change is not None]

    return {
        "total_domains": len(results),
        "avg_score": round(sum(scores) / len(scores), 4),
        "max_score": max(scores),
        "new_domains": sum(1 for r in results if r.previous_score is None),
        "top_domains": [
            {"domain": r.domain, "score": r.score}
            for r in sorted(results, key=lambda r: (-r.score, r.domain))[:10]
        ],
        "top_gainers": [
            {"domain": r.domain, "change": r.change}
            for r in sorted(with_change, key=lambda r: (-r.change, r.domain))[:5]
            if r.change > 0
        ],
        "top_decliners": [
            {"domain": r.domain, "change": r.change}
            for r in sorted(with_change, key=lambda r: (r.change, r.domain))[:5]
            if r.change < 0
        ],
    }
