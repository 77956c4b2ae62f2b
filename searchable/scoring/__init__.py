"""
Scoring Module for the Searchable Visibility Engine

This module provides the batch calculations run over the citation corpus:

1. **Domain Aggregation**
   Per-domain citation share, query coverage, average position and
   recency-weighted citation mass.

2. **Visibility Score** (0-100)
   100 × (0.4 × Share + 0.3 × Coverage + 0.2 × Position + 0.1 × Recency),
   computed on Decimal for reproducible output, with run-over-run change.

3. **URL Performance**
   Citation metrics rolled up to canonical URLs.

4. **Trends**
   Smoothed daily score history with citation counts.

Example Usage:
    from searchable.scoring import aggregate_domains, compute_scores

    aggregates = aggregate_domains(citations, total_queries=120)
    results = compute_scores(aggregates, previous_scores={"acme.com": 41.5})
    for r in results:
        print(r.domain, r.score, r.change)
"""

# Helper utilities and constants
from .helpers import (
    VISIBILITY_WEIGHTS,
    DEFAULT_HALF_LIFE_DAYS,
    DEFAULT_RECENCY_WINDOW_DAYS,
    DEFAULT_POSITION_DECAY_RANGE,
    recency_lambda,
    recency_weight,
    competition_rank,
    quantize_score,
    to_decimal,
    as_utc,
    utc_now,
)

# Aggregation
from .aggregation import (
    CitationRecord,
    PositionedCitation,
    DomainAggregate,
    assign_positions,
    aggregate_domains,
    get_aggregation_summary,
)

# Visibility Score
from .visibility import (
    ScoreBreakdown,
    DomainScoreResult,
    position_score,
    recency_score,
    compute_scores,
    get_score_summary,
)

# URL performance
from .url_performance import (
    UrlMetric,
    aggregate_url_metrics,
    get_domain_url_leaderboard,
)

# Trends
from .trends import (
    RANGE_DAYS,
    ScoreSnapshot,
    TrendPoint,
    TrendSummary,
    TrendsReport,
    resolve_range,
    daily_last_scores,
    smooth_series,
    build_trends,
)

__all__ = [
    # Helpers
    "VISIBILITY_WEIGHTS",
    "DEFAULT_HALF_LIFE_DAYS",
    "DEFAULT_RECENCY_WINDOW_DAYS",
    "DEFAULT_POSITION_DECAY_RANGE",
    "recency_lambda",
    "recency_weight",
    "competition_rank",
    "quantize_score",
    "to_decimal",
    "as_utc",
    "utc_now",

    # Aggregation
    "CitationRecord",
    "PositionedCitation",
    "DomainAggregate",
    "assign_positions",
    "aggregate_domains",
    "get_aggregation_summary",

    # Visibility
    "ScoreBreakdown",
    "DomainScoreResult",
    "position_score",
    "recency_score",
    "compute_scores",
    "get_score_summary",

    # URL performance
    "UrlMetric",
    "aggregate_url_metrics",
    "get_domain_url_leaderboard",

    # Trends
    "RANGE_DAYS",
    "ScoreSnapshot",
    "TrendPoint",
    "TrendSummary",
    "TrendsReport",
    "resolve_range",
    "daily_last_scores",
    "smooth_series",
    "build_trends",
]
