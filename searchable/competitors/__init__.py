"""
Competitor overlap, share of voice and query-level drill-down.

Usage:
    from searchable.competitors import compute_competitors, QueryCitation

    observations = [QueryCitation(query_id=q, domain=d) for q, d in rows]
    competitors = compute_competitors("acme.com", observations, {"rival.com": 52.1})
"""

from .overlap import (
    QueryWinner,
    QueryCitation,
    CompetitorResult,
    SharedQueryComparison,
    DomainQueryStanding,
    QueryComparison,
    get_target_queries,
    calculate_share_of_voice,
    compute_competitors,
    compare_shared_queries,
    compare_query,
    get_win_summary,
)

__all__ = [
    "QueryWinner",
    "QueryCitation",
    "CompetitorResult",
    "SharedQueryComparison",
    "DomainQueryStanding",
    "QueryComparison",
    "get_target_queries",
    "calculate_share_of_voice",
    "compute_competitors",
    "compare_shared_queries",
    "compare_query",
    "get_win_summary",
]
