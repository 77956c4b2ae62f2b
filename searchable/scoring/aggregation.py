"""
Domain Aggregation

Scans the whole citation corpus and produces per-domain signals for the
Visibility Score:

    citation_share     = domain citations / total citations
    query_coverage     = distinct queries citing domain / total queries
    avg_position       = mean rank of the citation within its response (1 = first)
    recency_weight_sum = Σ exp(-λ · age_days) over citations in the last 30 days,
                         λ = ln(2) / 15 (half-life ~15 days)

Position is the 1-based rank of a citation inside its response, ordered by
(created_at, id), i.e. the order citations were recorded.

Everything here is pure; the corpus snapshot is read by the repository layer.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .helpers import (
    DEFAULT_HALF_LIFE_DAYS,
    DEFAULT_RECENCY_WINDOW_DAYS,
    age_in_days,
    as_utc,
    recency_weight,
    utc_now,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class CitationRecord:
    """A stored citation joined with its response's query."""
    id: int
    response_id: Any
    query_id: Any
    url: str
    domain: str
    created_at: datetime


@dataclass(frozen=True)
class PositionedCitation:
    """Citation with its 1-based position inside the parent response."""
    citation: CitationRecord
    position: int


@dataclass
class DomainAggregate:
    """Per-domain signals for one scoring run."""
    domain: str
    citation_count: int
    distinct_query_count: int
    avg_position: Optional[float]
    recency_weight_sum: float

    # Corpus totals (identical for every domain in a run)
    total_citations: int
    total_queries: int

    @property
    def citation_share(self) -> float:
        if self.total_citations <= 0:
            return 0.0
        return self.citation_count / self.total_citations

    @property
    def query_coverage(self) -> float:
        if self.total_queries <= 0:
            return 0.0
        return self.distinct_query_count / self.total_queries

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "citation_count": self.citation_count,
            "distinct_query_count": self.distinct_query_count,
            "avg_position": self.avg_position,
            "recency_weight_sum": self.recency_weight_sum,
            "total_citations": self.total_citations,
            "total_queries": self.total_queries,
            "citation_share": self.citation_share,
            "query_coverage": self.query_coverage,
        }


# =============================================================================
# POSITION ASSIGNMENT
# =============================================================================

def assign_positions(citations: Sequence[CitationRecord]) -> List[PositionedCitation]:
    """
    Number citations within each response by recording order.

    Equivalent to:
        row_number() OVER (PARTITION BY response_id ORDER BY created_at, id)

    Args:
        citations: Citation records in any order

    Returns:
        Positioned citations grouped by response, in position order
    """
    by_response: Dict[Any, List[CitationRecord]] = defaultdict(list)
    for citation in citations:
        by_response[citation.response_id].append(citation)

    positioned: List[PositionedCitation] = []
    for response_citations in by_response.values():
        response_citations.sort(key=lambda c: (as_utc(c.created_at), c.id))
        for position, citation in enumerate(response_citations, start=1):
            positioned.append(PositionedCitation(citation=citation, position=position))
    return positioned


# =============================================================================
# AGGREGATION
# =============================================================================

def aggregate_domains(
    citations: Sequence[CitationRecord],
    total_queries: int,
    now: Optional[datetime] = None,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
    window_days: float = DEFAULT_RECENCY_WINDOW_DAYS,
) -> List[DomainAggregate]:
    """
    Aggregate the citation corpus into per-domain signals.

    Args:
        citations: Full citation corpus snapshot
        total_queries: Number of distinct queries in the corpus
        now: Reference time for recency (defaults to current UTC time)
        half_life_days: Recency half-life
        window_days: Recency window; older citations contribute 0

    Returns:
        One DomainAggregate per cited domain, sorted by domain
    """
    now = now or utc_now()
    total_citations = len(citations)

    counts: Dict[str, int] = defaultdict(int)
    position_sums: Dict[str, int] = defaultdict(int)
    query_sets: Dict[str, set] = defaultdict(set)
    recency: Dict[str, float] = defaultdict(float)

    for item in assign_positions(citations):
        citation = item.citation
        domain = citation.domain
        counts[domain] += 1
        position_sums[domain] += item.position
        query_sets[domain].add(citation.query_id)
        recency[domain] += recency_weight(
            age_in_days(citation.created_at, now),
            half_life_days=half_life_days,
            window_days=window_days,
        )

    aggregates = []
    for domain in sorted(counts):
        count = counts[domain]
        aggregates.append(DomainAggregate(
            domain=domain,
            citation_count=count,
            distinct_query_count=len(query_sets[domain]),
            avg_position=position_sums[domain] / count if count else None,
            recency_weight_sum=recency[domain],
            total_citations=total_citations,
            total_queries=total_queries,
        ))

    logger.debug(
        f"Aggregated {total_citations} citations into {len(aggregates)} domains "
        f"({total_queries} queries)"
    )
    return aggregates


def get_aggregation_summary(aggregates: Sequence[DomainAggregate]) -> Dict[str, Any]:
    """
    Summary statistics for an aggregation run.

    Args:
        aggregates: Output of aggregate_domains

    Returns:
        Summary dict with corpus totals and the top domains by citation count
    """
    if not aggregates:
        return {
            "total_domains": 0,
            "total_citations": 0,
            "total_queries": 0,
            "top_domains": [],
        }

    top = sorted(aggregates, key=lambda a: (-a.citation_count, a.domain))[:10]
    return {
        "total_domains": len(aggregates),
        "total_citations": aggregates[0].total_citations,
        "total_queries": aggregates[0].total_queries,
        "top_domains": [
            {
                "domain": a.domain,
                "citation_count": a.citation_count,
                "citation_share": round(a.citation_share, 4),
                "query_coverage": round(a.query_coverage, 4),
            }
            for a in top
        ],
    }
