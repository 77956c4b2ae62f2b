"""
Competitor Overlap & Share of Voice

Finds domains cited on the same queries as a target domain:

    overlap_score   = shared_queries / total_queries_target
    share_of_voice  = domain citations in target queries / all citations in target queries
    competitor_rank = RANK() over visibility score descending (ties share rank,
                      competitors without a score are unranked and listed last)

Plus the query-level drill-down for a (target, competitor) pair: for every
query where both were cited, each domain's rank within that query by citation
count and who won it.

Share of voice counts raw citations, so a domain cited several times in one
query gets each citation counted.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence, Set

from searchable.scoring.helpers import competition_rank

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS AND DATA CLASSES
# =============================================================================

class QueryWinner(Enum):
    """Who ranks better within a shared query."""
    TARGET = "target"
    COMPETITOR = "competitor"
    TIE = "tie"


@dataclass(frozen=True)
class QueryCitation:
    """One citation reduced to the (query, domain) pair it contributes."""
    query_id: Hashable
    domain: str


@dataclass
class CompetitorResult:
    """Overlap metrics for one competitor of a target domain."""
    target_domain: str
    competitor_domain: str
    overlap_score: float
    shared_queries: int
    total_queries_target: int
    competitor_visibility_score: Optional[float]
    competitor_rank: Optional[int]
    share_of_voice: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_domain": self.target_domain,
            "competitor_domain": self.competitor_domain,
            "overlap_score": round(self.overlap_score, 4),
            "shared_queries": self.shared_queries,
            "total_queries_target": self.total_queries_target,
            "competitor_visibility_score": self.competitor_visibility_score,
            "competitor_rank": self.competitor_rank,
            "share_of_voice": round(self.share_of_voice, 4),
        }


@dataclass
class SharedQueryComparison:
    """Target vs competitor on one shared query."""
    query_id: Hashable
    query_text: str
    target_citations: int
    competitor_citations: int
    target_rank: int
    competitor_rank: int
    winner: QueryWinner

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query_id": str(self.query_id),
            "query_text": self.query_text,
            "target_citations": self.target_citations,
            "competitor_citations": self.competitor_citations,
            "target_rank": self.target_rank,
            "competitor_rank": self.competitor_rank,
            "winner": self.winner.value,
        }


@dataclass
class DomainQueryStanding:
    domain: str
    citation_count: int
    rank_in_query: int


@dataclass
class QueryComparison:
    """Side-by-side standing of two domains on a single query."""
    query_id: Hashable
    query_text: Optional[str]
    target: Optional[DomainQueryStanding]
    competitor: Optional[DomainQueryStanding]

    def to_dict(self) -> Dict[str, Any]:
        def standing(s: Optional[DomainQueryStanding]) -> Optional[Dict[str, Any]]:
            if s is None:
                return None
            return {"domain": s.domain, "citation_count": s.citation_count, "rank_in_query": s.rank_in_query}

        return {
            "query_id": str(self.query_id),
            "query_text": self.query_text,
            "target": standing(self.target),
            "competitor": standing(self.competitor),
        }


# =============================================================================
# OVERLAP
# =============================================================================

def get_target_queries(target_domain: str, observations: Sequence[QueryCitation]) -> Set[Hashable]:
    """Queries in which the target received at least one citation."""
    return {o.query_id for o in observations if o.domain == target_domain}


def calculate_share_of_voice(
    target_domain: str,
    observations: Sequence[QueryCitation],
) -> Dict[str, float]:
    """
    Share of voice for every domain inside the target's query set.

    Returns:
        domain -> fraction of citations (sums to 1.0, empty if no citations)
    """
    target_queries = get_target_queries(target_domain, observations)
    voice = Counter(o.domain for o in observations if o.query_id in target_queries)
    total = sum(voice.values())
    if total == 0:
        return {}
    return {domain: count / total for domain, count in voice.items()}


def compute_competitors(
    target_domain: str,
    observations: Sequence[QueryCitation],
    visibility_scores: Mapping[str, Optional[float]],
) -> List[CompetitorResult]:
    """
    Compute competitor metrics for a target domain.

    Args:
        target_domain: Domain whose competitors are wanted
        observations: One QueryCitation per citation in the corpus
        visibility_scores: domain -> current visibility score

    Returns:
        Competitors ordered by rank (unranked last), then overlap score
        descending, then domain name
    """
    target_queries = get_target_queries(target_domain, observations)
    total_queries_target = len(target_queries)

    shared: Dict[str, Set[Hashable]] = defaultdict(set)
    for o in observations:
        if o.query_id in target_queries and o.domain != target_domain:
            shared[o.domain].add(o.query_id)

    share_of_voice = calculate_share_of_voice(target_domain, observations)

    scores = {domain: visibility_scores.get(domain) for domain in shared}
    ranks = competition_rank(scores)

    results = []
    for domain, queries in shared.items():
        shared_count = len(queries)
        results.append(CompetitorResult(
            target_domain=target_domain,
            competitor_domain=domain,
            overlap_score=shared_count / total_queries_target if total_queries_target else 0.0,
            shared_queries=shared_count,
            total_queries_target=total_queries_target,
            competitor_visibility_score=scores[domain],
            competitor_rank=ranks[domain],
            share_of_voice=share_of_voice.get(domain, 0.0),
        ))

    results.sort(key=lambda r: (
        r.competitor_rank is None,
        r.competitor_rank or 0,
        -r.overlap_score,
        r.competitor_domain,
    ))

    logger.debug(
        f"{target_domain}: {len(results)} competitors across {total_queries_target} queries"
    )
    return results


# =============================================================================
# QUERY DRILL-DOWN
# =============================================================================

def _rank_domains_by_query(observations: Sequence[QueryCitation]) -> Dict[Hashable, Dict[str, DomainQueryStanding]]:
    """Citation count and rank of every domain within every query."""
    counts: Dict[Hashable, Counter] = defaultdict(Counter)
    for o in observations:
        counts[o.query_id][o.domain] += 1

    standings: Dict[Hashable, Dict[str, DomainQueryStanding]] = {}
    for query_id, per_domain in counts.items():
        ranks = competition_rank(dict(per_domain))
        standings[query_id] = {
            domain: DomainQueryStanding(domain=domain, citation_count=count, rank_in_query=ranks[domain])
            for domain, count in per_domain.items()
        }
    return standings


def _winner(target_rank: int, competitor_rank: int) -> QueryWinner:
    if target_rank < competitor_rank:
        return QueryWinner.TARGET
    if competitor_rank < target_rank:
        return QueryWinner.COMPETITOR
    return QueryWinner.TIE


def compare_shared_queries(
    target_domain: str,
    competitor_domain: str,
    observations: Sequence[QueryCitation],
    query_texts: Optional[Mapping[Hashable, str]] = None,
) -> List[SharedQueryComparison]:
    """
    Per-query win/lose/tie breakdown for a target and one competitor.

    Args:
        target_domain: Target domain
        competitor_domain: Competitor domain
        observations: One QueryCitation per citation in the corpus
        query_texts: query_id -> text, for display

    Returns:
        Shared queries ordered by target rank, then competitor rank
    """
    query_texts = query_texts or {}
    comparisons = []

    for query_id, standings in _rank_domains_by_query(observations).items():
        target = standings.get(target_domain)
        competitor = standings.get(competitor_domain)
        if target is None or competitor is None:
            continue

        comparisons.append(SharedQueryComparison(
            query_id=query_id,
            query_text=query_texts.get(query_id, ""),
            target_citations=target.citation_count,
            competitor_citations=competitor.citation_count,
            target_rank=target.rank_in_query,
            competitor_rank=competitor.rank_in_query,
            winner=_winner(target.rank_in_query, competitor.rank_in_query),
        ))

    comparisons.sort(key=lambda c: (c.target_rank, c.competitor_rank, c.query_text, str(c.query_id)))
    return comparisons


def compare_query(
    target_domain: str,
    competitor_domain: str,
    query_id: Hashable,
    observations: Sequence[QueryCitation],
    query_text: Optional[str] = None,
) -> QueryComparison:
    """Standing of target and competitor on one query (either may be absent)."""
    in_query = [o for o in observations if o.query_id == query_id]
    standings = _rank_domains_by_query(in_query).get(query_id, {})
    return QueryComparison(
        query_id=query_id,
        query_text=query_text,
        target=standings.get(target_domain),
        competitor=standings.get(competitor_domain),
    )


def get_win_summary(comparisons: Sequence[SharedQueryComparison]) -> Dict[str, int]:
    """Count wins, losses and ties over a drill-down."""
    summary = {winner.value: 0 for winner in QueryWinner}
    for c in comparisons:
        summary[c.winner.value] += 1
    summary["total"] = len(comparisons)
    return summary
