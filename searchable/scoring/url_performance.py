"""
URL Performance Metrics (content attribution)

Rolls citations up to the canonical URL level:
- citation_count: how often the URL was cited
- unique_query_count: how many distinct queries cited it
- avg_position: mean position within the citing responses
- last_cited_at: most recent citation time (decaying-content signal)

Stored URLs are re-normalized so rows that collapse to the same canonical
URL (e.g. with and without query params) merge into one metric.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from searchable.utils.url_normalizer import UrlNormalizationError, normalize_url

from .aggregation import CitationRecord, assign_positions
from .helpers import as_utc

logger = logging.getLogger(__name__)


@dataclass
class UrlMetric:
    """Citation metrics for a single canonical URL."""
    normalized_url: str
    domain: str
    citation_count: int = 0
    unique_query_count: int = 0
    avg_position: Optional[float] = None
    last_cited_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "normalized_url": self.normalized_url,
            "domain": self.domain,
            "citation_count": self.citation_count,
            "unique_query_count": self.unique_query_count,
            "avg_position": round(self.avg_position, 2) if self.avg_position is not None else None,
            "last_cited_at": self.last_cited_at.isoformat() if self.last_cited_at else None,
        }


@dataclass
class _UrlAccumulator:
    domain: str
    citations: int = 0
    position_sum: int = 0
    query_ids: set = field(default_factory=set)
    last_cited_at: Optional[datetime] = None


def aggregate_url_metrics(
    citations: Sequence[CitationRecord],
    keep_params: Optional[Iterable[str]] = None,
) -> List[UrlMetric]:
    """
    Aggregate citations into URL-level metrics.

    Args:
        citations: Full citation corpus snapshot
        keep_params: Query parameter names kept during re-normalization

    Returns:
        UrlMetric list sorted by citation count descending, then URL
    """
    keep = list(keep_params) if keep_params else None
    by_url: Dict[str, _UrlAccumulator] = {}

    for item in assign_positions(citations):
        citation = item.citation
        try:
            key = normalize_url(citation.url, keep_params=keep)
        except UrlNormalizationError as e:
            logger.debug(f"Skipping unnormalizable stored URL {citation.url!r}: {e}")
            continue

        acc = by_url.get(key)
        if acc is None:
            acc = by_url[key] = _UrlAccumulator(domain=citation.domain)

        acc.citations += 1
        acc.position_sum += item.position
        acc.query_ids.add(citation.query_id)

        cited_at = as_utc(citation.created_at)
        if acc.last_cited_at is None or cited_at > acc.last_cited_at:
            acc.last_cited_at = cited_at

    metrics = [
        UrlMetric(
            normalized_url=url,
            domain=acc.domain,
            citation_count=acc.citations,
            unique_query_count=len(acc.query_ids),
            avg_position=acc.position_sum / acc.citations if acc.citations else None,
            last_cited_at=acc.last_cited_at,
        )
        for url, acc in by_url.items()
    ]
    metrics.sort(key=lambda m: (-m.citation_count, m.normalized_url))
    return metrics


def get_domain_url_leaderboard(
    metrics: Sequence[UrlMetric],
    domain: str,
    limit: int = 20,
) -> List[UrlMetric]:
    """Top cited URLs for one domain."""
    return [m for m in metrics if m.domain == domain][:limit]
