"""
Repository Layer - Clean Interface for Data Operations

Provides simple functions to store and retrieve data.
Handles all SQLAlchemy complexity internally; every function takes the
caller's Session and never commits, so the caller owns the transaction.

Rows leaving this module are converted to typed records (CitationRecord,
QueryCitation, ScoreSnapshot) or plain dicts for the read boundary.
"""

import logging
from collections import Counter
from datetime import date, datetime
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from searchable.citations.extractor import ExtractedCitation
from searchable.competitors.overlap import CompetitorResult, QueryCitation
from searchable.scoring.aggregation import CitationRecord
from searchable.scoring.helpers import as_utc, utc_now
from searchable.scoring.trends import ScoreSnapshot
from searchable.scoring.url_performance import UrlMetric
from searchable.scoring.visibility import DomainScoreResult

from .models import (
    Query, Response, Citation,
    DomainVisibilityScore, DomainVisibilityScoreHistory,
    CompetitorMetric, UrlPerformanceMetric,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DIALECT HELPERS
# =============================================================================

def _insert(db: Session, model):
    """INSERT construct with ON CONFLICT support for the session's dialect."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported on dialect '{dialect}'")


# =============================================================================
# INGESTION
# =============================================================================

def get_or_create_query(db: Session, text: str) -> UUID:
    """
    Return the id of the query with this (trimmed) text, creating it if needed.

    Concurrent ingests of the same text converge on one row through the
    unique constraint on queries.text.
    """
    text = text.strip()
    stmt = (
        _insert(db, Query)
        .values(id=uuid4(), text=text, created_at=utc_now())
        .on_conflict_do_nothing(index_elements=["text"])
    )
    db.execute(stmt)
    return db.query(Query.id).filter(Query.text == text).scalar()


def create_response(db: Session, query_id: UUID, model: str, raw_text: str) -> UUID:
    """Store a new AI response and return its id."""
    response = Response(
        query_id=query_id,
        model=model,
        raw_text=raw_text,
        created_at=utc_now(),
    )
    db.add(response)
    db.flush()
    return response.id


def store_citations(
    db: Session,
    response_id: UUID,
    query_id: UUID,
    citations: Sequence[ExtractedCitation],
    created_at: Optional[datetime] = None,
) -> int:
    """
    Insert extracted citations for a response, in extraction order.

    Duplicates of an existing (response_id, url) pair are ignored, so
    re-processing a response never double-counts.

    Returns:
        Number of rows actually inserted
    """
    created_at = created_at or utc_now()
    inserted = 0

    for citation in citations:
        stmt = (
            _insert(db, Citation)
            .values(
                response_id=response_id,
                query_id=query_id,
                url=citation.url,
                domain=citation.domain,
                created_at=created_at,
            )
            .on_conflict_do_nothing(index_elements=["response_id", "url"])
        )
        result = db.execute(stmt)
        inserted += max(result.rowcount or 0, 0)

    skipped = len(citations) - inserted
    if skipped:
        logger.debug(f"Response {response_id}: {skipped} duplicate citations ignored")
    return inserted


# =============================================================================
# CORPUS SNAPSHOTS
# =============================================================================

def load_citation_corpus(db: Session) -> List[CitationRecord]:
    """Every citation joined with its response's query, as typed records."""
    rows = (
        db.query(
            Citation.id,
            Citation.response_id,
            func.coalesce(Citation.query_id, Response.query_id),
            Citation.url,
            Citation.domain,
            Citation.created_at,
        )
        .join(Response, Response.id == Citation.response_id)
        .all()
    )
    return [
        CitationRecord(
            id=row[0],
            response_id=row[1],
            query_id=row[2],
            url=row[3],
            domain=row[4],
            created_at=as_utc(row[5]),
        )
        for row in rows
    ]


def count_queries(db: Session) -> int:
    return db.query(func.count(Query.id)).scalar() or 0


def load_query_citations(db: Session, query_id: Optional[Hashable] = None) -> List[QueryCitation]:
    """One (query, domain) pair per stored citation, optionally for one query."""
    query_col = func.coalesce(Citation.query_id, Response.query_id)
    query = (
        db.query(query_col, Citation.domain)
        .join(Response, Response.id == Citation.response_id)
    )
    if query_id is not None:
        query = query.filter(Response.query_id == query_id)
    rows = query.all()
    return [QueryCitation(query_id=row[0], domain=row[1]) for row in rows]


def get_distinct_cited_domains(db: Session) -> List[str]:
    rows = db.query(Citation.domain).distinct().order_by(Citation.domain).all()
    return [row[0] for row in rows]


def get_query_texts(db: Session, query_ids: Iterable[Hashable]) -> Dict[Hashable, str]:
    """query_id -> text for the given ids."""
    ids = list(set(query_ids))
    if not ids:
        return {}
    rows = db.query(Query.id, Query.text).filter(Query.id.in_(ids)).all()
    return {row[0]: row[1] for row in rows}


def get_daily_citation_counts(
    db: Session,
    domain: str,
    since: Optional[datetime] = None,
) -> Dict[date, int]:
    """UTC day -> number of citations for a domain."""
    query = db.query(Citation.created_at).filter(Citation.domain == domain)
    if since is not None:
        query = query.filter(Citation.created_at >= since)
    return dict(Counter(as_utc(row[0]).date() for row in query.all()))


# =============================================================================
# VISIBILITY SCORES
# =============================================================================

def get_previous_scores(db: Session) -> Dict[str, float]:
    """Current stored score per domain (becomes 'previous' for the next run)."""
    rows = db.query(DomainVisibilityScore.domain, DomainVisibilityScore.score).all()
    return {row[0]: row[1] for row in rows}


def upsert_domain_scores(
    db: Session,
    results: Sequence[DomainScoreResult],
    computed_at: Optional[datetime] = None,
) -> int:
    """
    Upsert one score row per domain and append the run to the history table.

    Returns:
        Number of domains written
    """
    computed_at = computed_at or utc_now()

    for result in results:
        stmt = _insert(db, DomainVisibilityScore).values(
            domain=result.domain,
            score=result.score,
            previous_score=result.previous_score,
            change=result.change,
            computed_at=computed_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["domain"],
            set_={
                "score": stmt.excluded.score,
                "previous_score": stmt.excluded.previous_score,
                "change": stmt.excluded.change,
                "computed_at": stmt.excluded.computed_at,
            },
        )
        db.execute(stmt)

        db.add(DomainVisibilityScoreHistory(
            domain=result.domain,
            score=result.score,
            computed_at=computed_at,
        ))

    db.flush()
    return len(results)


def _score_to_dict(row: DomainVisibilityScore) -> Dict[str, Any]:
    return {
        "domain": row.domain,
        "score": row.score,
        "previous_score": row.previous_score,
        "change": row.change,
        "computed_at": as_utc(row.computed_at).isoformat() if row.computed_at else None,
    }


def get_visibility_scores(
    db: Session,
    domain: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Current scores, highest first.

    Args:
        db: Session
        domain: Restrict to one domain
        limit: Maximum rows returned
    """
    # Upserts bypass the ORM, so refresh instances already in the session
    query = db.query(DomainVisibilityScore).populate_existing()
    if domain:
        query = query.filter(DomainVisibilityScore.domain == domain)
    query = query.order_by(DomainVisibilityScore.score.desc(), DomainVisibilityScore.domain)
    if limit:
        query = query.limit(limit)
    return [_score_to_dict(row) for row in query.all()]


def get_score_history(
    db: Session,
    domains: Sequence[str],
    since: Optional[datetime] = None,
) -> List[ScoreSnapshot]:
    """History rows for the given domains, oldest first."""
    if not domains:
        return []
    query = db.query(DomainVisibilityScoreHistory).filter(
        DomainVisibilityScoreHistory.domain.in_(list(domains))
    )
    if since is not None:
        query = query.filter(DomainVisibilityScoreHistory.computed_at >= since)
    rows = query.order_by(DomainVisibilityScoreHistory.computed_at).all()
    return [
        ScoreSnapshot(domain=row.domain, score=row.score, computed_at=as_utc(row.computed_at))
        for row in rows
    ]


# =============================================================================
# COMPETITOR METRICS
# =============================================================================

def replace_competitor_metrics(
    db: Session,
    target_domain: str,
    results: Sequence[CompetitorResult],
    computed_at: Optional[datetime] = None,
) -> int:
    """Delete the target's competitor rows and insert the fresh set."""
    computed_at = computed_at or utc_now()

    db.query(CompetitorMetric).filter(
        CompetitorMetric.target_domain == target_domain
    ).delete(synchronize_session=False)

    for r in results:
        db.add(CompetitorMetric(
            target_domain=target_domain,
            competitor_domain=r.competitor_domain,
            overlap_score=r.overlap_score,
            shared_queries=r.shared_queries,
            total_queries_target=r.total_queries_target,
            competitor_visibility_score=r.competitor_visibility_score,
            competitor_rank=r.competitor_rank,
            share_of_voice=r.share_of_voice,
            computed_at=computed_at,
        ))

    db.flush()
    return len(results)


def get_competitors(db: Session, target_domain: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Stored competitors for a target, by rank (unranked last), then overlap.
    """
    query = (
        db.query(CompetitorMetric)
        .filter(CompetitorMetric.target_domain == target_domain)
        .order_by(
            CompetitorMetric.competitor_rank.is_(None),
            CompetitorMetric.competitor_rank,
            CompetitorMetric.overlap_score.desc(),
            CompetitorMetric.competitor_domain,
        )
    )
    if limit:
        query = query.limit(limit)

    return [
        {
            "target_domain": row.target_domain,
            "competitor_domain": row.competitor_domain,
            "overlap_score": row.overlap_score,
            "shared_queries": row.shared_queries,
            "total_queries_target": row.total_queries_target,
            "competitor_visibility_score": row.competitor_visibility_score,
            "competitor_rank": row.competitor_rank,
            "share_of_voice": row.share_of_voice,
            "computed_at": as_utc(row.computed_at).isoformat() if row.computed_at else None,
        }
        for row in query.all()
    ]


# =============================================================================
# URL PERFORMANCE
# =============================================================================

def upsert_url_metrics(
    db: Session,
    metrics: Sequence[UrlMetric],
    computed_at: Optional[datetime] = None,
) -> int:
    """Upsert one row per canonical URL."""
    computed_at = computed_at or utc_now()

    for m in metrics:
        stmt = _insert(db, UrlPerformanceMetric).values(
            normalized_url=m.normalized_url,
            domain=m.domain,
            citation_count=m.citation_count,
            unique_query_count=m.unique_query_count,
            avg_position=m.avg_position,
            last_cited_at=m.last_cited_at,
            computed_at=computed_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["normalized_url"],
            set_={
                "domain": stmt.excluded.domain,
                "citation_count": stmt.excluded.citation_count,
                "unique_query_count": stmt.excluded.unique_query_count,
                "avg_position": stmt.excluded.avg_position,
                "last_cited_at": stmt.excluded.last_cited_at,
                "computed_at": stmt.excluded.computed_at,
            },
        )
        db.execute(stmt)

    return len(metrics)


def get_url_leaderboard(
    db: Session,
    domain: Optional[str] = None,
    limit: int = 20,
) -> List[UrlMetric]:
    """Most cited URLs, optionally for a single domain."""
    query = db.query(UrlPerformanceMetric).populate_existing()
    if domain:
        query = query.filter(UrlPerformanceMetric.domain == domain)
    rows = (
        query.order_by(
            UrlPerformanceMetric.citation_count.desc(),
            UrlPerformanceMetric.normalized_url,
        )
        .limit(limit)
        .all()
    )
    return [
        UrlMetric(
            normalized_url=row.normalized_url,
            domain=row.domain,
            citation_count=row.citation_count,
            unique_query_count=row.unique_query_count,
            avg_position=row.avg_position,
            last_cited_at=as_utc(row.last_cited_at) if row.last_cited_at else None,
        )
        for row in rows
    ]
