"""
Database-Integrated Visibility Pipeline

Glues the pure calculations to storage:
1. Ingest: raw AI response -> query, response and citation rows
2. Scoring run: corpus snapshot -> aggregates -> Visibility Scores (+ history)
3. Competitor refresh: per target domain, fully replaced
4. URL performance refresh
5. Read helpers for trends and query-level drill-downs

Usage:
    from searchable.database import create_db_engine, create_session_factory, session_scope
    from searchable.database.pipeline import IngestRequest, ingest_response

    SessionLocal = create_session_factory(create_db_engine())
    with session_scope(SessionLocal) as db:
        result = ingest_response(db, IngestRequest(
            query="best crm for startups",
            model="gpt-4o",
            raw_response_text="See [Acme](https://www.acme.com/Page/)",
        ))
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.orm import Session

from searchable.citations.extractor import extract_citations
from searchable.competitors.overlap import (
    QueryComparison,
    SharedQueryComparison,
    compare_query,
    compare_shared_queries,
    compute_competitors,
    get_target_queries,
)
from searchable.scoring.aggregation import aggregate_domains
from searchable.scoring.helpers import utc_now
from searchable.scoring.trends import TrendsReport, build_trends, resolve_range
from searchable.scoring.url_performance import aggregate_url_metrics
from searchable.scoring.visibility import compute_scores
from searchable.utils.config import Settings, get_settings

from .repository import (
    get_or_create_query,
    create_response,
    store_citations,
    load_citation_corpus,
    count_queries,
    load_query_citations,
    get_distinct_cited_domains,
    get_query_texts,
    get_daily_citation_counts,
    get_previous_scores,
    upsert_domain_scores,
    get_visibility_scores,
    get_score_history,
    replace_competitor_metrics,
    get_competitors,
    upsert_url_metrics,
)

logger = logging.getLogger(__name__)


# =============================================================================
# INGESTION
# =============================================================================

class IngestValidationError(ValueError):
    """Ingest request rejected before anything was stored."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class IngestRequest(BaseModel):
    """One AI answer to record."""
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(description="User question text (identity is the trimmed text)")
    model: str = Field(description="Name of the AI model that produced the answer")
    raw_response_text: str = Field(
        alias="rawResponseText",
        description="Unprocessed answer text to scan for citations",
    )

    @field_validator("query", "model")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


@dataclass
class IngestResult:
    query_id: UUID
    response_id: UUID
    citation_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query_id": str(self.query_id),
            "response_id": str(self.response_id),
            "citation_count": self.citation_count,
        }


def _validate_request(request: Union[IngestRequest, Mapping[str, Any]]) -> IngestRequest:
    if isinstance(request, IngestRequest):
        return request
    try:
        return IngestRequest.model_validate(request)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise IngestValidationError(f"Invalid ingest request: {fields}", errors=e.errors()) from e


def ingest_response(
    db: Session,
    request: Union[IngestRequest, Mapping[str, Any]],
    settings: Optional[Settings] = None,
) -> IngestResult:
    """
    Store an AI response and the citations extracted from it.

    The query row is reused when its text already exists. Citations are
    written with the same query id as the response.

    Args:
        db: Session (caller commits)
        request: IngestRequest or a mapping with query, model, rawResponseText
        settings: Overrides for URL normalization

    Returns:
        IngestResult with the number of citations inserted

    Raises:
        IngestValidationError: missing or empty fields
    """
    request = _validate_request(request)
    settings = settings or get_settings()

    citations = extract_citations(
        request.raw_response_text,
        keep_params=settings.URL_KEEP_QUERY_PARAMS or None,
    )

    query_id = get_or_create_query(db, request.query)
    response_id = create_response(db, query_id, request.model, request.raw_response_text)
    inserted = store_citations(db, response_id, query_id, citations)

    logger.info(
        f"Ingested response {response_id} ({request.model}): "
        f"{inserted} citations across {len({c.domain for c in citations})} domains"
    )
    return IngestResult(query_id=query_id, response_id=response_id, citation_count=inserted)


# =============================================================================
# VISIBILITY SCORE RUN
# =============================================================================

@dataclass
class RunVisibilityScoreResult:
    computed: int
    computed_at: datetime
    duration_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "computed": self.computed,
            "computed_at": self.computed_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
        }


def run_visibility_score_calculation(
    db: Session,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> RunVisibilityScoreResult:
    """
    Recompute every domain's Visibility Score from the full corpus.

    Re-running over the same corpus overwrites the current scores; each run
    appends one history row per domain.

    Raises:
        Any storage or calculation error, after logging it
    """
    settings = settings or get_settings()
    now = now or utc_now()
    started = time.monotonic()
    logger.info("Visibility score run started")

    try:
        citations = load_citation_corpus(db)
        total_queries = count_queries(db)

        aggregates = aggregate_domains(
            citations,
            total_queries=total_queries,
            now=now,
            half_life_days=settings.RECENCY_HALF_LIFE_DAYS,
            window_days=settings.RECENCY_WINDOW_DAYS,
        )
        results = compute_scores(
            aggregates,
            get_previous_scores(db),
            position_decay_range=settings.POSITION_DECAY_RANGE,
        )
        computed = upsert_domain_scores(db, results, computed_at=now)
    except Exception as e:
        logger.error(f"Visibility score run failed: {e}")
        raise

    duration = time.monotonic() - started
    logger.info(f"Visibility score run finished: {computed} domains in {duration:.2f}s")
    return RunVisibilityScoreResult(computed=computed, computed_at=now, duration_seconds=duration)


# =============================================================================
# COMPETITORS
# =============================================================================

def refresh_competitor_metrics(
    db: Session,
    target_domain: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Recompute and replace competitor metrics.

    Args:
        db: Session (caller commits)
        target_domain: Refresh one target; every cited domain when None
        now: Timestamp written to the rows

    Returns:
        target domain -> number of competitors stored
    """
    now = now or utc_now()
    started = time.monotonic()

    observations = load_query_citations(db)
    scores = get_previous_scores(db)
    targets = [target_domain] if target_domain else get_distinct_cited_domains(db)
    logger.info(f"Competitor refresh started for {len(targets)} target(s)")

    refreshed: Dict[str, int] = {}
    try:
        for target in targets:
            results = compute_competitors(target, observations, scores)
            refreshed[target] = replace_competitor_metrics(db, target, results, computed_at=now)
    except Exception as e:
        logger.error(f"Competitor refresh failed after {len(refreshed)} target(s): {e}")
        raise

    duration = time.monotonic() - started
    logger.info(
        f"Competitor refresh finished: {sum(refreshed.values())} rows "
        f"for {len(refreshed)} target(s) in {duration:.2f}s"
    )
    return refreshed


def get_shared_queries(
    db: Session,
    target_domain: str,
    competitor_domain: str,
) -> List[SharedQueryComparison]:
    """Win/lose/tie per query shared by a target and a competitor."""
    observations = load_query_citations(db)
    texts = get_query_texts(db, get_target_queries(target_domain, observations))
    return compare_shared_queries(target_domain, competitor_domain, observations, query_texts=texts)


def get_query_comparison(
    db: Session,
    target_domain: str,
    competitor_domain: str,
    query_id: Union[UUID, str],
) -> QueryComparison:
    """Both domains' citation count and rank within a single query."""
    query_id = UUID(str(query_id))
    observations = load_query_citations(db, query_id=query_id)
    text = get_query_texts(db, [query_id]).get(query_id)
    return compare_query(target_domain, competitor_domain, query_id, observations, query_text=text)


# =============================================================================
# URL PERFORMANCE
# =============================================================================

def refresh_url_performance_metrics(
    db: Session,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> int:
    """Recompute URL-level metrics for every cited URL. Returns rows written."""
    settings = settings or get_settings()
    now = now or utc_now()
    logger.info("URL performance refresh started")

    try:
        metrics = aggregate_url_metrics(
            load_citation_corpus(db),
            keep_params=settings.URL_KEEP_QUERY_PARAMS or None,
        )
        written = upsert_url_metrics(db, metrics, computed_at=now)
    except Exception as e:
        logger.error(f"URL performance refresh failed: {e}")
        raise

    logger.info(f"URL performance refresh finished: {written} URLs")
    return written


# =============================================================================
# TRENDS
# =============================================================================

def get_trends(
    db: Session,
    domain: str,
    range_key: Optional[str] = None,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> TrendsReport:
    """
    Smoothed score history for a domain and its top two competitors.

    Args:
        db: Session
        domain: Target domain
        range_key: "7d", "30d" or "90d" (anything else means 30d)
        now: End of the range
        settings: Smoothing window override
    """
    settings = settings or get_settings()
    now = now or utc_now()
    key, days = resolve_range(range_key)
    since = now - timedelta(days=days)

    competitors = [c["competitor_domain"] for c in get_competitors(db, domain, limit=2)]
    snapshots = get_score_history(db, [domain] + competitors, since=since)
    citation_days = get_daily_citation_counts(db, domain, since=since)

    current = get_visibility_scores(db, domain=domain)
    current_score = current[0]["score"] if current else None
    current_change = current[0]["change"] if current else None

    return build_trends(
        domain,
        key,
        snapshots,
        citation_days,
        competitors=competitors,
        current_score=current_score,
        current_change=current_change,
        smoothing_days=settings.TRENDS_SMOOTHING_DAYS,
    )
