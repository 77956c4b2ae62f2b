"""
Database Module - Persistent Storage for Citations and Visibility Metrics

This module provides:
- SQLAlchemy models for queries, responses, citations and derived metrics
- Engine/session factories (dependency-injected, no global connection)
- Repository functions that take an explicit Session
- Pipeline operations: ingest, scoring run, competitor and URL refreshes

Usage:
    from searchable.database import (
        create_db_engine, create_session_factory, session_scope, init_db,
        ingest_response, run_visibility_score_calculation,
    )

    engine = create_db_engine()
    init_db(engine)
    SessionLocal = create_session_factory(engine)

    with session_scope(SessionLocal) as db:
        run_visibility_score_calculation(db)
"""

from .models import (
    Base,
    Query,
    Response,
    Citation,
    DomainVisibilityScore,
    DomainVisibilityScoreHistory,
    CompetitorMetric,
    UrlPerformanceMetric,
)

from .session import (
    get_database_url,
    create_db_engine,
    create_session_factory,
    session_scope,
    init_db,
    check_db_connection,
)

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
    get_url_leaderboard,
)

from .pipeline import (
    IngestRequest,
    IngestResult,
    IngestValidationError,
    RunVisibilityScoreResult,
    ingest_response,
    run_visibility_score_calculation,
    refresh_competitor_metrics,
    refresh_url_performance_metrics,
    get_shared_queries,
    get_query_comparison,
    get_trends,
)

__all__ = [
    # Models
    "Base",
    "Query",
    "Response",
    "Citation",
    "DomainVisibilityScore",
    "DomainVisibilityScoreHistory",
    "CompetitorMetric",
    "UrlPerformanceMetric",

    # Session
    "get_database_url",
    "create_db_engine",
    "create_session_factory",
    "session_scope",
    "init_db",
    "check_db_connection",

    # Repository
    "get_or_create_query",
    "create_response",
    "store_citations",
    "load_citation_corpus",
    "count_queries",
    "load_query_citations",
    "get_distinct_cited_domains",
    "get_query_texts",
    "get_daily_citation_counts",
    "get_previous_scores",
    "upsert_domain_scores",
    "get_visibility_scores",
    "get_score_history",
    "replace_competitor_metrics",
    "get_competitors",
    "upsert_url_metrics",
    "get_url_leaderboard",

    # Pipeline
    "IngestRequest",
    "IngestResult",
    "IngestValidationError",
    "RunVisibilityScoreResult",
    "ingest_response",
    "run_visibility_score_calculation",
    "refresh_competitor_metrics",
    "refresh_url_performance_metrics",
    "get_shared_queries",
    "get_query_comparison",
    "get_trends",
]
