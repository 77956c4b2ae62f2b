"""
SQLAlchemy Models for the Searchable Visibility Engine

Design Principles:
1. Ingested data (queries, responses, citations) is append-only
2. Citations are unique per (response, canonical URL) - inserts are idempotent
3. Derived tables (scores, competitor metrics, URL metrics) are upserted per run
4. Score history is append-only for trend charts
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text,
    ForeignKey, Index, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# INGESTED DATA
# =============================================================================

class Query(Base):
    """User question that triggered AI responses. Stored once per distinct text."""
    __tablename__ = "queries"

    id = Column(Uuid, primary_key=True, default=uuid4)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    responses = relationship("Response", back_populates="query", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("text", name="uq_queries_text"),
    )


class Response(Base):
    """A single AI model answer (raw text) for a query."""
    __tablename__ = "responses"

    id = Column(Uuid, primary_key=True, default=uuid4)
    query_id = Column(Uuid, ForeignKey("queries.id", ondelete="CASCADE"), nullable=False)
    model = Column(String(255), nullable=False)
    raw_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    query = relationship("Query", back_populates="responses")
    citations = relationship("Citation", back_populates="response", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_responses_query", "query_id"),
    )


class Citation(Base):
    """
    Extracted citation (canonical URL) from a response.

    query_id mirrors responses.query_id for (domain, query) lookups; it is
    always written from the same value as the parent response.
    Integer ids keep insertion order, which is the tie-break for positions.
    """
    __tablename__ = "citations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    response_id = Column(Uuid, ForeignKey("responses.id", ondelete="CASCADE"), nullable=False)
    query_id = Column(Uuid, ForeignKey("queries.id", ondelete="CASCADE"), nullable=True)

    url = Column(Text, nullable=False)       # canonical URL
    domain = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    response = relationship("Response", back_populates="citations")

    __table_args__ = (
        UniqueConstraint("response_id", "url", name="uq_citations_response_url"),
        Index("idx_citations_domain", "domain"),
        Index("idx_citations_domain_query", "domain", "query_id"),
    )


# =============================================================================
# DERIVED DATA
# =============================================================================

class DomainVisibilityScore(Base):
    """Current Visibility Score per domain (upserted by each scoring run)."""
    __tablename__ = "domain_visibility_scores"

    domain = Column(String(255), primary_key=True)
    score = Column(Float, nullable=False)
    previous_score = Column(Float)
    change = Column(Float)
    computed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class DomainVisibilityScoreHistory(Base):
    """Append-only score history (one row per domain per run)."""
    __tablename__ = "domain_visibility_score_history"

    id = Column(Uuid, primary_key=True, default=uuid4)
    domain = Column(String(255), nullable=False)
    score = Column(Float, nullable=False)
    computed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_score_history_domain_time", "domain", "computed_at"),
    )


class CompetitorMetric(Base):
    """
    Pre-aggregated competitor metrics for fast dashboard access.

    Fully replaced per target domain on each refresh.
    """
    __tablename__ = "competitor_metrics"

    id = Column(Uuid, primary_key=True, default=uuid4)
    target_domain = Column(String(255), nullable=False)
    competitor_domain = Column(String(255), nullable=False)

    overlap_score = Column(Float, nullable=False)          # shared / total target queries
    shared_queries = Column(Integer, nullable=False)
    total_queries_target = Column(Integer, nullable=False)
    competitor_visibility_score = Column(Float)
    competitor_rank = Column(Integer)                      # RANK() by visibility score
    share_of_voice = Column(Float)

    computed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("target_domain", "competitor_domain", name="uq_competitor_metrics_pair"),
        Index("idx_competitor_metrics_target", "target_domain"),
    )


class UrlPerformanceMetric(Base):
    """URL-level citation metrics (content attribution)."""
    __tablename__ = "url_performance_metrics"

    normalized_url = Column(Text, primary_key=True)
    domain = Column(String(255), nullable=False)
    citation_count = Column(Integer, nullable=False, default=0)
    unique_query_count = Column(Integer, nullable=False, default=0)
    avg_position = Column(Float)
    last_cited_at = Column(DateTime(timezone=True))
    computed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_url_metrics_domain", "domain"),
        Index("idx_url_metrics_domain_citations", "domain", "citation_count"),
    )
