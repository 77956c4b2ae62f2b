"""
Pytest Configuration and Shared Fixtures

Provides an in-memory SQLite database per test and small citation corpora
for the pure calculation tests.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import List
from uuid import uuid4

from searchable.competitors.overlap import QueryCitation
from searchable.database.session import (
    create_db_engine,
    create_session_factory,
    init_db,
)
from searchable.scoring.aggregation import CitationRecord


# ============================================================================
# Time
# ============================================================================

@pytest.fixture
def now() -> datetime:
    """Fixed reference time for recency calculations."""
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables."""
    engine = create_db_engine("sqlite://", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    """Session for a single test; rolled back afterwards."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Corpus Fixtures
# ============================================================================

class CorpusBuilder:
    """Builds CitationRecord lists with increasing ids."""

    def __init__(self, created_at: datetime):
        self.created_at = created_at
        self.records: List[CitationRecord] = []

    def response(self, query_id, *urls_and_domains, created_at: datetime = None):
        response_id = uuid4()
        for url, domain in urls_and_domains:
            self.records.append(CitationRecord(
                id=len(self.records) + 1,
                response_id=response_id,
                query_id=query_id,
                url=url,
                domain=domain,
                created_at=created_at or self.created_at,
            ))
        return response_id


@pytest.fixture
def corpus_builder(now):
    return CorpusBuilder(created_at=now)


@pytest.fixture
def sample_corpus(corpus_builder) -> List[CitationRecord]:
    """
    Two queries:
    - q1: a.com (1st), b.com (2nd)
    - q2: b.com (1st)
    """
    corpus_builder.response(
        "q1",
        ("https://a.com/x", "a.com"),
        ("https://b.com/y", "b.com"),
    )
    corpus_builder.response("q2", ("https://b.com/y", "b.com"))
    return corpus_builder.records


@pytest.fixture
def overlap_observations() -> List[QueryCitation]:
    """
    q1: acme x1, rival x2, other x1
    q2: acme x1, rival x1, third x1
    q3: other x1 (acme absent)
    q4: acme x1
    """
    rows = [
        ("q1", "acme.com"), ("q1", "rival.com"), ("q1", "rival.com"), ("q1", "other.com"),
        ("q2", "acme.com"), ("q2", "rival.com"), ("q2", "third.com"),
        ("q3", "other.com"),
        ("q4", "acme.com"),
    ]
    return [QueryCitation(query_id=q, domain=d) for q, d in rows]


@pytest.fixture
def days_ago(now):
    """Helper returning now - n days."""
    def _days_ago(n: float) -> datetime:
        return now - timedelta(days=n)
    return _days_ago
