"""
Test Suite for Database Session Management
"""

import pytest

from searchable.database.models import Query
from searchable.database.repository import count_queries, get_or_create_query
from searchable.database.session import (
    check_db_connection,
    get_database_url,
    session_scope,
)
from searchable.utils.config import Settings


def make_settings(**overrides) -> Settings:
    values = {"DATABASE_URL": None, "POSTGRES_URL": None, "SQLITE_PATH": "test.db"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestDatabaseUrl:
    """Test URL resolution order."""

    def test_database_url_first(self):
        settings = make_settings(DATABASE_URL="postgresql://u:p@db/main", POSTGRES_URL="postgresql://u:p@other/x")
        assert get_database_url(settings) == "postgresql://u:p@db/main"

    def test_postgres_scheme_fixed(self):
        settings = make_settings(POSTGRES_URL="postgres://u:p@db/main")
        assert get_database_url(settings) == "postgresql://u:p@db/main"

    def test_sqlite_fallback(self):
        assert get_database_url(make_settings()) == "sqlite:///test.db"


class TestSessionScope:
    """Test commit and rollback behavior."""

    def test_commit_on_success(self, session_factory):
        with session_scope(session_factory) as db:
            get_or_create_query(db, "best crm")

        with session_scope(session_factory) as db:
            assert count_queries(db) == 1

    def test_rollback_on_error(self, session_factory):
        with pytest.raises(RuntimeError):
            with session_scope(session_factory) as db:
                get_or_create_query(db, "best crm")
                raise RuntimeError("boom")

        with session_scope(session_factory) as db:
            assert db.query(Query).count() == 0

    def test_connection_check(self, engine):
        assert check_db_connection(engine) is True
