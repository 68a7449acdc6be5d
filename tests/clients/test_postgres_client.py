"""Tests for PostgresClient - pooled PostgreSQL access.

Requires a live database via TEST_DATABASE_URL; skipped otherwise.
"""

from uuid import UUID, uuid4

import pytest
from psycopg2 import errors as pg_errors

from clients.postgres_client import PostgresClient


class TestConvertParams:
    """Parameter conversion needs no connection."""

    def test_uuids_become_strings(self):
        client = PostgresClient.__new__(PostgresClient)
        value = uuid4()

        assert client._convert_params((value, [value], {"k": value})) == (
            str(value), [str(value)], {"k": str(value)},
        )

    def test_none_passthrough(self):
        client = PostgresClient.__new__(PostgresClient)
        assert client._convert_params(None) is None


class TestPostgresClientInit:
    """Connection pool initialization."""

    def test_creates_pool_with_valid_url(self, db):
        """Valid URL creates working connection pool."""
        assert db.execute_single("SELECT 1 AS one") == {"one": 1}


class TestExecuteMethods:
    """Query execution methods."""

    def test_execute_returns_list_of_dicts(self, db):
        """execute() returns list of row dicts."""
        assert db.execute("SELECT 1 as num, 'hello' as word") == [{"num": 1, "word": "hello"}]

    def test_execute_empty_returns_empty_list(self, db):
        """No matching rows returns [], not None."""
        assert db.execute("SELECT 1 WHERE false") == []

    def test_execute_single_returns_none_when_empty(self, db):
        assert db.execute_single("SELECT 1 WHERE false") is None

    def test_uuid_columns_come_back_as_uuid(self, db):
        value = uuid4()
        row = db.execute_single("SELECT %s::uuid AS id", (value,))
        assert row["id"] == value
        assert isinstance(row["id"], UUID)


class TestErrorRecovery:

    def test_connection_usable_after_failed_statement(self, db):
        db.execute("CREATE TEMP TABLE IF NOT EXISTS pg_client_scratch (k TEXT PRIMARY KEY)")

        with pytest.raises(pg_errors.Error):
            db.execute("SELECT * FROM table_that_does_not_exist")

        assert db.execute_single("SELECT 2 AS two") == {"two": 2}
