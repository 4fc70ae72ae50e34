"""Tests for PostgresClient - pooled psycopg2 with per-user RLS setting."""

from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest

from clients.postgres_client import PostgresClient
from utils.user_context import user_context

TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
DSN = "postgresql://onego@localhost/onego_test"


@pytest.fixture
def pool():
    """ThreadedConnectionPool double; extras registration is a no-op."""
    PostgresClient._connection_pools.clear()
    with patch("clients.postgres_client.psycopg2.pool.ThreadedConnectionPool") as pool_cls, \
            patch("clients.postgres_client.psycopg2.extras.register_uuid"), \
            patch("clients.postgres_client.psycopg2.extras.register_default_jsonb"):
        yield pool_cls.return_value
    PostgresClient._connection_pools.clear()


@pytest.fixture
def conn(pool):
    connection = MagicMock()
    pool.getconn.return_value = connection
    return connection


@pytest.fixture
def cursor(conn):
    """The cursor used by execute() (RealDictCursor)."""
    cur = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cur
    return cur


class TestPool:
    def test_one_pool_per_dsn(self, pool):
        with patch("clients.postgres_client.psycopg2.pool.ThreadedConnectionPool") as pool_cls:
            PostgresClient(DSN)
            PostgresClient(DSN)
        assert pool_cls.call_count == 1

    def test_close_closes_pool(self, pool):
        client = PostgresClient(DSN)
        client.close()
        pool.closeall.assert_called_once()
        assert DSN not in PostgresClient._connection_pools


class TestRLSContext:
    """app.current_user_id follows the request's user."""

    def test_sets_user_from_contextvar(self, pool, conn, cursor):
        client = PostgresClient(DSN)
        with user_context(TEST_USER_ID):
            with client.get_connection():
                pass
        cursor.execute.assert_any_call("SET app.current_user_id = %s", (str(TEST_USER_ID),))

    def test_empty_without_user(self, pool, conn, cursor):
        client = PostgresClient(DSN)
        with client.get_connection():
            pass
        cursor.execute.assert_any_call("SET app.current_user_id = %s", ("",))

    def test_rollback_and_return_on_error(self, pool, conn, cursor):
        client = PostgresClient(DSN)
        with pytest.raises(RuntimeError):
            with client.get_connection():
                raise RuntimeError("boom")
        conn.rollback.assert_called_once()
        pool.putconn.assert_called_once_with(conn)


class TestExecuteMethods:
    def test_execute_returns_dicts_and_commits(self, pool, conn, cursor):
        cursor.description = [("answer",)]
        cursor.fetchall.return_value = [{"answer": 42}]

        rows = PostgresClient(DSN).execute("SELECT 42 AS answer")

        assert rows == [{"answer": 42}]
        conn.commit.assert_called_once()

    def test_execute_without_result_set_returns_empty_list(self, pool, conn, cursor):
        cursor.description = None
        assert PostgresClient(DSN).execute("UPDATE users SET name = name") == []

    def test_execute_single_none_when_empty(self, pool, conn, cursor):
        cursor.description = [("id",)]
        cursor.fetchall.return_value = []
        assert PostgresClient(DSN).execute_single("SELECT id FROM users WHERE false") is None

    def test_uuid_params_converted(self):
        params = PostgresClient._convert_params((TEST_USER_ID, [TEST_USER_ID], {"k": TEST_USER_ID}))
        assert params == (str(TEST_USER_ID), [str(TEST_USER_ID)], {"k": str(TEST_USER_ID)})
