"""Tests for AuthDatabase - SQL issued against a mocked PostgresClient."""

from datetime import timedelta
from unittest.mock import Mock
from uuid import UUID

import psycopg2.errors
import pytest

from auth.database import AuthDatabase
from auth.exceptions import EmailAlreadyRegisteredError
from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

USER_ID = UUID("00000000-0000-0000-0000-000000000001")


def _row(**overrides) -> dict:
    row = {
        "id": USER_ID,
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+15551234567",
        "is_email_verified": True,
        "is_phone_verified": True,
        "two_factor_enabled": False,
        "created_at": now_utc(),
        "last_login_at": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def postgres():
    return Mock(spec=PostgresClient)


@pytest.fixture
def database(postgres):
    return AuthDatabase(postgres)


class TestLookups:
    def test_get_user_by_email_is_case_insensitive(self, database, postgres):
        postgres.execute_single.return_value = _row()

        user = database.get_user_by_email("ADA@example.com")

        sql, params = postgres.execute_single.call_args.args
        assert "lower(%s)" in sql
        assert params == ("ADA@example.com",)
        assert user.id == USER_ID

    def test_missing_user(self, database, postgres):
        postgres.execute_single.return_value = None
        assert database.get_user_by_email("nobody@example.com") is None
        assert database.get_user_by_id(USER_ID) is None

    def test_string_id_converted(self, database, postgres):
        postgres.execute_single.return_value = _row(id=str(USER_ID))
        assert database.get_user_by_id(USER_ID).id == USER_ID

    def test_user_model_never_selects_password(self, database, postgres):
        postgres.execute_single.return_value = _row()

        database.get_user_by_id(USER_ID)

        sql = postgres.execute_single.call_args.args[0]
        assert "password_hash" not in sql

    def test_get_password_hash(self, database, postgres):
        postgres.execute_single.return_value = {"password_hash": "$2b$04$abc"}
        assert database.get_password_hash(USER_ID) == "$2b$04$abc"

    def test_email_in_use_excludes_user(self, database, postgres):
        postgres.execute_single.return_value = None

        assert database.email_in_use("ada@example.com", exclude_user_id=USER_ID) is False

        params = postgres.execute_single.call_args.args[1]
        assert params == ("ada@example.com", str(USER_ID))


class TestWrites:
    def test_create_user(self, database, postgres):
        postgres.execute_single.return_value = _row()

        user = database.create_user("Ada Lovelace", "ada@example.com", "+15551234567", "hash", True, True)

        params = postgres.execute_single.call_args.args[1]
        assert params == ("Ada Lovelace", "ada@example.com", "+15551234567", "hash", True, True)
        assert user.email == "ada@example.com"

    def test_create_user_unique_violation(self, database, postgres):
        postgres.execute_single.side_effect = psycopg2.errors.UniqueViolation()

        with pytest.raises(EmailAlreadyRegisteredError):
            database.create_user("Ada Lovelace", "ada@example.com", "+15551234567", "hash")

    def test_update_profile_unique_violation(self, database, postgres):
        postgres.execute_single.side_effect = psycopg2.errors.UniqueViolation()

        with pytest.raises(EmailAlreadyRegisteredError, match="in use"):
            database.update_profile(USER_ID, email="taken@example.com")

    def test_update_profile_none_means_unchanged(self, database, postgres):
        postgres.execute_single.return_value = _row(name="Countess")

        database.update_profile(USER_ID, name="Countess")

        sql, params = postgres.execute_single.call_args.args
        assert "COALESCE" in sql
        assert params[:3] == ("Countess", None, None)
        assert params[-1] == str(USER_ID)

    def test_reset_password_requires_live_token(self, database, postgres):
        postgres.execute_single.return_value = None

        assert database.reset_password("token-hash", "new-hash") is None

        sql, params = postgres.execute_single.call_args.args
        assert "password_reset_expires_at > %s" in sql
        assert params[0] == "new-hash"
        assert params[2] == "token-hash"

    def test_set_password_reset_token(self, database, postgres):
        expires = now_utc() + timedelta(hours=1)

        database.set_password_reset_token(USER_ID, "token-hash", expires)

        assert postgres.execute.call_args.args[1] == ("token-hash", expires, str(USER_ID))

    def test_delete_user(self, database, postgres):
        postgres.execute.return_value = [{"id": USER_ID}]
        assert database.delete_user(USER_ID) is True

        postgres.execute.return_value = []
        assert database.delete_user(USER_ID) is False
