"""Tests for RegistrationSessionStore - TTL-bound pending registrations in Valkey."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from auth.otp import new_email_challenge
from auth.registration_store import RegistrationSessionStore
from auth.types import PendingUser
from utils.timezone import now_utc


@pytest.fixture
def store(valkey, config):
    return RegistrationSessionStore(valkey, config)


@pytest.fixture
def pending():
    return PendingUser(name="Ada", email="ada@example.com", phone="+15551234567", password="hunter2hunter2")


class TestCreate:
    def test_fresh_session_state(self, store, pending):
        session = store.create(pending, new_email_challenge(10))

        assert len(session.session_id) == 64
        assert session.email_challenge.verified is False
        assert session.email_challenge.attempts == 0
        assert session.mobile_challenge.verified is False
        assert session.mobile_challenge.attempts == 0
        assert session.expires_at - session.created_at == timedelta(minutes=30)

    def test_native_ttl_set(self, store, valkey, pending):
        session = store.create(pending, new_email_challenge(10))
        assert valkey.ttl(f"registration:{session.session_id}") == 30 * 60

    def test_ids_unique(self, store, pending):
        ids = {store.create(pending, new_email_challenge(10)).session_id for _ in range(20)}
        assert len(ids) == 20


class TestGet:
    def test_roundtrip(self, store, pending):
        session = store.create(pending, new_email_challenge(10))
        loaded = store.get(session.session_id)
        assert loaded == session

    @pytest.mark.parametrize("session_id", ["", "unknown"])
    def test_missing(self, store, session_id):
        assert store.get(session_id) is None

    def test_evicted_by_ttl(self, store, valkey, pending):
        session = store.create(pending, new_email_challenge(10))
        valkey.advance(30 * 60)
        assert store.get(session.session_id) is None

    def test_expired_document_unusable_even_if_not_evicted(self, store, valkey, pending):
        """expires_at is authoritative even when eviction lags."""
        session = store.create(pending, new_email_challenge(10))
        later = now_utc() + timedelta(minutes=31)

        with patch("auth.registration_store.now_utc", return_value=later):
            assert store.get(session.session_id) is None

        assert valkey.get(f"registration:{session.session_id}") is None


class TestSave:
    def test_updates_without_extending_ttl(self, store, valkey, pending):
        session = store.create(pending, new_email_challenge(10))
        valkey.advance(600)

        session.email_challenge.attempts = 3
        assert store.save(session) is True

        assert store.get(session.session_id).email_challenge.attempts == 3
        assert valkey.ttl(f"registration:{session.session_id}") == 20 * 60

    def test_save_after_consume_does_not_resurrect(self, store, pending):
        session = store.create(pending, new_email_challenge(10))
        store.consume(session.session_id)

        assert store.save(session) is False
        assert store.get(session.session_id) is None


class TestConsume:
    def test_only_first_consume_wins(self, store, pending):
        session = store.create(pending, new_email_challenge(10))
        assert store.consume(session.session_id) is True
        assert store.consume(session.session_id) is False
