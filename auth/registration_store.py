"""Valkey storage for pending registrations.

One key per session, registration:<session_id>, holding the JSON document.
The TTL is set once at creation and never extended; updates keep the
remaining TTL. Reads also check expires_at, so an expired document is
unusable even if eviction lags behind.
"""

import secrets
from datetime import timedelta

from auth.config import AuthConfig
from auth.types import EmailChallenge, PendingUser, RegistrationSession
from clients.valkey_client import ValkeyClient
from utils.timezone import now_utc


class RegistrationSessionStore:
    """CRUD for RegistrationSession documents with store-enforced expiry."""

    KEY_PREFIX = "registration:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._ttl_seconds = config.registration_session_ttl_minutes * 60

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    def create(self, pending_user: PendingUser, email_challenge: EmailChallenge) -> RegistrationSession:
        """Store a new session with both challenges unverified."""
        now = now_utc()
        session = RegistrationSession(
            session_id=secrets.token_hex(32),
            pending_user=pending_user,
            email_challenge=email_challenge,
            created_at=now,
            expires_at=now + timedelta(seconds=self._ttl_seconds),
        )
        self._valkey.set_json(
            self._key(session.session_id),
            session.model_dump(mode="json"),
            expire_seconds=self._ttl_seconds,
        )
        return session

    def get(self, session_id: str) -> RegistrationSession | None:
        """Load a live session. None if missing or past expires_at."""
        if not session_id:
            return None

        data = self._valkey.get_json(self._key(session_id))
        if data is None:
            return None

        session = RegistrationSession.model_validate(data)
        if now_utc() > session.expires_at:
            self._valkey.delete(self._key(session_id))
            return None
        return session

    def save(self, session: RegistrationSession) -> bool:
        """
        Persist changes to an existing session (last writer wins).

        Returns False if the session expired or was consumed meanwhile.
        """
        return self._valkey.update_json(
            self._key(session.session_id),
            session.model_dump(mode="json"),
        )

    def consume(self, session_id: str) -> bool:
        """
        Delete a session. Only one caller ever gets True for a given session,
        so the result gates account creation.
        """
        return self._valkey.delete(self._key(session_id))
