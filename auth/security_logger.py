"""Security event logging for the auth audit trail.

Append-only log in the security_events table (no RLS). Events are written
whether or not the operation succeeded, so failed OTP and login attempts
remain visible after the registration session is gone.
"""

from enum import Enum
from typing import Any
from uuid import UUID

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc


class SecurityEvent(Enum):
    """Auth security event types."""

    REGISTRATION_STARTED = "registration_started"
    REGISTRATION_COMPLETED = "registration_completed"
    EMAIL_OTP_SENT = "email_otp_sent"
    EMAIL_OTP_VERIFIED = "email_otp_verified"
    EMAIL_OTP_FAILED = "email_otp_failed"
    EMAIL_OTP_LOCKED = "email_otp_locked"
    MOBILE_OTP_SENT = "mobile_otp_sent"
    MOBILE_OTP_FAILED = "mobile_otp_failed"
    OTP_DELIVERY_FAILED = "otp_delivery_failed"
    OTP_RESENT = "otp_resent"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    RATE_LIMITED = "rate_limited"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET_COMPLETED = "password_reset_completed"
    PASSWORD_RESET_FAILED = "password_reset_failed"
    PROFILE_UPDATED = "profile_updated"
    ACCOUNT_DELETED = "account_deleted"


class SecurityLogger:
    """Append-only security event logger."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def log(
        self,
        event: SecurityEvent,
        email: str | None = None,
        user_id: UUID | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log security event to database."""
        self._db.execute(
            """INSERT INTO security_events
               (event_type, email, user_id, ip_address, user_agent, details, created_at)
               VALUES (%s, %s, %s, %s, %s, %s, %s)""",
            (
                event.value,
                email,
                str(user_id) if user_id else None,
                ip_address,
                user_agent,
                Json(details) if details else None,
                now_utc(),
            ),
        )
