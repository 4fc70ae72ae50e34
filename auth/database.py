"""Database operations for user accounts.

Uses the non-RLS users table: auth code reads it before any user context
exists. Emails are stored lower-cased with a unique index.
"""

from datetime import datetime
from uuid import UUID

import psycopg2.errors

from auth.exceptions import EmailAlreadyRegisteredError
from auth.types import User
from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

_USER_COLUMNS = """id, name, email, phone, is_email_verified, is_phone_verified,
                   two_factor_enabled, created_at, last_login_at"""


def _row_to_user(row: dict) -> User:
    return User(
        id=UUID(row["id"]) if isinstance(row["id"], str) else row["id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        is_email_verified=row["is_email_verified"],
        is_phone_verified=row["is_phone_verified"],
        two_factor_enabled=row["two_factor_enabled"],
        created_at=row["created_at"],
        last_login_at=row["last_login_at"],
    )


class AuthDatabase:
    """Database operations for user accounts."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_user_by_email(self, email: str) -> User | None:
        """Find user by email (case-insensitive)."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = lower(%s)",
            (email,),
        )
        return _row_to_user(row) if row else None

    def get_user_by_id(self, user_id: UUID) -> User | None:
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            (str(user_id),),
        )
        return _row_to_user(row) if row else None

    def get_password_hash(self, user_id: UUID) -> str | None:
        """The only query that reads password_hash."""
        row = self._db.execute_single(
            "SELECT password_hash FROM users WHERE id = %s",
            (str(user_id),),
        )
        return row["password_hash"] if row else None

    def email_in_use(self, email: str, exclude_user_id: UUID | None = None) -> bool:
        """True if another account already has this email."""
        row = self._db.execute_single(
            "SELECT id FROM users WHERE email = lower(%s) AND id IS DISTINCT FROM %s",
            (email, str(exclude_user_id) if exclude_user_id else None),
        )
        return row is not None

    def create_user(
        self,
        name: str,
        email: str,
        phone: str,
        password_hash: str,
        is_email_verified: bool = False,
        is_phone_verified: bool = False,
    ) -> User:
        """
        Insert a new account.

        Raises:
            EmailAlreadyRegisteredError: If the email is taken (unique index).
        """
        try:
            row = self._db.execute_single(
                f"""INSERT INTO users
                    (name, email, phone, password_hash, is_email_verified, is_phone_verified)
                    VALUES (%s, lower(%s), %s, %s, %s, %s)
                    RETURNING {_USER_COLUMNS}""",
                (name, email, phone, password_hash, is_email_verified, is_phone_verified),
            )
        except psycopg2.errors.UniqueViolation:
            raise EmailAlreadyRegisteredError("Email already registered")
        return _row_to_user(row)

    def update_profile(
        self,
        user_id: UUID,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> User | None:
        """
        Update the given fields; None means unchanged.

        Returns the updated user, or None if not found.

        Raises:
            EmailAlreadyRegisteredError: If the new email is taken.
        """
        try:
            row = self._db.execute_single(
                f"""UPDATE users SET
                        name = COALESCE(%s, name),
                        email = COALESCE(lower(%s), email),
                        phone = COALESCE(%s, phone),
                        updated_at = %s
                    WHERE id = %s
                    RETURNING {_USER_COLUMNS}""",
                (name, email, phone, now_utc(), str(user_id)),
            )
        except psycopg2.errors.UniqueViolation:
            raise EmailAlreadyRegisteredError("Email already in use")
        return _row_to_user(row) if row else None

    def update_last_login(self, user_id: UUID) -> None:
        self._db.execute(
            "UPDATE users SET last_login_at = %s WHERE id = %s",
            (now_utc(), str(user_id)),
        )

    def set_password_reset_token(self, user_id: UUID, token_hash: str, expires_at: datetime) -> None:
        """Store the SHA-256 of a reset token. Replaces any earlier token."""
        self._db.execute(
            """UPDATE users
               SET password_reset_token_hash = %s, password_reset_expires_at = %s
               WHERE id = %s""",
            (token_hash, expires_at, str(user_id)),
        )

    def reset_password(self, token_hash: str, password_hash: str) -> User | None:
        """
        Consume a reset token and set the new password in one statement.

        The token must be unexpired. Returns the user, or None if no live token
        matched (unknown, expired, or already used).
        """
        now = now_utc()
        row = self._db.execute_single(
            f"""UPDATE users
                SET password_hash = %s,
                    password_reset_token_hash = NULL,
                    password_reset_expires_at = NULL,
                    updated_at = %s
                WHERE password_reset_token_hash = %s
                  AND password_reset_expires_at > %s
                RETURNING {_USER_COLUMNS}""",
            (password_hash, now, token_hash, now),
        )
        return _row_to_user(row) if row else None

    def delete_user(self, user_id: UUID) -> bool:
        """Delete the account; activity logs cascade. False if not found."""
        rows = self._db.execute(
            "DELETE FROM users WHERE id = %s RETURNING id",
            (str(user_id),),
        )
        return len(rows) > 0
