"""Authentication service - login, logout, password reset and account management."""

import hashlib
import logging
import secrets
from datetime import timedelta
from uuid import UUID

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import (
    DeliveryError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidTokenError,
    PasswordResetTokenError,
    RateLimitedError,
    UserNotFoundError,
)
from auth.passwords import hash_password, verify_password
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityEvent, SecurityLogger
from auth.session import TokenManager
from auth.types import AuthenticatedUser, User
from auth.validation import validate_email, validate_name, validate_password, validate_phone
from clients.email_client import EmailGatewayClient, EmailGatewayError
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


def hash_reset_token(token: str) -> str:
    """SHA-256 of a reset token; only the hash is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthService:
    """Orchestrates everything after registration.

    Handles:
    - Password login (with per-email rate limiting)
    - Logout (single token revocation)
    - Forgot / reset password (with enumeration protection)
    - Bearer token authentication for the middleware
    - Profile read/update and account deletion
    """

    def __init__(
        self,
        config: AuthConfig,
        auth_db: AuthDatabase,
        token_manager: TokenManager,
        login_limiter: RateLimiter,
        reset_limiter: RateLimiter,
        email_client: EmailGatewayClient,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._auth_db = auth_db
        self._token_manager = token_manager
        self._login_limiter = login_limiter
        self._reset_limiter = reset_limiter
        self._email_client = email_client
        self._security_logger = security_logger
        # Unknown emails are checked against this so both failures cost one bcrypt verify
        self._dummy_hash = hash_password(secrets.token_urlsafe(16), rounds=config.bcrypt_rounds)

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthenticatedUser:
        """Verify email and password and issue a token.

        Flow:
        1. Check per-email rate limit
        2. Look up user and verify bcrypt hash
        3. Reset rate limit, update last_login, issue token

        Raises:
            RateLimitedError: If too many attempts for this email.
            InvalidCredentialsError: Unknown email or wrong password (same message).
        """
        email = (email or "").lower().strip()
        if not email or not password:
            raise InvalidCredentialsError()

        try:
            self._login_limiter.check_rate_limit(email)
        except RateLimitedError:
            self._security_logger.log(
                SecurityEvent.RATE_LIMITED,
                email=email,
                ip_address=ip_address,
                details={"action": "login"},
            )
            raise

        user = self._auth_db.get_user_by_email(email)
        password_hash = self._auth_db.get_password_hash(user.id) if user else self._dummy_hash
        password_ok = verify_password(password, password_hash)

        if user is None or not password_ok:
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email,
                user_id=user.id if user else None,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "user_not_found" if user is None else "wrong_password"},
            )
            raise InvalidCredentialsError()

        self._login_limiter.reset_rate_limit(email)
        self._auth_db.update_last_login(user.id)
        token = self._token_manager.create_token(user.id)

        self._security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        # Refresh user to get updated last_login_at
        user = self._auth_db.get_user_by_id(user.id) or user
        return AuthenticatedUser(user=user, token=token)

    def logout(self, token: str | None, ip_address: str | None = None) -> None:
        """Revoke the bearer token, if any.

        Safe to call with a missing or invalid token.
        """
        if not token:
            return

        try:
            user_id = self._token_manager.validate_token(token).user_id
        except InvalidTokenError:
            user_id = None

        self._token_manager.revoke_token(token)

        if user_id is not None:
            self._security_logger.log(
                SecurityEvent.LOGOUT,
                user_id=user_id,
                ip_address=ip_address,
            )

    def authenticate(self, token: str) -> User:
        """Resolve a bearer token to its user.

        Raises:
            InvalidTokenError: If the token is unusable or the user no longer exists.
        """
        issued = self._token_manager.validate_token(token)
        user = self._auth_db.get_user_by_id(issued.user_id)
        if user is None:
            raise InvalidTokenError("User not found")
        return user

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def request_password_reset(self, email: str, ip_address: str | None = None) -> None:
        """Email a reset link if the account exists.

        Returns normally for unknown emails so callers cannot tell the difference.

        Raises:
            InvalidInputError: Malformed email.
            RateLimitedError: Too many requests for this email.
            DeliveryError: The reset email could not be sent.
        """
        email = validate_email(email)
        self._reset_limiter.check_rate_limit(email)

        user = self._auth_db.get_user_by_email(email)
        if user is None:
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_REQUESTED,
                email=email,
                ip_address=ip_address,
                details={"reason": "user_not_found"},
            )
            logger.info("Password reset requested for unknown email")
            return

        token = secrets.token_urlsafe(32)
        expires_at = now_utc() + timedelta(minutes=self._config.password_reset_expiry_minutes)
        self._auth_db.set_password_reset_token(user.id, hash_reset_token(token), expires_at)

        reset_url = f"{self._config.frontend_url.rstrip('/')}/reset-password?token={token}"
        try:
            self._email_client.send_password_reset(
                email=user.email,
                reset_url=reset_url,
                expires_in_minutes=self._config.password_reset_expiry_minutes,
            )
        except EmailGatewayError as e:
            logger.error(f"Password reset email failed for user {user.id}: {e}")
            raise DeliveryError("Failed to send password reset email. Please try again.")

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_REQUESTED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
        )

    def reset_password(self, token: str, new_password: str, ip_address: str | None = None) -> None:
        """Set a new password from a reset token and revoke every existing token.

        Raises:
            InvalidInputError: New password fails validation.
            PasswordResetTokenError: Token unknown, expired or already used.
        """
        new_password = validate_password(new_password)
        if not token:
            raise PasswordResetTokenError()

        user = self._auth_db.reset_password(
            hash_reset_token(token),
            hash_password(new_password, rounds=self._config.bcrypt_rounds),
        )
        if user is None:
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_FAILED,
                ip_address=ip_address,
                details={"reason": "invalid_or_expired_token"},
            )
            raise PasswordResetTokenError()

        self._token_manager.revoke_all_for_user(user.id)
        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_COMPLETED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
        )

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, user_id: UUID) -> User:
        user = self._auth_db.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError("User not found")
        return user

    def update_profile(
        self,
        user_id: UUID,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> User:
        """Apply the supplied fields; None means unchanged.

        Raises:
            InvalidInputError: A supplied field fails validation.
            EmailAlreadyRegisteredError: The new email belongs to another account.
            UserNotFoundError: The account no longer exists.
        """
        if name is not None:
            name = validate_name(name)
        if email is not None:
            email = validate_email(email)
            if self._auth_db.email_in_use(email, exclude_user_id=user_id):
                raise EmailAlreadyRegisteredError("Email already in use")
        if phone is not None:
            phone = validate_phone(phone)

        user = self._auth_db.update_profile(user_id, name=name, email=email, phone=phone)
        if user is None:
            raise UserNotFoundError("User not found")

        changed = [field for field, value in (("name", name), ("email", email), ("phone", phone)) if value is not None]
        self._security_logger.log(
            SecurityEvent.PROFILE_UPDATED,
            email=user.email,
            user_id=user.id,
            details={"fields": changed},
        )
        return user

    def delete_account(self, user_id: UUID) -> None:
        """Delete the account and revoke every token issued to it.

        Raises:
            UserNotFoundError: The account no longer exists.
        """
        user = self._auth_db.get_user_by_id(user_id)
        if user is None or not self._auth_db.delete_user(user_id):
            raise UserNotFoundError("User not found")

        self._token_manager.revoke_all_for_user(user_id)
        self._security_logger.log(
            SecurityEvent.ACCOUNT_DELETED,
            email=user.email,
            user_id=user_id,
        )
        logger.info(f"Account {user_id} deleted")
