"""Bearer token lifecycle: issue, validate, revoke.

Tokens are HMAC-signed JWTs. Valkey holds what signatures cannot express:

- revoked_token:<jti>   a single revoked token (logout), TTL = its remaining life
- token_version:<id>    per-user counter embedded in every token as "ver";
                        bumping it revokes all earlier tokens (account
                        deletion, password reset). No TTL: losing it would
                        resurrect old tokens.
"""

import logging
import secrets
from datetime import timedelta
from uuid import UUID

import jwt

from auth.config import AuthConfig
from auth.exceptions import InvalidTokenError
from auth.types import IssuedToken
from clients.valkey_client import ValkeyClient
from utils.timezone import now_utc, seconds_until

logger = logging.getLogger(__name__)


class TokenManager:
    """Issue and validate signed session tokens."""

    REVOKED_TOKEN_PREFIX = "revoked_token:"
    TOKEN_VERSION_PREFIX = "token_version:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig, secret: str):
        if not secret:
            raise ValueError("JWT signing secret is required")
        self._valkey = valkey
        self._config = config
        self._secret = secret

    def _version_key(self, user_id: UUID) -> str:
        return f"{self.TOKEN_VERSION_PREFIX}{user_id}"

    def _current_version(self, user_id: UUID) -> int:
        value = self._valkey.get(self._version_key(user_id))
        return int(value) if value is not None else 0

    def create_token(self, user_id: UUID) -> IssuedToken:
        """Sign a new token for user_id, valid for jwt_expiry_hours."""
        # JWT timestamps are whole seconds
        now = now_utc().replace(microsecond=0)
        expires_at = now + timedelta(hours=self._config.jwt_expiry_hours)
        jti = secrets.token_urlsafe(16)

        token = jwt.encode(
            {
                "sub": str(user_id),
                "jti": jti,
                "ver": self._current_version(user_id),
                "iat": now,
                "exp": expires_at,
                "iss": self._config.app_name,
            },
            self._secret,
            algorithm=self._config.jwt_algorithm,
        )

        return IssuedToken(
            token=token,
            user_id=user_id,
            jti=jti,
            issued_at=now,
            expires_at=expires_at,
        )

    def _decode(self, token: str) -> tuple[IssuedToken, int]:
        """Verify signature, issuer and expiry. Returns the token and its version."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._config.jwt_algorithm],
                issuer=self._config.app_name,
                options={"require": ["sub", "jti", "ver", "iat", "exp"]},
            )
            user_id = UUID(claims["sub"])
            version = int(claims["ver"])
        except (jwt.InvalidTokenError, ValueError, TypeError) as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        issued = IssuedToken(
            token=token,
            user_id=user_id,
            jti=claims["jti"],
            issued_at=claims["iat"],
            expires_at=claims["exp"],
        )
        return issued, version

    def validate_token(self, token: str) -> IssuedToken:
        """
        Verify signature, expiry and revocation.

        Raises:
            InvalidTokenError: For any reason the token cannot be used.
        """
        issued, version = self._decode(token)

        if self._valkey.get(f"{self.REVOKED_TOKEN_PREFIX}{issued.jti}") is not None:
            raise InvalidTokenError("Token has been revoked")

        if version != self._current_version(issued.user_id):
            raise InvalidTokenError("Token has been revoked")

        return issued

    def revoke_token(self, token: str) -> None:
        """
        Revoke a single token (logout).

        Safe to call with an invalid or already expired token.
        """
        try:
            issued, _ = self._decode(token)
        except InvalidTokenError:
            return

        ttl = seconds_until(issued.expires_at)
        if ttl > 0:
            self._valkey.set(f"{self.REVOKED_TOKEN_PREFIX}{issued.jti}", "1", expire_seconds=ttl)

    def revoke_all_for_user(self, user_id: UUID) -> None:
        """Revoke every token issued to user_id so far."""
        self._valkey.incr(self._version_key(user_id))
        logger.info(f"Revoked all tokens for user {user_id}")
