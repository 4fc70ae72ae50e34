"""Rate limiting for login, password reset and OTP resend requests.

Uses Valkey with sliding window TTL - each attempt resets the expiry.
Callers hammering an endpoint extend their own lockout.
"""

from auth.config import AuthConfig
from auth.exceptions import RateLimitedError
from clients.valkey_client import ValkeyClient


class RateLimiter:
    """Per-key attempt counter. One instance per action, distinguished by scope."""

    KEY_PREFIX = "ratelimit:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig, scope: str):
        self._valkey = valkey
        self._max_attempts = config.rate_limit_attempts
        self._window_seconds = config.rate_limit_window_minutes * 60
        self._scope = scope

    def _key(self, identifier: str) -> str:
        """Rate limit key, normalized to lowercase (emails)."""
        return f"{self.KEY_PREFIX}{self._scope}:{identifier.lower()}"

    def check_rate_limit(self, identifier: str) -> None:
        """Count an attempt and enforce the limit.

        Raises:
            RateLimitedError: If rate limit exceeded.
        """
        key = self._key(identifier)

        count = self._valkey.incr(key)
        self._valkey.expire(key, self._window_seconds)

        if count > self._max_attempts:
            ttl = self._valkey.ttl(key)
            raise RateLimitedError(retry_after_seconds=max(ttl, 1))

    def reset_rate_limit(self, identifier: str) -> None:
        """Clear the counter, e.g. after a successful login."""
        self._valkey.delete(self._key(identifier))
