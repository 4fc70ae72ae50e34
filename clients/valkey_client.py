"""
Valkey (Redis-compatible) client for registration sessions, rate limits
and the token deny-list.

Thin wrapper around redis-py. Connection URL comes from Vault.
Fail-fast: raises on connection failure, never returns fallback values.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Redis-compatible client for Valkey.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set_json("registration:abc", {...}, expire_seconds=1800)
        client.update_json("registration:abc", {...})  # keeps remaining TTL
    """

    def __init__(self, url: str):
        """
        Connect and ping.

        Raises:
            redis.ConnectionError: If Valkey is unreachable
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def ping(self) -> bool:
        """Health check. Raises redis.ConnectionError if unreachable."""
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        """Get value by key. None if the key doesn't exist."""
        return self._client.get(key)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        """Set key to value, optionally with a TTL in seconds."""
        if expire_seconds is not None:
            self._client.setex(key, expire_seconds, value)
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> bool:
        """
        Delete key.

        Returns True only for the caller that actually removed the key, which
        makes it usable as a one-shot consume.
        """
        return self._client.delete(key) > 0

    def ttl(self, key: str) -> int:
        """
        Remaining TTL in seconds.

        Returns:
            -2 if key doesn't exist
            -1 if key has no expiration
            Positive int: remaining seconds
        """
        return self._client.ttl(key)

    def incr(self, key: str) -> int:
        """Increment key by 1, creating it at 1. Returns the new value."""
        return self._client.incr(key)

    def expire(self, key: str, seconds: int) -> bool:
        """Set TTL on an existing key. False if the key doesn't exist."""
        return bool(self._client.expire(key, seconds))

    def set_json(self, key: str, value: dict, expire_seconds: int | None = None) -> None:
        """Store value as JSON, optionally with a TTL."""
        self.set(key, json.dumps(value), expire_seconds)

    def update_json(self, key: str, value: dict) -> bool:
        """
        Overwrite an existing JSON value without touching its TTL.

        Uses SET XX KEEPTTL, so a key that expired meanwhile is not recreated.

        Returns:
            True if the key existed and was updated, False otherwise.
        """
        return bool(self._client.set(key, json.dumps(value), xx=True, keepttl=True))

    def get_json(self, key: str) -> dict | None:
        """
        Get and deserialize a JSON value.

        Returns None if key doesn't exist.
        Raises ValueError if the stored value is not valid JSON.
        """
        value = self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
