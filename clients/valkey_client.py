"""
Valkey (Redis-compatible) client backing rate-limit counters and the
session revocation list.

Both uses are short-lived keys with a TTL, so the surface is small:
counters (incr/expire/ttl/delete) and markers (set/exists).
Connection URL from Vault. Errors propagate as redis exceptions.
"""

import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Thin wrapper over redis-py with string responses.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.incr("ratelimit:login:a@x.com")
        client.expire("ratelimit:login:a@x.com", 900)
    """

    def __init__(self, url: str):
        """
        Connect and verify the server answers.

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        """Store a marker, optionally expiring after expire_seconds."""
        if expire_seconds is not None:
            self._client.setex(key, expire_seconds, value)
        else:
            self._client.set(key, value)

    def exists(self, key: str) -> bool:
        return self._client.exists(key) > 0

    def delete(self, key: str) -> bool:
        """Remove key. False if there was nothing to remove."""
        return self._client.delete(key) > 0

    def incr(self, key: str) -> int:
        """Increment a counter, creating it at 1. Returns the new count."""
        return self._client.incr(key)

    def expire(self, key: str, seconds: int) -> bool:
        """(Re)start a key's TTL. False if the key doesn't exist."""
        return bool(self._client.expire(key, seconds))

    def ttl(self, key: str) -> int:
        """
        Seconds until key expires.

        -2 if the key is missing, -1 if it never expires.
        """
        return self._client.ttl(key)

    def close(self) -> None:
        self._client.close()
        logger.info("ValkeyClient closed")
