"""Rate limiting for credential-guessing paths (login, OTP, reset).

Uses Valkey with sliding window TTL - each attempt resets the expiry.
Attackers bypassing frontend rate limiting hit an ever-extending lockout.
"""

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.exceptions import RateLimitedError


class RateLimiter:
    """Per-action, per-email attempt counters in Valkey."""

    KEY_PREFIX = "ratelimit:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config
        self._window_seconds = config.rate_limit_window_minutes * 60

    def _key(self, action: str, email: str) -> str:
        """Generate rate limit key for an action and email (normalized to lowercase)."""
        return f"{self.KEY_PREFIX}{action}:{email.lower()}"

    def check_rate_limit(self, action: str, email: str) -> None:
        """Check rate limit and increment counter.

        Sliding window: TTL resets on every attempt. Hammering extends lockout.

        Raises:
            RateLimitedError: If rate limit exceeded.
        """
        key = self._key(action, email)

        count = self._valkey.incr(key)
        self._valkey.expire(key, self._window_seconds)

        if count > self._config.rate_limit_attempts:
            ttl = self._valkey.ttl(key)
            raise RateLimitedError(retry_after_seconds=max(ttl, 1))

    def reset_rate_limit(self, action: str, email: str) -> None:
        """Clear the counter after a successful attempt."""
        self._valkey.delete(self._key(action, email))
