"""Session token issuing and decoding.

Sessions are HS256-signed JWTs carrying the user's id, email and name.
Nothing is stored per session; logout records the token's jti in Valkey
until the token would have expired anyway.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any
from uuid import UUID

import jwt
import redis

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.exceptions import InvalidSessionError
from auth.types import ClientUser, IssuedSession, SessionUser
from utils.timezone import from_timestamp, now_utc

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "email", "name", "jti", "iat", "exp"]


class SessionManager:
    """Signs session tokens on login and validates them on every request."""

    ALGORITHM = "HS256"
    REVOKED_KEY_PREFIX = "session:revoked:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config

    def _revoked_key(self, jti: str) -> str:
        """Generate Valkey key for a revoked token id."""
        return f"{self.REVOKED_KEY_PREFIX}{jti}"

    def issue(self, user: ClientUser) -> IssuedSession:
        """Sign a new session token for a verified user."""
        now = now_utc().replace(microsecond=0)
        expires_at = now + timedelta(hours=self._config.session_expiry_hours)

        payload = {
            "sub": str(user.id),
            "email": user.email,
            "name": user.name,
            "jti": secrets.token_urlsafe(16),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._config.session_secret, algorithm=self.ALGORITHM)

        return IssuedSession(
            token=token,
            user=SessionUser(id=user.id, email=user.email, name=user.name, token=token),
            issued_at=now,
            expires_at=expires_at,
        )

    def _verify_claims(self, token: str) -> dict[str, Any]:
        """Check signature, expiry and claim shape.

        Raises:
            InvalidSessionError: If the token fails any check.
        """
        try:
            claims = jwt.decode(
                token,
                self._config.session_secret,
                algorithms=[self.ALGORITHM],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidSessionError("Session has expired")
        except jwt.InvalidTokenError:
            raise InvalidSessionError()

        try:
            UUID(claims["sub"])
        except (TypeError, ValueError, AttributeError):
            raise InvalidSessionError()
        for claim in ("email", "name", "jti"):
            if not isinstance(claims[claim], str):
                raise InvalidSessionError()

        return claims

    def decode(self, token: str | None) -> SessionUser | None:
        """Return the session for a token, or None if it isn't a live session.

        Never raises: malformed, tampered, expired and revoked tokens are all
        simply unauthenticated.
        """
        if not token:
            return None

        try:
            claims = self._verify_claims(token)
        except InvalidSessionError:
            return None

        try:
            if self._valkey.exists(self._revoked_key(claims["jti"])):
                return None
        except redis.RedisError:
            logger.exception("Revocation check failed; treating session as invalid")
            return None

        return SessionUser(
            id=UUID(claims["sub"]),
            email=claims["email"],
            name=claims["name"],
            token=token,
        )

    def revoke(self, token: str) -> bool:
        """Revoke a token (logout).

        Safe to call with invalid or expired tokens.

        Returns:
            True if a live token was revoked.
        """
        try:
            claims = self._verify_claims(token)
        except InvalidSessionError:
            return False

        remaining = int((from_timestamp(claims["exp"]) - now_utc()).total_seconds())
        self._valkey.set(self._revoked_key(claims["jti"]), "1", expire_seconds=max(remaining, 1))
        return True
