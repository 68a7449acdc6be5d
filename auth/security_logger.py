"""Security event logging for auth audit trail.

Append-only log to the security_events table. Never receives passwords,
OTPs or tokens; callers pass only identities and reasons.
"""

from enum import Enum
from typing import Any
from uuid import UUID

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc


class SecurityEvent(Enum):
    """Auth security event types."""

    SIGNUP_CREATED = "signup_created"
    SIGNUP_REJECTED = "signup_rejected"
    SIGNUP_ROLLED_BACK = "signup_rolled_back"
    OTP_SENT = "otp_sent"
    OTP_REISSUED = "otp_reissued"
    OTP_VERIFIED = "otp_verified"
    OTP_REJECTED = "otp_rejected"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGIN_UNVERIFIED = "login_unverified"
    RESET_REQUESTED = "reset_requested"
    RESET_UNKNOWN_EMAIL = "reset_unknown_email"
    RESET_LINK_SENT = "reset_link_sent"
    PASSWORD_RESET = "password_reset"
    RESET_REJECTED = "reset_rejected"
    NOTIFICATION_FAILED = "notification_failed"
    SESSION_REVOKED = "session_revoked"
    RATE_LIMITED = "rate_limited"
    SIGNUPS_PURGED = "signups_purged"


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
        self._db.execute_returning(
            """INSERT INTO security_events
               (event_type, email, user_id, ip_address, user_agent, details, created_at)
               VALUES (%s, %s, %s, %s, %s, %s, %s)
               RETURNING id""",
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
