"""Credential store for admin accounts.

Every state transition that consumes a one-time secret (OTP or reset
token) is a single conditional UPDATE ... RETURNING, so two concurrent
requests can never both consume the same secret. Email uniqueness is
enforced by a database constraint, not by a lookup before insert.
"""

import logging
from datetime import datetime
from uuid import UUID

from psycopg2 import errors as pg_errors

from clients.postgres_client import PostgresClient
from auth.exceptions import EmailInUseError
from auth.types import CredentialRecord

logger = logging.getLogger(__name__)

_COLUMNS = """id, email, password_hash, name, is_verified, otp, otp_expires,
              reset_token, reset_token_expires, created_at, updated_at"""

SCHEMA = """
CREATE TABLE IF NOT EXISTS admin_users (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    email TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    name TEXT NOT NULL,
    is_verified BOOLEAN NOT NULL DEFAULT false,
    otp TEXT,
    otp_expires TIMESTAMPTZ,
    reset_token TEXT,
    reset_token_expires TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE UNIQUE INDEX IF NOT EXISTS admin_users_email_key ON admin_users (email);
CREATE INDEX IF NOT EXISTS admin_users_otp_expires_idx ON admin_users (otp_expires);
CREATE UNIQUE INDEX IF NOT EXISTS admin_users_reset_token_key
    ON admin_users (reset_token) WHERE reset_token IS NOT NULL;

CREATE TABLE IF NOT EXISTS security_events (
    id BIGSERIAL PRIMARY KEY,
    event_type TEXT NOT NULL,
    email TEXT,
    user_id UUID,
    ip_address INET,
    user_agent TEXT,
    details JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS security_events_created_at_idx ON security_events (created_at);
"""


class CredentialStore:
    """Database operations for admin credential records."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def ensure_schema(self) -> None:
        """Create tables and indexes if missing. Safe to run on every startup."""
        self._db.execute(SCHEMA)
        logger.info("Credential store schema ready")

    @staticmethod
    def _to_record(row: dict | None) -> CredentialRecord | None:
        if row is None:
            return None
        return CredentialRecord.model_validate(row)

    def _update_one(self, query: str, params: tuple) -> CredentialRecord | None:
        rows = self._db.execute_returning(query, params)
        return self._to_record(rows[0]) if rows else None

    def get_user_by_email(self, email: str) -> CredentialRecord | None:
        """Find record by email (exact match, as stored)."""
        row = self._db.execute_single(
            f"SELECT {_COLUMNS} FROM admin_users WHERE email = %s",
            (email,),
        )
        return self._to_record(row)

    def insert_user(
        self,
        email: str,
        password_hash: str,
        name: str,
        otp: str,
        otp_expires: datetime,
        now: datetime,
    ) -> CredentialRecord:
        """Insert a new unverified record with a pending OTP.

        Raises:
            EmailInUseError: If a record with this email already exists.
        """
        try:
            rows = self._db.execute_returning(
                f"""INSERT INTO admin_users
                       (email, password_hash, name, is_verified, otp, otp_expires,
                        created_at, updated_at)
                    VALUES (%s, %s, %s, false, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}""",
                (email, password_hash, name, otp, otp_expires, now, now),
            )
        except pg_errors.UniqueViolation:
            raise EmailInUseError()
        return self._to_record(rows[0])

    def consume_otp(self, email: str, otp: str, now: datetime) -> CredentialRecord | None:
        """Verify the account if email, OTP and expiry all match; clear the OTP.

        Returns:
            The verified record, or None if nothing live matched.
        """
        return self._update_one(
            f"""UPDATE admin_users
                SET is_verified = true, otp = NULL, otp_expires = NULL, updated_at = %s
                WHERE email = %s AND otp = %s AND otp_expires > %s
                RETURNING {_COLUMNS}""",
            (now, email, otp, now),
        )

    def refresh_otp(
        self,
        email: str,
        otp: str,
        otp_expires: datetime,
        now: datetime,
    ) -> CredentialRecord | None:
        """Replace the pending OTP of an unverified record.

        Returns:
            The updated record, or None if no unverified record has this email.
        """
        return self._update_one(
            f"""UPDATE admin_users
                SET otp = %s, otp_expires = %s, updated_at = %s
                WHERE email = %s AND is_verified = false
                RETURNING {_COLUMNS}""",
            (otp, otp_expires, now, email),
        )

    def store_reset_token(
        self,
        email: str,
        token: str,
        expires: datetime,
        now: datetime,
    ) -> CredentialRecord | None:
        """Attach a pending reset token to the record with this email.

        Returns:
            The updated record, or None if no record has this email.
        """
        return self._update_one(
            f"""UPDATE admin_users
                SET reset_token = %s, reset_token_expires = %s, updated_at = %s
                WHERE email = %s
                RETURNING {_COLUMNS}""",
            (token, expires, now, email),
        )

    def consume_reset_token(
        self,
        token: str,
        password_hash: str,
        now: datetime,
    ) -> CredentialRecord | None:
        """Replace the password hash if the reset token is live; clear the token.

        Returns:
            The updated record, or None if no live token matched.
        """
        return self._update_one(
            f"""UPDATE admin_users
                SET password_hash = %s, reset_token = NULL, reset_token_expires = NULL,
                    updated_at = %s
                WHERE reset_token = %s AND reset_token_expires > %s
                RETURNING {_COLUMNS}""",
            (password_hash, now, token, now),
        )

    def delete_user(self, user_id: UUID) -> bool:
        """Delete a record.

        Returns:
            True if the record existed and was deleted.
        """
        rows = self._db.execute_returning(
            "DELETE FROM admin_users WHERE id = %s RETURNING id",
            (user_id,),
        )
        return len(rows) > 0

    def purge_expired_signups(self, now: datetime) -> int:
        """Delete unverified records whose OTP has expired. Returns count deleted."""
        rows = self._db.execute_returning(
            """DELETE FROM admin_users
               WHERE is_verified = false AND otp_expires < %s
               RETURNING id""",
            (now,),
        )
        return len(rows)
