"""Shared test fixtures for the admin auth test suite."""

import os
import threading
import time
from pathlib import Path
from unittest.mock import Mock
from uuid import uuid4

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

from auth.config import AuthConfig
from auth.exceptions import EmailInUseError
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.session import SessionManager
from auth.types import CredentialRecord
from clients.email_client import EmailGatewayClient


# =============================================================================
# TEST CONSTANTS
# =============================================================================

TEST_SESSION_SECRET = "test-session-secret-0123456789abcdef0123456789"
ADMIN_INBOX = "admin@panel.example.com"


# =============================================================================
# IN-MEMORY DOUBLES
# =============================================================================


class InMemoryValkey:
    """Dict-backed stand-in for ValkeyClient with the same method surface."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._expiry: dict[str, float] = {}

    def _purge(self, key: str) -> None:
        deadline = self._expiry.get(key)
        if deadline is not None and time.monotonic() >= deadline:
            self._data.pop(key, None)
            self._expiry.pop(key, None)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        self._data[key] = value
        if expire_seconds is not None:
            self._expiry[key] = time.monotonic() + expire_seconds
        else:
            self._expiry.pop(key, None)

    def delete(self, key: str) -> bool:
        self._expiry.pop(key, None)
        return self._data.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        self._purge(key)
        return key in self._data

    def ttl(self, key: str) -> int:
        self._purge(key)
        if key not in self._data:
            return -2
        if key not in self._expiry:
            return -1
        return max(int(self._expiry[key] - time.monotonic()), 0)

    def expire(self, key: str, seconds: int) -> bool:
        self._purge(key)
        if key not in self._data:
            return False
        self._expiry[key] = time.monotonic() + seconds
        return True

    def incr(self, key: str) -> int:
        self._purge(key)
        value = int(self._data.get(key, "0")) + 1
        self._data[key] = str(value)
        return value

    def close(self) -> None:
        pass


class InMemoryCredentialStore:
    """CredentialStore semantics over a dict, guarded by a lock.

    Each method is one critical section, mirroring the single conditional
    statements the Postgres store issues.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.records: dict[str, CredentialRecord] = {}

    def ensure_schema(self) -> None:
        pass

    def get_user_by_email(self, email):
        with self._lock:
            return self.records.get(email)

    def insert_user(self, email, password_hash, name, otp, otp_expires, now):
        with self._lock:
            if email in self.records:
                raise EmailInUseError()
            record = CredentialRecord(
                id=uuid4(),
                email=email,
                password_hash=password_hash,
                name=name,
                is_verified=False,
                otp=otp,
                otp_expires=otp_expires,
                created_at=now,
                updated_at=now,
            )
            self.records[email] = record
            return record

    def consume_otp(self, email, otp, now):
        with self._lock:
            record = self.records.get(email)
            if record is None or record.otp != otp or record.otp_expires is None:
                return None
            if record.otp_expires <= now:
                return None
            updated = record.model_copy(update={
                "is_verified": True,
                "otp": None,
                "otp_expires": None,
                "updated_at": now,
            })
            self.records[email] = updated
            return updated

    def refresh_otp(self, email, otp, otp_expires, now):
        with self._lock:
            record = self.records.get(email)
            if record is None or record.is_verified:
                return None
            updated = record.model_copy(update={
                "otp": otp,
                "otp_expires": otp_expires,
                "updated_at": now,
            })
            self.records[email] = updated
            return updated

    def store_reset_token(self, email, token, expires, now):
        with self._lock:
            record = self.records.get(email)
            if record is None:
                return None
            updated = record.model_copy(update={
                "reset_token": token,
                "reset_token_expires": expires,
                "updated_at": now,
            })
            self.records[email] = updated
            return updated

    def consume_reset_token(self, token, password_hash, now):
        with self._lock:
            for email, record in self.records.items():
                if record.reset_token != token or record.reset_token_expires is None:
                    continue
                if record.reset_token_expires <= now:
                    return None
                updated = record.model_copy(update={
                    "password_hash": password_hash,
                    "reset_token": None,
                    "reset_token_expires": None,
                    "updated_at": now,
                })
                self.records[email] = updated
                return updated
            return None

    def delete_user(self, user_id):
        with self._lock:
            for email, record in list(self.records.items()):
                if record.id == user_id:
                    del self.records[email]
                    return True
            return False

    def purge_expired_signups(self, now):
        with self._lock:
            expired = [
                email for email, record in self.records.items()
                if not record.is_verified and record.otp_expires is not None
                and record.otp_expires < now
            ]
            for email in expired:
                del self.records[email]
            return len(expired)


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def config():
    """Test config: cheap bcrypt, small rate limits, plain-HTTP cookies."""
    return AuthConfig(
        session_secret=TEST_SESSION_SECRET,
        notification_recipient=ADMIN_INBOX,
        password_hash_rounds=4,
        rate_limit_attempts=3,
        rate_limit_window_minutes=5,
        session_expiry_hours=1,
        session_cookie_secure=False,
        app_base_url="https://admin.example.com",
    )


@pytest.fixture
def memory_valkey():
    return InMemoryValkey()


@pytest.fixture
def credential_store():
    return InMemoryCredentialStore()


@pytest.fixture
def mock_email_client():
    """Mock email client - no actual emails sent in tests."""
    mock = Mock(spec=EmailGatewayClient)
    mock.send_otp.return_value = None
    mock.send_password_reset_link.return_value = None
    return mock


@pytest.fixture
def mock_security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def session_manager(memory_valkey, config):
    return SessionManager(memory_valkey, config)


@pytest.fixture
def rate_limiter(memory_valkey, config):
    return RateLimiter(memory_valkey, config)


@pytest.fixture
def auth_service(
    config,
    credential_store,
    session_manager,
    rate_limiter,
    mock_email_client,
    mock_security_logger,
):
    """AuthService over in-memory store and Valkey, mocked email and audit log."""
    return AuthService(
        config=config,
        credential_store=credential_store,
        session_manager=session_manager,
        rate_limiter=rate_limiter,
        email_client=mock_email_client,
        security_logger=mock_security_logger,
    )


@pytest.fixture
def last_otp(mock_email_client):
    """Returns the OTP passed to the most recent send_otp call."""
    return lambda: mock_email_client.send_otp.call_args.args[1]


@pytest.fixture
def last_reset_token(mock_email_client):
    """Returns the token embedded in the most recent reset link."""

    def _token():
        reset_url = mock_email_client.send_password_reset_link.call_args.args[1]
        return reset_url.split("token=", 1)[1]

    return _token


# =============================================================================
# LIVE INFRASTRUCTURE FIXTURES (opt-in)
# =============================================================================


@pytest.fixture(scope="session")
def db():
    """Session-scoped PostgresClient. Skips unless TEST_DATABASE_URL is set."""
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL not set")

    from clients.postgres_client import PostgresClient

    client = PostgresClient(url)
    yield client
    client.close()


@pytest.fixture(scope="session")
def valkey():
    """Session-scoped ValkeyClient. Skips unless TEST_VALKEY_URL is set."""
    url = os.getenv("TEST_VALKEY_URL")
    if not url:
        pytest.skip("TEST_VALKEY_URL not set")

    from clients.valkey_client import ValkeyClient

    client = ValkeyClient(url)
    yield client
    client.close()
