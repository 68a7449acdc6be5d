"""Tests for auth/exceptions.py - Typed exceptions for auth failures."""

import pytest

from auth.exceptions import (
    AuthError,
    EmailInUseError,
    FailureReason,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidOrExpiredError,
    InvalidSessionError,
    NotificationFailedError,
    RateLimitedError,
    UnverifiedAccountError,
)
from api.base import ErrorCodes


class TestExceptionInheritance:
    """All auth exceptions should inherit from AuthError."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            InvalidInputError,
            EmailInUseError,
            InvalidOrExpiredError,
            UnverifiedAccountError,
            InvalidCredentialsError,
            RateLimitedError,
            NotificationFailedError,
            InvalidSessionError,
        ],
    )
    def test_inherits(self, exc_class):
        assert issubclass(exc_class, AuthError)


class TestReasons:

    def test_reasons_match_error_codes(self):
        for reason in FailureReason:
            assert getattr(ErrorCodes, reason.value) == reason.value

    def test_default_messages(self):
        assert EmailInUseError().message == "Email already in use"
        assert UnverifiedAccountError().message == "Email not verified"
        assert InvalidCredentialsError().message == "Invalid credentials"

    def test_custom_message_overrides_default(self):
        error = InvalidOrExpiredError("Invalid or expired OTP")
        assert error.message == "Invalid or expired OTP"
        assert str(error) == "Invalid or expired OTP"
        assert error.reason is FailureReason.INVALID_OR_EXPIRED


class TestRateLimitedError:
    """RateLimitedError should carry retry timing info."""

    def test_stores_retry_seconds(self):
        error = RateLimitedError(retry_after_seconds=300)
        assert error.retry_after_seconds == 300
        assert error.reason is FailureReason.RATE_LIMITED

    def test_message_includes_seconds(self):
        assert "42" in RateLimitedError(retry_after_seconds=42).message
