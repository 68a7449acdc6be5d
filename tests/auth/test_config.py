"""Tests for auth/config.py - Auth configuration with validation."""

import pytest
from pydantic import ValidationError

from auth.config import AuthConfig

SECRET = "s" * 32
RECIPIENT = "ops@example.com"


def make(**overrides) -> AuthConfig:
    return AuthConfig(session_secret=SECRET, notification_recipient=RECIPIENT, **overrides)


class TestAuthConfigDefaults:
    """Tests that AuthConfig has sensible defaults."""

    def test_expiry_defaults(self):
        config = make()
        assert config.otp_expiry_minutes == 15
        assert config.reset_token_expiry_minutes == 60
        assert config.session_expiry_hours == 24

    def test_password_defaults(self):
        config = make()
        assert config.password_hash_rounds == 12
        assert config.password_min_length == 8

    def test_rate_limit_defaults(self):
        config = make()
        assert config.rate_limit_attempts == 5
        assert config.rate_limit_window_minutes == 15

    def test_notification_defaults(self):
        config = make()
        assert config.notify_account_email is False
        assert config.rollback_signup_on_notification_failure is False

    def test_cookie_defaults(self):
        config = make()
        assert config.session_cookie_name == "session_token"
        assert config.session_cookie_secure is True


class TestAuthConfigValidation:
    """Tests that AuthConfig enforces validation bounds."""

    def test_secret_required(self):
        with pytest.raises(ValidationError):
            AuthConfig(notification_recipient=RECIPIENT)

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError):
            AuthConfig(session_secret="too-short", notification_recipient=RECIPIENT)

    def test_recipient_must_be_email(self):
        with pytest.raises(ValidationError):
            AuthConfig(session_secret=SECRET, notification_recipient="not-an-email")

    def test_otp_expiry_bounds(self):
        with pytest.raises(ValidationError):
            make(otp_expiry_minutes=0)
        with pytest.raises(ValidationError):
            make(otp_expiry_minutes=61)

    def test_hash_rounds_min_bound(self):
        with pytest.raises(ValidationError):
            make(password_hash_rounds=3)

    def test_session_expiry_min_bound(self):
        with pytest.raises(ValidationError):
            make(session_expiry_hours=0)


class TestResetPasswordPath:

    def test_default_reset_page_is_public(self):
        config = make()
        assert config.reset_password_path == "/auth/reset-password"
        assert config.reset_password_path in config.public_only_paths

    def test_custom_reset_page_added_to_public_paths(self):
        config = make(reset_password_path="/reset-password")
        assert "/reset-password" in config.public_only_paths
        assert "/auth/login" in config.public_only_paths

    def test_explicit_public_paths_keep_reset_page(self):
        config = make(public_only_paths=["/auth/login"])
        assert config.public_only_paths == ["/auth/login", "/auth/reset-password"]
