"""Tests for auth/types.py - request models and result shapes."""

import pytest
from pydantic import ValidationError

from auth.exceptions import FailureReason
from auth.types import (
    AuthFailure,
    LoginRequest,
    MessageSucceeded,
    ResetPasswordRequest,
    SignupRequest,
    VerifyOTPRequest,
    describe_validation_errors,
)


class TestRequests:

    def test_signup_rejects_bad_email(self):
        with pytest.raises(ValidationError):
            SignupRequest(email="nope", password="Secret123!", name="A")

    @pytest.mark.parametrize("otp", ["12345", "1234567", "12a456", ""])
    def test_otp_must_be_six_digits(self, otp):
        with pytest.raises(ValidationError):
            VerifyOTPRequest(email="a@x.com", otp=otp)

    @pytest.mark.parametrize("otp", [None, "", "   "])
    def test_login_blank_otp_is_absent(self, otp):
        request = LoginRequest(email="a@x.com", password="pw", otp=otp)
        assert request.otp is None

    def test_login_malformed_otp_rejected(self):
        with pytest.raises(ValidationError):
            LoginRequest(email="a@x.com", password="pw", otp="abc")

    def test_reset_accepts_alias_and_field_name(self):
        by_alias = ResetPasswordRequest.model_validate({"token": "t", "newPassword": "pw"})
        by_name = ResetPasswordRequest(token="t", new_password="pw")
        assert by_alias.new_password == by_name.new_password == "pw"


class TestDescribeValidationErrors:

    def test_missing_field(self):
        errors = [{"type": "missing", "loc": ("body", "email"), "msg": "Field required"}]
        assert describe_validation_errors(errors) == "email is required"

    def test_invalid_field(self):
        errors = [{"type": "value_error", "loc": ("otp",), "msg": "bad"}]
        assert describe_validation_errors(errors) == "Invalid otp: bad"

    def test_empty(self):
        assert describe_validation_errors([]) == "Invalid input"


class TestResults:

    def test_success_discriminator(self):
        assert MessageSucceeded(message="ok").success is True
        failure = AuthFailure(reason=FailureReason.INVALID_CREDENTIALS, message="Invalid credentials")
        assert failure.success is False
        assert failure.retry_after_seconds is None
