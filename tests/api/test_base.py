"""Tests for api/base.py - Unified API response format."""

from datetime import timezone

from api.base import (
    success_response,
    error_response,
    ErrorCodes,
)


class TestSuccessResponse:
    """Tests for success_response()."""

    def test_structure(self):
        resp = success_response({"foo": "bar"}, "Done")
        assert resp.success is True
        assert resp.message == "Done"
        assert resp.data == {"foo": "bar"}
        assert resp.error is None

    def test_message_optional(self):
        assert success_response({}).message is None

    def test_request_id_generated(self):
        resp = success_response({})
        assert resp.meta.request_id

    def test_timestamp_is_utc(self):
        resp = success_response({})
        assert resp.meta.timestamp.tzinfo == timezone.utc


class TestErrorResponse:
    """Tests for error_response()."""

    def test_structure(self):
        resp = error_response("TEST_ERROR", "Something went wrong")
        assert resp.success is False
        assert resp.data is None
        assert resp.message == "Something went wrong"
        assert resp.error.code == "TEST_ERROR"
        assert resp.error.message == "Something went wrong"

    def test_request_ids_unique(self):
        assert error_response("ERR", "msg").meta.request_id != error_response("ERR", "msg").meta.request_id


class TestErrorCodes:

    def test_auth_codes(self):
        assert ErrorCodes.NOT_AUTHENTICATED == "NOT_AUTHENTICATED"
        assert ErrorCodes.EMAIL_NOT_VERIFIED == "EMAIL_NOT_VERIFIED"
        assert ErrorCodes.RATE_LIMITED == "RATE_LIMITED"

    def test_has_validation_error(self):
        assert ErrorCodes.VALIDATION_ERROR == "VALIDATION_ERROR"

    def test_has_internal_error(self):
        assert ErrorCodes.INTERNAL_ERROR == "INTERNAL_ERROR"
