"""Unified API response format and error codes."""

from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from utils.timezone import now_utc


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


class APIMeta(BaseModel):
    """Metadata included in every API response."""

    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Unique request identifier for tracing")


class APIResponse(BaseModel):
    """
    Unified response format for all API endpoints.

    Every endpoint returns this structure, making client parsing predictable.
    `message` is always a short sentence fit to show the user.
    """

    success: bool
    message: str | None = None
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def _meta() -> APIMeta:
    return APIMeta(timestamp=now_utc(), request_id=str(uuid4()))


def success_response(data: Any = None, message: str | None = None) -> APIResponse:
    """Create a success response."""
    return APIResponse(
        success=True,
        message=message,
        data=data,
        error=None,
        meta=_meta(),
    )


def error_response(code: str, message: str) -> APIResponse:
    """Create an error response."""
    return APIResponse(
        success=False,
        message=message,
        data=None,
        error=APIError(code=code, message=message),
        meta=_meta(),
    )


class ErrorCodes:
    """Standard error codes for consistent error handling."""

    # Authentication & Authorization
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    INVALID_OR_EXPIRED = "INVALID_OR_EXPIRED"
    RATE_LIMITED = "RATE_LIMITED"

    # Resource Errors
    EMAIL_IN_USE = "EMAIL_IN_USE"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Infrastructure
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
