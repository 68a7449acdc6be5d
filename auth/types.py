"""Pydantic models for auth domain."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from auth.exceptions import FailureReason

OTP_PATTERN = r"^\d{6}$"


class CredentialRecord(BaseModel):
    """One administrator account and its security state, as stored."""

    id: UUID
    email: str
    password_hash: str
    name: str
    is_verified: bool  # Required - fail closed, no default
    otp: str | None = None
    otp_expires: datetime | None = None
    reset_token: str | None = None
    reset_token_expires: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    def to_client(self) -> "ClientUser":
        """Project to the view that is safe to return over the wire."""
        return ClientUser(
            id=self.id,
            email=self.email,
            name=self.name,
            is_verified=self.is_verified,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ClientUser(BaseModel):
    """Credential record with every secret removed."""

    id: UUID
    email: str
    name: str
    is_verified: bool
    created_at: datetime
    updated_at: datetime


# Request payloads


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)
    name: str = Field(..., min_length=1, max_length=200)


class VerifyOTPRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=OTP_PATTERN)


class LoginRequest(BaseModel):
    """Login credentials. An OTP may ride along to verify the account in the same call."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)
    otp: str | None = Field(default=None, pattern=OTP_PATTERN)

    @field_validator("otp", mode="before")
    @classmethod
    def blank_otp_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class EmailRequest(BaseModel):
    """Payload for operations keyed only by email (reset request, OTP resend)."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., min_length=1, max_length=256)
    new_password: str = Field(..., alias="newPassword", min_length=1, max_length=256)


def describe_validation_errors(errors: list[dict]) -> str:
    """Turn pydantic error dicts into one short, field-specific message."""
    if not errors:
        return "Invalid input"
    error = errors[0]
    loc = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = loc[-1] if loc else "input"
    if error.get("type") == "missing":
        return f"{field} is required"
    return f"Invalid {field}: {error.get('msg', 'invalid value')}"


# Sessions


class SessionUser(BaseModel):
    """Decoded session: who is signed in, plus the bearer token itself."""

    id: UUID
    email: str
    name: str
    token: str


class IssuedSession(BaseModel):
    """A freshly signed session token."""

    token: str
    user: SessionUser
    issued_at: datetime
    expires_at: datetime


# Operation results


class UserSucceeded(BaseModel):
    success: Literal[True] = True
    message: str
    user: ClientUser


class LoginSucceeded(BaseModel):
    success: Literal[True] = True
    message: str
    token: str
    expires_at: datetime
    user: ClientUser


class MessageSucceeded(BaseModel):
    success: Literal[True] = True
    message: str


class AuthFailure(BaseModel):
    success: Literal[False] = False
    reason: FailureReason
    message: str
    retry_after_seconds: int | None = None


SignupResult = UserSucceeded | AuthFailure
VerifyResult = UserSucceeded | AuthFailure
LoginResult = LoginSucceeded | AuthFailure
MessageResult = MessageSucceeded | AuthFailure
