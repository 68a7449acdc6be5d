"""Typed exceptions for auth failures."""

from enum import Enum


class FailureReason(str, Enum):
    """Machine-readable reason carried by a failed auth operation."""

    VALIDATION = "VALIDATION_ERROR"
    EMAIL_IN_USE = "EMAIL_IN_USE"
    INVALID_OR_EXPIRED = "INVALID_OR_EXPIRED"
    UNVERIFIED = "EMAIL_NOT_VERIFIED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    RATE_LIMITED = "RATE_LIMITED"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"
    INTERNAL = "INTERNAL_ERROR"


class AuthError(Exception):
    """Base class for authentication/authorization errors.

    Every subclass maps to one FailureReason and carries a message that is
    safe to show to the client.
    """

    reason: FailureReason = FailureReason.INTERNAL
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(AuthError):
    """A required field is missing or malformed."""

    reason = FailureReason.VALIDATION
    default_message = "Invalid input"


class EmailInUseError(AuthError):
    """Signup attempted with an email that already has an account."""

    reason = FailureReason.EMAIL_IN_USE
    default_message = "Email already in use"


class InvalidOrExpiredError(AuthError):
    """
    OTP or reset token does not match a live record.

    Deliberately does not say whether the code was wrong, expired or
    already used.
    """

    reason = FailureReason.INVALID_OR_EXPIRED
    default_message = "Invalid or expired code"


class UnverifiedAccountError(AuthError):
    """Login attempted before the signup code was verified."""

    reason = FailureReason.UNVERIFIED
    default_message = "Email not verified"


class InvalidCredentialsError(AuthError):
    """
    Wrong password or unknown email.

    Both causes share one message so login can't be used to discover
    which emails are registered.
    """

    reason = FailureReason.INVALID_CREDENTIALS
    default_message = "Invalid credentials"


class RateLimitedError(AuthError):
    """Too many attempts. Client should wait before retrying."""

    reason = FailureReason.RATE_LIMITED

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Too many attempts. Retry after {retry_after_seconds} seconds.")


class NotificationFailedError(AuthError):
    """The verification email could not be sent and the operation was rolled back."""

    reason = FailureReason.NOTIFICATION_FAILED
    default_message = "Could not send the verification code. Please try again."


class InvalidSessionError(AuthError):
    """Session token is malformed, wrongly signed, expired or revoked."""

    default_message = "Session is invalid or has expired"
