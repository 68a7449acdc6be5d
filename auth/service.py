"""Authentication service - orchestrates signup, OTP verification, login and password reset."""

import logging
import secrets
from datetime import timedelta
from typing import Callable, TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel, ValidationError

from auth.config import AuthConfig
from auth.database import CredentialStore
from auth.session import SessionManager
from auth.rate_limiter import RateLimiter
from auth.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.types import (
    AuthFailure,
    CredentialRecord,
    EmailRequest,
    LoginRequest,
    LoginResult,
    LoginSucceeded,
    MessageResult,
    MessageSucceeded,
    ResetPasswordRequest,
    SessionUser,
    SignupRequest,
    SignupResult,
    UserSucceeded,
    VerifyOTPRequest,
    VerifyResult,
    describe_validation_errors,
)
from auth.exceptions import (
    AuthError,
    EmailInUseError,
    FailureReason,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidOrExpiredError,
    NotificationFailedError,
    RateLimitedError,
    UnverifiedAccountError,
)
from clients.email_client import EmailGatewayClient, EmailGatewayError
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

INTERNAL_ERROR_MESSAGE = "An internal error occurred"
RESET_REQUESTED_MESSAGE = "If this email exists, a reset link has been sent"
OTP_RESENT_MESSAGE = "If this account is awaiting verification, a new code has been sent"


def generate_otp() -> str:
    """Six random digits, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def generate_reset_token() -> str:
    """URL-safe reset token with 256 bits of entropy."""
    return secrets.token_urlsafe(32)


class AuthService:
    """Orchestrates credential authentication.

    Handles:
    - Signup with an emailed one-time passcode
    - OTP verification (and resending a fresh code)
    - Password login and session issuing
    - Password reset request and completion
    - Logout

    Public operations never raise. Each one returns either its success
    model or an AuthFailure carrying a FailureReason and a client-safe
    message; unexpected errors are logged and reported as INTERNAL.
    """

    LOGIN_ACTION = "login"
    VERIFY_ACTION = "verify_otp"
    RESET_ACTION = "password_reset"
    RESEND_ACTION = "resend_otp"

    def __init__(
        self,
        config: AuthConfig,
        credential_store: CredentialStore,
        session_manager: SessionManager,
        rate_limiter: RateLimiter,
        email_client: EmailGatewayClient,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._store = credential_store
        self._session_manager = session_manager
        self._rate_limiter = rate_limiter
        self._email_client = email_client
        self._security_logger = security_logger

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run(self, operation: str, func: Callable, *args):
        """Translate everything func raises into an AuthFailure."""
        try:
            return func(*args)
        except RateLimitedError as e:
            return AuthFailure(
                reason=e.reason,
                message=e.message,
                retry_after_seconds=e.retry_after_seconds,
            )
        except AuthError as e:
            return AuthFailure(reason=e.reason, message=e.message)
        except Exception:
            logger.exception(f"{operation} failed unexpectedly")
            return AuthFailure(reason=FailureReason.INTERNAL, message=INTERNAL_ERROR_MESSAGE)

    @staticmethod
    def _parse(model: type[ModelT], **fields) -> ModelT:
        try:
            return model(**fields)
        except ValidationError as e:
            raise InvalidInputError(describe_validation_errors(e.errors()))

    def _check_new_password(self, password: str) -> None:
        if len(password) < self._config.password_min_length:
            raise InvalidInputError(
                f"Password must be at least {self._config.password_min_length} characters"
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise InvalidInputError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    def _check_rate_limit(
        self,
        action: str,
        email: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> None:
        try:
            self._rate_limiter.check_rate_limit(action, email)
        except RateLimitedError:
            self._security_logger.log(
                SecurityEvent.RATE_LIMITED,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"action": action},
            )
            raise

    def _recipient(self, record: CredentialRecord) -> str:
        """Operator inbox by default; the account's own email when configured."""
        if self._config.notify_account_email:
            return record.email
        return str(self._config.notification_recipient)

    def _deliver(
        self,
        record: CredentialRecord,
        kind: str,
        send: Callable[[str], None],
        ip_address: str | None,
    ) -> bool:
        """Send one notification. Failures are logged, never raised.

        Returns:
            True if the gateway accepted the message.
        """
        try:
            send(self._recipient(record))
        except EmailGatewayError as e:
            logger.error(f"Could not deliver {kind} email for user {record.id}: {e}")
            self._security_logger.log(
                SecurityEvent.NOTIFICATION_FAILED,
                email=record.email,
                user_id=record.id,
                ip_address=ip_address,
                details={"kind": kind},
            )
            return False
        return True

    def _send_otp(self, record: CredentialRecord, otp: str, ip_address: str | None) -> bool:
        delivered = self._deliver(
            record,
            "otp",
            lambda recipient: self._email_client.send_otp(
                recipient, otp, self._config.otp_expiry_minutes
            ),
            ip_address,
        )
        if delivered:
            self._security_logger.log(
                SecurityEvent.OTP_SENT,
                email=record.email,
                user_id=record.id,
                ip_address=ip_address,
            )
        return delivered

    def _reset_url(self, token: str) -> str:
        base = self._config.app_base_url.rstrip("/")
        return f"{base}{self._config.reset_password_path}?{urlencode({'token': token})}"

    # ------------------------------------------------------------------
    # Signup
    # ------------------------------------------------------------------

    def signup(
        self,
        email: str,
        password: str,
        name: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> SignupResult:
        """Create an unverified account and send its verification code.

        Flow:
        1. Validate input and password policy
        2. Hash password, generate OTP
        3. Insert record (database rejects duplicate emails)
        4. Send OTP; on failure keep the record unless rollback is configured
        """
        return self._run("signup", self._signup, email, password, name, ip_address, user_agent)

    def _signup(
        self,
        email: str,
        password: str,
        name: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> UserSucceeded:
        request = self._parse(SignupRequest, email=email, password=password, name=name)
        self._check_new_password(request.password)

        now = now_utc()
        otp = generate_otp()

        try:
            record = self._store.insert_user(
                email=request.email,
                password_hash=hash_password(request.password, self._config.password_hash_rounds),
                name=request.name,
                otp=otp,
                otp_expires=now + timedelta(minutes=self._config.otp_expiry_minutes),
                now=now,
            )
        except EmailInUseError:
            self._security_logger.log(
                SecurityEvent.SIGNUP_REJECTED,
                email=request.email,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "email_in_use"},
            )
            raise

        self._security_logger.log(
            SecurityEvent.SIGNUP_CREATED,
            email=record.email,
            user_id=record.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        if not self._send_otp(record, otp, ip_address):
            if self._config.rollback_signup_on_notification_failure:
                self._store.delete_user(record.id)
                self._security_logger.log(
                    SecurityEvent.SIGNUP_ROLLED_BACK,
                    email=record.email,
                    user_id=record.id,
                    ip_address=ip_address,
                )
                raise NotificationFailedError()
            return UserSucceeded(
                message="Account created, but the verification code could not be sent. "
                "Please request a new code.",
                user=record.to_client(),
            )

        if self._config.notify_account_email:
            message = "Verification code sent to your email"
        else:
            message = "OTP sent to admin email for verification"
        return UserSucceeded(message=message, user=record.to_client())

    # ------------------------------------------------------------------
    # OTP verification
    # ------------------------------------------------------------------

    def verify_otp(
        self,
        email: str,
        otp: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> VerifyResult:
        """Consume a signup OTP and mark the account verified."""
        return self._run("verify_otp", self._verify_otp, email, otp, ip_address, user_agent)

    def _verify_otp(
        self,
        email: str,
        otp: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> UserSucceeded:
        request = self._parse(VerifyOTPRequest, email=email, otp=otp)
        self._check_rate_limit(self.VERIFY_ACTION, request.email, ip_address, user_agent)

        # Match and clear in one statement; a consumed code can never match again.
        record = self._store.consume_otp(request.email, request.otp, now_utc())

        if record is None:
            self._security_logger.log(
                SecurityEvent.OTP_REJECTED,
                email=request.email,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise InvalidOrExpiredError("Invalid or expired OTP")

        self._rate_limiter.reset_rate_limit(self.VERIFY_ACTION, request.email)
        self._security_logger.log(
            SecurityEvent.OTP_VERIFIED,
            email=record.email,
            user_id=record.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return UserSucceeded(message="Email verified successfully", user=record.to_client())

    def resend_otp(
        self,
        email: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> MessageResult:
        """Issue a fresh OTP for an account still awaiting verification.

        Returns the same response whether or not such an account exists.
        """
        return self._run("resend_otp", self._resend_otp, email, ip_address, user_agent)

    def _resend_otp(
        self,
        email: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> MessageSucceeded:
        request = self._parse(EmailRequest, email=email)
        self._check_rate_limit(self.RESEND_ACTION, request.email, ip_address, user_agent)

        now = now_utc()
        otp = generate_otp()
        record = self._store.refresh_otp(
            request.email,
            otp,
            now + timedelta(minutes=self._config.otp_expiry_minutes),
            now,
        )

        if record is not None:
            self._security_logger.log(
                SecurityEvent.OTP_REISSUED,
                email=record.email,
                user_id=record.id,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            self._send_otp(record, otp, ip_address)

        return MessageSucceeded(message=OTP_RESENT_MESSAGE)

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(
        self,
        email: str,
        password: str,
        otp: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResult:
        """Check credentials and issue a session token.

        Flow:
        1. If an OTP is supplied, verify it first (failure ends the login)
        2. Look up the record; unknown email -> invalid credentials
        3. Unverified record -> email not verified
        4. Wrong password -> invalid credentials
        5. Sign session token

        Failed logins never modify the credential record.
        """
        return self._run("login", self._login, email, password, otp, ip_address, user_agent)

    def _login(
        self,
        email: str,
        password: str,
        otp: str | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> LoginSucceeded:
        request = self._parse(LoginRequest, email=email, password=password, otp=otp)

        if request.otp is not None:
            self._verify_otp(request.email, request.otp, ip_address, user_agent)

        self._check_rate_limit(self.LOGIN_ACTION, request.email, ip_address, user_agent)

        record = self._store.get_user_by_email(request.email)

        if record is None:
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=request.email,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "unknown_email"},
            )
            raise InvalidCredentialsError()

        if not record.is_verified:
            self._security_logger.log(
                SecurityEvent.LOGIN_UNVERIFIED,
                email=record.email,
                user_id=record.id,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise UnverifiedAccountError()

        if not verify_password(request.password, record.password_hash):
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=record.email,
                user_id=record.id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "wrong_password"},
            )
            raise InvalidCredentialsError()

        user = record.to_client()
        session = self._session_manager.issue(user)

        self._rate_limiter.reset_rate_limit(self.LOGIN_ACTION, request.email)
        self._security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            email=record.email,
            user_id=record.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        return LoginSucceeded(
            message="Login successful",
            token=session.token,
            expires_at=session.expires_at,
            user=user,
        )

    def logout(self, session_token: str | None, ip_address: str | None = None) -> MessageResult:
        """Revoke session (logout).

        Safe to call with a missing or invalid token.
        """
        return self._run("logout", self._logout, session_token, ip_address)

    def _logout(self, session_token: str | None, ip_address: str | None) -> MessageSucceeded:
        session = self._session_manager.decode(session_token)

        if session is not None and self._session_manager.revoke(session.token):
            self._security_logger.log(
                SecurityEvent.SESSION_REVOKED,
                email=session.email,
                user_id=session.id,
                ip_address=ip_address,
            )

        return MessageSucceeded(message="Logged out successfully")

    def validate_session(self, token: str | None) -> SessionUser | None:
        """Decode a session token. None if missing, invalid, expired or revoked."""
        return self._session_manager.decode(token)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def request_password_reset(
        self,
        email: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> MessageResult:
        """Email a reset link if the account exists.

        The response is identical whether or not the email is registered.
        """
        return self._run(
            "request_password_reset",
            self._request_password_reset,
            email,
            ip_address,
            user_agent,
        )

    def _request_password_reset(
        self,
        email: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> MessageSucceeded:
        request = self._parse(EmailRequest, email=email)
        self._check_rate_limit(self.RESET_ACTION, request.email, ip_address, user_agent)

        now = now_utc()
        token = generate_reset_token()
        record = self._store.store_reset_token(
            request.email,
            token,
            now + timedelta(minutes=self._config.reset_token_expiry_minutes),
            now,
        )

        if record is None:
            self._security_logger.log(
                SecurityEvent.RESET_UNKNOWN_EMAIL,
                email=request.email,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return MessageSucceeded(message=RESET_REQUESTED_MESSAGE)

        self._security_logger.log(
            SecurityEvent.RESET_REQUESTED,
            email=record.email,
            user_id=record.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        delivered = self._deliver(
            record,
            "password_reset",
            lambda recipient: self._email_client.send_password_reset_link(
                recipient,
                self._reset_url(token),
                self._config.reset_token_expiry_minutes,
            ),
            ip_address,
        )
        if delivered:
            self._security_logger.log(
                SecurityEvent.RESET_LINK_SENT,
                email=record.email,
                user_id=record.id,
                ip_address=ip_address,
            )

        return MessageSucceeded(message=RESET_REQUESTED_MESSAGE)

    def reset_password(
        self,
        token: str,
        new_password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> MessageResult:
        """Consume a reset token and replace the password hash."""
        return self._run(
            "reset_password",
            self._reset_password,
            token,
            new_password,
            ip_address,
            user_agent,
        )

    def _reset_password(
        self,
        token: str,
        new_password: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> MessageSucceeded:
        request = self._parse(ResetPasswordRequest, token=token, new_password=new_password)
        self._check_new_password(request.new_password)

        record = self._store.consume_reset_token(
            request.token,
            hash_password(request.new_password, self._config.password_hash_rounds),
            now_utc(),
        )

        if record is None:
            self._security_logger.log(
                SecurityEvent.RESET_REJECTED,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise InvalidOrExpiredError("Invalid or expired token")

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET,
            email=record.email,
            user_id=record.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return MessageSucceeded(message="Password reset successfully")

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_expired_signups(self) -> int:
        """Delete unverified accounts whose OTP has expired. Returns count deleted."""
        count = self._store.purge_expired_signups(now_utc())
        if count:
            logger.info(f"Purged {count} expired unverified signups")
            self._security_logger.log(
                SecurityEvent.SIGNUPS_PURGED,
                details={"count": count},
            )
        return count
