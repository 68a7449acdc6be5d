"""HTTP routes for authentication."""

import ipaddress

from fastapi import APIRouter, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from auth.config import AuthConfig
from auth.exceptions import FailureReason
from auth.security_middleware import extract_session_token
from auth.service import AuthService
from auth.types import (
    AuthFailure,
    EmailRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyOTPRequest,
)
from api.base import success_response, error_response, ErrorCodes

FAILURE_STATUS = {
    FailureReason.VALIDATION: 400,
    FailureReason.EMAIL_IN_USE: 400,
    FailureReason.INVALID_OR_EXPIRED: 400,
    FailureReason.UNVERIFIED: 400,
    FailureReason.INVALID_CREDENTIALS: 400,
    FailureReason.RATE_LIMITED: 429,
    FailureReason.NOTIFICATION_FAILED: 500,
    FailureReason.INTERNAL: 500,
}


def _get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def _failure_response(failure: AuthFailure) -> JSONResponse:
    headers = {}
    if failure.retry_after_seconds is not None:
        headers["Retry-After"] = str(failure.retry_after_seconds)
    return JSONResponse(
        status_code=FAILURE_STATUS[failure.reason],
        headers=headers,
        content=error_response(failure.reason.value, failure.message).model_dump(mode="json"),
    )


def create_auth_router(auth_service: AuthService, config: AuthConfig) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    def client_info(request: Request) -> dict:
        return {
            "ip_address": _get_client_ip(request),
            "user_agent": request.headers.get("User-Agent"),
        }

    @router.post("/signup")
    async def signup(request: Request, body: SignupRequest):
        """Create an unverified account and send its verification code."""
        result = await run_in_threadpool(
            auth_service.signup,
            email=body.email,
            password=body.password,
            name=body.name,
            **client_info(request),
        )
        if not result.success:
            return _failure_response(result)
        return success_response({"user": result.user.model_dump(mode="json")}, result.message)

    @router.post("/verify-otp")
    async def verify_otp(request: Request, body: VerifyOTPRequest):
        """Verify a signup code."""
        result = await run_in_threadpool(
            auth_service.verify_otp, email=body.email, otp=body.otp, **client_info(request)
        )
        if not result.success:
            return _failure_response(result)
        return success_response({"user": result.user.model_dump(mode="json")}, result.message)

    @router.post("/resend-otp")
    async def resend_otp(request: Request, body: EmailRequest):
        """Send a fresh verification code to an unverified account."""
        result = await run_in_threadpool(
            auth_service.resend_otp, email=body.email, **client_info(request)
        )
        if not result.success:
            return _failure_response(result)
        return success_response(None, result.message)

    @router.post("/login")
    async def login(request: Request, response: Response, body: LoginRequest):
        """Check credentials (optionally verifying an OTP first) and start a session.

        Sets the session cookie on success.
        """
        result = await run_in_threadpool(
            auth_service.login,
            email=body.email,
            password=body.password,
            otp=body.otp,
            **client_info(request),
        )
        if not result.success:
            return _failure_response(result)

        response.set_cookie(
            key=config.session_cookie_name,
            value=result.token,
            httponly=True,
            secure=config.session_cookie_secure,
            samesite="lax",
            max_age=config.session_expiry_hours * 3600,
        )

        return success_response(
            {
                "token": result.token,
                "expires_at": result.expires_at.isoformat(),
                "user": result.user.model_dump(mode="json"),
            },
            result.message,
        )

    @router.post("/logout")
    async def logout(request: Request, response: Response):
        """Logout - revoke session and clear cookie."""
        result = await run_in_threadpool(
            auth_service.logout,
            session_token=extract_session_token(request, config),
            ip_address=_get_client_ip(request),
        )
        response.delete_cookie(key=config.session_cookie_name)
        if not result.success:
            return _failure_response(result)
        return success_response(None, result.message)

    @router.post("/request-reset")
    async def request_password_reset(request: Request, body: EmailRequest):
        """Request a password reset link.

        Always reports success for a well-formed email, registered or not.
        """
        result = await run_in_threadpool(
            auth_service.request_password_reset, email=body.email, **client_info(request)
        )
        if not result.success:
            return _failure_response(result)
        return success_response(None, result.message)

    @router.post("/reset-password")
    async def reset_password(request: Request, body: ResetPasswordRequest):
        """Set a new password using a reset token."""
        result = await run_in_threadpool(
            auth_service.reset_password,
            token=body.token,
            new_password=body.new_password,
            **client_info(request),
        )
        if not result.success:
            return _failure_response(result)
        return success_response(None, result.message)

    @router.get("/session")
    async def get_session(request: Request):
        """Return the signed-in user for the current session cookie or Bearer token."""
        session = await run_in_threadpool(
            auth_service.validate_session, extract_session_token(request, config)
        )
        if session is None:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )
        return success_response({
            "id": str(session.id),
            "email": session.email,
            "name": session.name,
        })

    return router
