"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    FailureReason,
    InvalidInputError,
    EmailInUseError,
    InvalidOrExpiredError,
    UnverifiedAccountError,
    InvalidCredentialsError,
    RateLimitedError,
    NotificationFailedError,
    InvalidSessionError,
)
from auth.types import (
    CredentialRecord,
    ClientUser,
    SessionUser,
    IssuedSession,
    UserSucceeded,
    LoginSucceeded,
    MessageSucceeded,
    AuthFailure,
)
from auth.config import AuthConfig
from auth.database import CredentialStore
from auth.passwords import hash_password, verify_password
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.session import SessionManager
from auth.service import AuthService
from auth.security_middleware import AuthMiddleware, RouteAction, RouteDecision, evaluate_route
from auth.api import create_auth_router
