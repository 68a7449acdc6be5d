"""Route guard - decides per request whether a session is required."""

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse

from auth.config import AuthConfig
from auth.session import SessionManager
from api.base import error_response, ErrorCodes


class RouteAction(Enum):
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_HOME = "redirect_home"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class RouteDecision:
    action: RouteAction
    location: str | None = None


def _matches(path: str, prefixes: list[str]) -> bool:
    return any(path == prefix or path.startswith(prefix) for prefix in prefixes)


def extract_session_token(request: Request, config: AuthConfig) -> str | None:
    """Session token from the session cookie, else from a Bearer Authorization header."""
    token = request.cookies.get(config.session_cookie_name)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def evaluate_route(path: str, has_session: bool, config: AuthConfig) -> RouteDecision:
    """Decide what to do with a request from its path and session presence alone.

    - Bypass paths are always allowed.
    - Public-only pages are allowed without a session and bounce
      signed-in users to the landing page.
    - Other API paths without a session are rejected outright.
    - Other pages without a session redirect to login, remembering
      the requested path as callbackUrl.
    """
    if _matches(path, config.bypass_paths):
        return RouteDecision(RouteAction.ALLOW)

    if _matches(path, config.public_only_paths):
        if has_session:
            return RouteDecision(RouteAction.REDIRECT_HOME, config.landing_path)
        return RouteDecision(RouteAction.ALLOW)

    if has_session:
        return RouteDecision(RouteAction.ALLOW)

    if path == "/api" or path.startswith("/api/"):
        return RouteDecision(RouteAction.UNAUTHORIZED)

    query = urlencode({"callbackUrl": path})
    return RouteDecision(RouteAction.REDIRECT_LOGIN, f"{config.login_path}?{query}")


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that decodes the session and enforces the route guard.

    1. Reads the session token from the session cookie (or a Bearer header)
    2. Decodes it via SessionManager (invalid tokens count as no session)
    3. Applies evaluate_route
    4. On allow, exposes the session as request.state.session
    """

    def __init__(self, app, session_manager: SessionManager, config: AuthConfig):
        super().__init__(app)
        self._session_manager = session_manager
        self._config = config

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path

        # Bypass paths never touch the session store
        if _matches(path, self._config.bypass_paths):
            request.state.session = None
            return await call_next(request)

        token = extract_session_token(request, self._config)
        session = await run_in_threadpool(self._session_manager.decode, token)
        decision = evaluate_route(path, session is not None, self._config)

        if decision.action is RouteAction.UNAUTHORIZED:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )

        if decision.action in (RouteAction.REDIRECT_LOGIN, RouteAction.REDIRECT_HOME):
            return RedirectResponse(url=decision.location, status_code=307)

        request.state.session = session
        return await call_next(request)
