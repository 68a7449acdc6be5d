"""Application factory - wires clients, auth service, routes and route guard."""

import asyncio
import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.errors import register_error_handlers
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.database import CredentialStore
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.session import SessionManager
from clients.email_client import EmailGatewayClient
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import (
    get_database_url,
    get_email_config,
    get_session_secret,
    get_valkey_url,
)

logger = logging.getLogger(__name__)


def load_config() -> AuthConfig:
    """Build AuthConfig from Vault secrets plus environment overrides."""
    email_config = get_email_config()
    return AuthConfig(
        session_secret=get_session_secret(),
        notification_recipient=email_config["notification_recipient"],
        app_base_url=os.getenv("APP_BASE_URL", "http://localhost:3000"),
        session_cookie_secure=os.getenv("SESSION_COOKIE_SECURE", "true").lower() != "false",
    )


async def sweep_expired_signups(auth_service: AuthService, interval_seconds: int) -> None:
    """Purge expired unverified signups forever, one pass per interval."""
    while True:
        try:
            await asyncio.to_thread(auth_service.purge_expired_signups)
        except Exception:
            logger.exception("Expired signup sweep failed")
        await asyncio.sleep(interval_seconds)


def create_app(
    config: AuthConfig,
    postgres: PostgresClient,
    valkey: ValkeyClient,
    email_client: EmailGatewayClient,
    run_sweeper: bool = True,
) -> FastAPI:
    """Create the FastAPI app from already-constructed infrastructure clients."""
    credential_store = CredentialStore(postgres)
    session_manager = SessionManager(valkey, config)
    auth_service = AuthService(
        config=config,
        credential_store=credential_store,
        session_manager=session_manager,
        rate_limiter=RateLimiter(valkey, config),
        email_client=email_client,
        security_logger=SecurityLogger(postgres),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application lifecycle."""
        credential_store.ensure_schema()

        sweeper = None
        if run_sweeper:
            sweeper = asyncio.create_task(
                sweep_expired_signups(auth_service, config.signup_sweep_interval_seconds)
            )

        logger.info("Admin auth service started")
        yield

        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
        valkey.close()
        postgres.close()
        logger.info("Admin auth service stopped")

    app = FastAPI(title="Content Admin Auth", lifespan=lifespan)
    app.state.auth_service = auth_service

    register_error_handlers(app)
    app.add_middleware(AuthMiddleware, session_manager=session_manager, config=config)
    app.include_router(create_auth_router(auth_service, config), prefix="/api/auth")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    return app


def create_app_factory() -> FastAPI:
    """ASGI factory for production deployment (uvicorn --factory api.app:create_app_factory)."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    email_config = get_email_config()
    return create_app(
        config=load_config(),
        postgres=PostgresClient(get_database_url()),
        valkey=ValkeyClient(get_valkey_url()),
        email_client=EmailGatewayClient(
            gateway_url=email_config["gateway_url"],
            api_key=email_config["api_key"],
            hmac_secret=email_config["hmac_secret"],
        ),
    )
