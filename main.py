"""
ONE-Go Security API - application factory and entry point.

create_app() reads secrets from Vault, builds every client and service once
and injects them. build_app() does the HTTP wiring only, so tests can pass in
their own collaborators.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from api.base import success_response, error_response, ErrorCodes
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from api.tools import create_tools_router
from auth.api import create_auth_router
from auth.config import AuthConfig, load_auth_config
from auth.database import AuthDatabase
from auth.rate_limiter import RateLimiter
from auth.registration import RegistrationManager
from auth.registration_store import RegistrationSessionStore
from auth.security_logger import SecurityLogger
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.session import TokenManager
from clients.email_client import EmailGatewayClient
from clients.postgres_client import PostgresClient
from clients.sms_client import TwilioVerifyClient
from clients.speed_test_client import SpeedTestClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import (
    get_database_url,
    get_email_config,
    get_jwt_secret,
    get_twilio_config,
    get_valkey_url,
)
from core.activity import ActivityLogger

logger = logging.getLogger(__name__)


def build_app(
    config: AuthConfig,
    registration: RegistrationManager,
    auth_service: AuthService,
    activity: ActivityLogger,
    speed_test: SpeedTestClient,
    valkey: ValkeyClient | None = None,
    postgres: PostgresClient | None = None,
) -> FastAPI:
    """Wire routes, middleware and error handlers around ready services."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if valkey is not None:
            valkey.close()
        if postgres is not None:
            postgres.close()
        logger.info("Shutdown complete")

    app = FastAPI(title=config.app_name, lifespan=lifespan)

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AuthMiddleware, auth_service=auth_service)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(create_auth_router(registration, auth_service), prefix="/auth")
    app.include_router(create_tools_router(activity, speed_test))

    @app.get("/health")
    async def health():
        if valkey is not None:
            try:
                valkey.ping()
            except Exception as e:
                logger.error(f"Health check failed: {e}")
                return JSONResponse(
                    status_code=503,
                    content=error_response(
                        ErrorCodes.SERVICE_UNAVAILABLE,
                        "Session store unavailable",
                    ).model_dump(mode="json"),
                )
        return success_response({"status": "ok"})

    return app


def create_app() -> FastAPI:
    """Production factory: secrets from Vault, real clients."""
    config = load_auth_config()

    valkey = ValkeyClient(get_valkey_url())
    postgres = PostgresClient(get_database_url())
    email_client = EmailGatewayClient(**get_email_config())
    sms_client = TwilioVerifyClient(**get_twilio_config())

    auth_db = AuthDatabase(postgres)
    security_logger = SecurityLogger(postgres)
    token_manager = TokenManager(valkey, config, get_jwt_secret())

    registration = RegistrationManager(
        config=config,
        store=RegistrationSessionStore(valkey, config),
        auth_db=auth_db,
        token_manager=token_manager,
        email_client=email_client,
        sms_client=sms_client,
        security_logger=security_logger,
        resend_limiter=RateLimiter(valkey, config, scope="resend"),
    )
    auth_service = AuthService(
        config=config,
        auth_db=auth_db,
        token_manager=token_manager,
        login_limiter=RateLimiter(valkey, config, scope="login"),
        reset_limiter=RateLimiter(valkey, config, scope="password_reset"),
        email_client=email_client,
        security_logger=security_logger,
    )

    if config.expose_dev_otp:
        logger.warning(f"expose_dev_otp is ON ({config.environment}): OTP codes appear in responses")

    return build_app(
        config,
        registration,
        auth_service,
        ActivityLogger(postgres),
        SpeedTestClient(),
        valkey=valkey,
        postgres=postgres,
    )


if __name__ == "__main__":
    import uvicorn

    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(), host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
