"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.sms.logging_provider import LoggingSmsProvider
from infrastructure.sms.protocol import SmsProvider
from repositories.credential_store import CredentialStore
from repositories.indexes import ensure_indexes
from repositories.otp_repository import OtpRepository
from repositories.token_repository import TokenRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from services.auth_service import AuthService
from services.jwt_codec import JwtCodec
from services.otp_service import OtpService
from services.principal_resolver import PrincipalResolver
from services.token_service import TokenService
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger, setup_logging
from shared.request_logging import register_request_logging

log = get_logger(__name__)


def wire_services(
    app: FastAPI,
    db: Any,
    settings: AppSettings,
    sms_provider: Optional[SmsProvider] = None,
    clock: Clock = utcnow,
) -> None:
    """Build the service graph over *db* and store it on app.state."""
    if sms_provider is None:
        sms_provider = LoggingSmsProvider(settings.sms)

    credentials = CredentialStore(db)
    resolver = PrincipalResolver(credentials)
    codec = JwtCodec(settings.jwt, clock=clock)
    token_service = TokenService(TokenRepository.from_db(db))
    otp_service = OtpService(
        OtpRepository.from_db(db),
        sms_provider,
        settings.otp,
        country_code=settings.sms.sms_country_code,
        clock=clock,
    )

    app.state.settings = settings
    app.state.db = db
    app.state.token_service = token_service
    app.state.otp_service = otp_service
    app.state.auth_service = AuthService(
        resolver, credentials, codec, token_service, otp_service, clock=clock
    )


def create_app(
    settings: Optional[AppSettings] = None,
    sms_provider: Optional[SmsProvider] = None,
) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging, env=settings.env)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            environment=settings.env,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        app.state.mongo_client = mongo_client
        db = mongo_client[settings.db.db_name]

        await ensure_indexes(db, settings.otp.otp_retention_seconds)
        wire_services(app, db, settings, sms_provider=sms_provider)

        if settings.cleanup_legacy_tokens:
            await app.state.token_service.cleanup_legacy_rows()

        log.info("app_started", app_name=settings.app_name, env=settings.env)
        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_request_logging(app)

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)

    return app
