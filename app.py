"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.http_client import HttpClient
from infrastructure.rate_limiter import create_rate_limiter
from infrastructure.redis_client import create_redis_client
from infrastructure.sms.console import ConsoleSmsSender
from infrastructure.sms.http_gateway import HttpSmsGateway
from infrastructure.storage.local import LocalFileStore
from repositories import audit_repository, document_repository, otp_repository
from repositories.audit_repository import AuditRepository
from repositories.document_repository import DocumentRepository
from repositories.otp_repository import OtpRepository
from routes.guest_routes import router as guest_router
from routes.health_routes import router as health_router
from services.capability_token import CapabilityTokenService
from services.download_grant import SignedFileGrantIssuer
from services.guest_verification import GuestAccessPolicy, GuestVerificationService
from shared.logging import get_logger, setup_logging
from utils.log_context import setup_logging_middleware

log = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(
        env=settings.env,
        log_level=settings.logging.log_level,
        log_format=settings.logging.log_format,
    )

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    guest = settings.guest

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings

        redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client
        app.state.rate_limiter = create_rate_limiter(
            settings.redis.redis_uri if redis_client is not None else None,
            settings.rate_limit.guest_rate_limit_per_minute,
        )

        sms_http: Optional[HttpClient] = None
        if settings.sms.sms_provider == "http":
            sms_http = HttpClient(timeout=guest.sms_timeout_seconds)
            delivery = HttpSmsGateway(settings.sms, sms_http)
        else:
            delivery = ConsoleSmsSender()

        otp_store = OtpRepository(db[otp_repository.COLLECTION_NAME])
        await otp_store.ensure_indexes()

        file_store = LocalFileStore(settings.storage.storage_root)
        grant_issuer = SignedFileGrantIssuer(
            guest.file_grant_secret, guest.api_base_url, file_store
        )
        app.state.file_store = file_store
        app.state.grant_issuer = grant_issuer
        app.state.capability_tokens = CapabilityTokenService(
            guest.guest_token_secret, guest.capability_ttl_seconds, guest.app_base_url
        )
        app.state.guest_service = GuestVerificationService(
            tokens=app.state.capability_tokens,
            challenges=otp_store,
            documents=DocumentRepository(db[document_repository.COLLECTION_NAME]),
            delivery=delivery,
            grants=grant_issuer,
            audit=AuditRepository(db[audit_repository.COLLECTION_NAME]),
            policy=GuestAccessPolicy(
                otp_ttl_seconds=guest.otp_ttl_seconds,
                grant_ttl_seconds=guest.grant_ttl_seconds,
                otp_max_attempts=guest.otp_max_attempts,
                dob_max_attempts=guest.dob_max_attempts,
                sms_timeout_seconds=guest.sms_timeout_seconds,
            ),
        )
        log.info("app_started", env=settings.env, sms_provider=settings.sms.sms_provider)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        if sms_http is not None:
            await sms_http.aclose()
        await mongo_client.close()
        if redis_client is not None:
            await redis_client.aclose()

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
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    setup_logging_middleware(app)

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(guest_router)

    return app
