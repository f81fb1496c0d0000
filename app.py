"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from limits.aio.storage import storage_from_string
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.zeptomail import ZeptoMailProvider
from repositories.account_repository import AccountRepository
from routes.account_routes import router as account_router
from routes.admin_routes import router as admin_router
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from services.account_service import AccountService
from services.rate_limiter import RateLimiter
from services.session_service import SessionService
from services.verification_service import VerificationService
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            environment=settings.env,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
        )

    setup_logging(settings.logging, production=settings.is_production)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db

        accounts = AccountRepository(db["accounts"])
        await accounts.ensure_indexes()

        # Moving windows live in the same cluster, in limits' own database
        rate_limit_storage = storage_from_string(
            f"async+{settings.db.mongodb_uri}",
            database_name=settings.db.rate_limit_db_name,
            wrap_exceptions=True,
        )

        http_client = httpx.AsyncClient(timeout=settings.email.email_timeout_seconds)
        email_provider = ZeptoMailProvider(
            settings.email, http_client, app_url=settings.app_url
        )

        sessions = SessionService(
            accounts, settings.session, issuer=settings.app_name.lower()
        )
        account_service = AccountService(
            accounts,
            VerificationService(accounts),
            sessions,
            email_provider,
            settings.admin,
        )
        app.state.session_service = sessions
        app.state.account_service = account_service
        app.state.rate_limiter = RateLimiter(rate_limit_storage)

        if settings.purge_unverified_on_startup:
            purged = await account_service.purge_expired_unverified()
            log.info("startup_purge_complete", purged=purged)

        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await http_client.aclose()
        await mongo_client.close()
        log.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Cookie sessions need credentials; CORS_ORIGINS should list real origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(account_router)
    app.include_router(admin_router)

    return app
