"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.sendgrid import SendGridEmailSender
from infrastructure.http_client import HttpClient
from repositories import (
    MongoOtpRepository,
    MongoSessionRepository,
    MongoUserRepository,
    ensure_indexes,
)
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.user_routes import router as user_router
from services.auth_service import AuthService
from services.otp_service import OtpService
from services.rate_limiter import create_rate_limiter
from services.session_service import SessionManager
from services.token_service import TokenService
from shared.logging import get_logger, setup_logging
from workers.session_cleanup import run_cleanup_loop

log = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging.log_level, settings.logging.log_format)

    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            environment=settings.env,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings
        await ensure_indexes(db)

        # Redis is optional; without it rate-limit counters are per-process
        redis_client = None
        if settings.redis.redis_uri:
            redis_client = aioredis.from_url(
                settings.redis.redis_uri,
                encoding="utf-8",
                decode_responses=True,
            )
        app.state.redis = redis_client
        app.state.rate_limiter = create_rate_limiter(settings.redis.redis_uri)

        email_http = HttpClient(timeout=10.0)
        token_service = TokenService(settings.jwt)
        session_manager = SessionManager(MongoSessionRepository(db), token_service)
        otp_service = OtpService(
            MongoOtpRepository(db),
            SendGridEmailSender(settings.email, email_http),
            settings.otp,
        )
        app.state.token_service = token_service
        app.state.session_manager = session_manager
        app.state.auth_service = AuthService(
            MongoUserRepository(db),
            otp_service,
            session_manager,
            token_service,
            expiry_warning_seconds=settings.session.session_expiry_warning_seconds,
        )

        cleanup_task = None
        if settings.session.session_cleanup_interval_seconds > 0:
            cleanup_task = asyncio.create_task(
                run_cleanup_loop(
                    session_manager, settings.session.session_cleanup_interval_seconds
                )
            )

        log.info("app_started", env=settings.env, redis=redis_client is not None)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        if cleanup_task is not None:
            cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cleanup_task
        await email_http.aclose()
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
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Token-Expires-Soon"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(user_router)

    return app
