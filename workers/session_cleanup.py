"""
Periodic sweep of expired sessions.

run_cleanup_loop() is started as a background task by the app lifespan when
SESSION_CLEANUP_INTERVAL_SECONDS > 0, and by start_worker.py when the sweep
runs as its own process.
"""

from __future__ import annotations

import asyncio

from pymongo import AsyncMongoClient

from config import AppSettings
from repositories import MongoSessionRepository, ensure_indexes
from repositories.errors import StoreError
from services.session_service import SessionManager
from shared.logging import get_logger

log = get_logger(__name__)


async def run_cleanup_once(session_manager: SessionManager) -> int:
    """One sweep; store failures are logged and reported as zero removed."""
    try:
        return await session_manager.cleanup_expired_sessions()
    except StoreError as exc:
        log.error("session_cleanup_failed", kind=exc.kind.value, error=str(exc))
        return 0


async def run_cleanup_loop(session_manager: SessionManager, interval_seconds: int) -> None:
    log.info("session_cleanup_started", interval_seconds=interval_seconds)
    while True:
        await run_cleanup_once(session_manager)
        await asyncio.sleep(interval_seconds)


async def session_cleanup_worker(settings: AppSettings) -> None:
    """Standalone entrypoint: own Mongo client, loop until cancelled."""
    client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri, tz_aware=True)
    try:
        await client.aconnect()
        db = client[settings.db.db_name]
        await ensure_indexes(db)
        session_manager = SessionManager(MongoSessionRepository(db))
        await run_cleanup_loop(
            session_manager, settings.session.session_cleanup_interval_seconds or 3600
        )
    finally:
        await client.close()
