"""Integration tests for GET /health."""

from contextlib import asynccontextmanager
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import register_error_handlers
from routes.health_routes import router as health_router


def _mongo(ok: bool) -> MagicMock:
    db = MagicMock()
    if ok:
        db.client.admin.command = AsyncMock(return_value={"ok": 1})
    else:
        db.client.admin.command = AsyncMock(side_effect=Exception("connection refused"))
    return db


def _redis(state: Optional[str]):
    if state is None:
        return None
    redis = AsyncMock()
    if state == "ok":
        redis.ping = AsyncMock(return_value=True)
    else:
        redis.ping = AsyncMock(side_effect=Exception("redis down"))
    return redis


def _client(mongo_ok: bool, redis_state: Optional[str]) -> TestClient:
    """App with mocked MongoDB/Redis handles; no network connections are made."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = _mongo(mongo_ok)
        app.state.redis = _redis(redis_state)
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(health_router)
    return TestClient(app)


@pytest.mark.parametrize(
    "mongo_ok, redis_state, status_code, overall, redis_check",
    [
        (True, "ok", 200, "healthy", "ok"),
        (True, None, 200, "healthy", "not_configured"),
        (True, "error", 200, "degraded", "error"),
        (False, "ok", 503, "unhealthy", "ok"),
        (False, "error", 503, "unhealthy", "error"),
    ],
    ids=[
        "all_ok",
        "redis_not_configured",
        "redis_down",
        "mongo_down",
        "both_down",
    ],
)
def test_health_status(mongo_ok, redis_state, status_code, overall, redis_check):
    with _client(mongo_ok, redis_state) as client:
        resp = client.get("/health")
    assert resp.status_code == status_code
    body = resp.json()
    assert body["status"] == overall
    assert body["checks"]["mongodb"] == ("ok" if mongo_ok else "error")
    assert body["checks"]["redis"] == redis_check


def test_response_shape():
    with _client(True, "ok") as client:
        body = client.get("/health").json()
    assert set(body) == {"status", "checks"}
    assert set(body["checks"]) == {"mongodb", "redis"}
