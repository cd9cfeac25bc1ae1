"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain async functions
used with FastAPI's Depends() system. Services are built once in the app
lifespan and read back from app.state.

Auth chain:
    get_current_user        — required bearer auth (401/403 on failure)
    get_optional_user       — same pipeline, anonymous on any failure
    require_status(...)     — account status guard, after get_current_user
    require_resource_ownership(param) — path param must be the caller's id
    rate_limit_by_user(...) — per-user fixed-window limit for sensitive ops
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request, Response

from config import AppSettings
from errors import AppError, ForbiddenError, RateLimitError
from schemas.models.user import UserDoc
from services.auth_service import AuthContext, AuthService
from services.rate_limiter import RateLimiter
from services.session_service import SessionManager
from shared.logging import get_logger

log = get_logger(__name__)

TOKEN_EXPIRES_SOON_HEADER = "X-Token-Expires-Soon"


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def _attach_identity(request: Request, ctx: AuthContext) -> None:
    request.state.user = ctx.user
    request.state.session_id = ctx.session_id
    request.state.token_payload = ctx.token_payload


async def get_auth_context(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """Authenticate the bearer token; errors propagate to the AppError handler."""
    ctx = await auth_service.authenticate(request.headers.get("Authorization"))
    _attach_identity(request, ctx)
    if ctx.expires_soon:
        response.headers[TOKEN_EXPIRES_SOON_HEADER] = "true"
    return ctx


async def get_current_user(ctx: AuthContext = Depends(get_auth_context)) -> UserDoc:
    return ctx.user


async def get_optional_user(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[UserDoc]:
    """Like get_current_user but returns None on any failure."""
    if not request.headers.get("Authorization"):
        return None
    try:
        ctx = await auth_service.authenticate(request.headers.get("Authorization"))
    except AppError as exc:
        log.debug("optional_auth_rejected", code=exc.error_code)
        return None
    except Exception as exc:
        log.warning(
            "optional_auth_failed", error=str(exc), error_type=type(exc).__name__
        )
        return None
    _attach_identity(request, ctx)
    if ctx.expires_soon:
        response.headers[TOKEN_EXPIRES_SOON_HEADER] = "true"
    return ctx.user


def require_status(*statuses: str):
    """Dependency factory: the caller's account status must be one of *statuses*."""

    async def _check(user: UserDoc = Depends(get_current_user)) -> UserDoc:
        if user.status not in statuses:
            raise ForbiddenError(f"Account status '{user.status}' is not allowed")
        return user

    return _check


def require_resource_ownership(param: str = "user_id"):
    """Dependency factory: path parameter *param* must equal the caller's id."""

    async def _check(request: Request, user: UserDoc = Depends(get_current_user)) -> UserDoc:
        owner_id = request.path_params.get(param)
        if owner_id is None or owner_id != user.id:
            raise ForbiddenError("You do not have access to this resource")
        return user

    return _check


def rate_limit_by_user(
    scope: str,
    max_attempts: Optional[int] = None,
    window_seconds: Optional[int] = None,
):
    """Dependency factory: at most *max_attempts* calls per user per window.

    Unset limits fall back to the sensitive-operation limits in RateLimitSettings.
    """

    async def _check(
        user: UserDoc = Depends(get_current_user),
        limiter: RateLimiter = Depends(get_rate_limiter),
        settings: AppSettings = Depends(get_settings),
    ) -> UserDoc:
        limit = max_attempts or settings.rate_limit.sensitive_rate_limit
        window = window_seconds or settings.rate_limit.sensitive_rate_window_seconds
        result = await limiter.allow(f"{scope}:{user.id}", limit, window)
        if not result.allowed:
            log.warning("rate_limit_exceeded", scope=scope, user_id=user.id)
            raise RateLimitError(
                f"Too many requests. Try again in {result.retry_after_seconds} seconds",
                details={"retry_after": result.retry_after_seconds},
            )
        return user

    return _check
