"""
Session lifecycle: one record per login, bound to the current token pair.

The session id doubles as the ``session_id`` claim of both tokens, and
``SessionDoc.token`` always holds the access token currently issued for the
session. A refresh rewrites both tokens in place so older access tokens stop
matching.
"""

from __future__ import annotations

from typing import Optional

from errors import NotFoundError
from repositories.errors import StoreError, StoreErrorKind
from repositories.protocols import SessionRepository
from schemas.models.session import SessionDoc
from services.token_service import TokenPair, TokenService
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger

log = get_logger(__name__)


class SessionManager:
    """Session reads, writes and sweeps. Opening a session needs a TokenService."""

    def __init__(
        self,
        repository: SessionRepository,
        token_service: Optional[TokenService] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._repo = repository
        self._tokens = token_service
        self._clock = clock

    async def create_session(
        self,
        user_id: str,
        email: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> tuple[SessionDoc, TokenPair]:
        """Open a session and mint its first token pair.

        The session expires together with its refresh token.
        """
        if self._tokens is None:
            raise RuntimeError("SessionManager has no TokenService; it can only read and sweep")
        session_id = self._tokens.generate_session_id()
        pair = self._tokens.generate_token_pair(user_id, email, session_id)
        session = await self._repo.create(
            SessionDoc(
                id=session_id,
                user_id=user_id,
                token=pair.access_token,
                refresh_token=pair.refresh_token,
                expires_at=pair.refresh_token_expires_at,
                user_agent=user_agent,
                ip_address=ip_address,
                created_at=self._clock(),
            )
        )
        log.info("session_created", user_id=user_id, session_id=session_id)
        return session, pair

    async def get_session(self, session_id: str) -> Optional[SessionDoc]:
        return await self._repo.find_by_id(session_id)

    async def validate_session(self, session_id: str) -> SessionDoc:
        """Return the live session or raise NotFoundError.

        An expired session is deleted on the way out. Two requests racing on
        the same expired session both get NotFoundError; the loser's delete
        finding nothing is not an error, and a failed delete is only logged.
        """
        session = await self._repo.find_by_id(session_id)
        if session is None:
            raise NotFoundError("Session not found")

        if session.expires_at <= self._clock():
            try:
                await self._repo.delete(session_id)
            except StoreError as exc:
                if exc.kind is not StoreErrorKind.NOT_FOUND:
                    log.warning(
                        "expired_session_delete_failed",
                        session_id=session_id,
                        kind=exc.kind.value,
                        error=str(exc),
                    )
            log.info("session_expired", session_id=session_id, user_id=session.user_id)
            raise NotFoundError("Session expired")

        return session

    async def update_session_tokens(self, session_id: str, pair: TokenPair) -> SessionDoc:
        try:
            session = await self._repo.update_tokens(
                session_id,
                pair.access_token,
                pair.refresh_token,
                pair.refresh_token_expires_at,
            )
        except StoreError as exc:
            if exc.kind is StoreErrorKind.NOT_FOUND:
                raise NotFoundError("Session not found") from exc
            raise
        log.info("session_tokens_rotated", session_id=session_id)
        return session

    async def invalidate_session(self, session_id: str) -> None:
        try:
            await self._repo.delete(session_id)
        except StoreError as exc:
            if exc.kind is StoreErrorKind.NOT_FOUND:
                raise NotFoundError("Session not found") from exc
            raise
        log.info("session_invalidated", session_id=session_id)

    async def invalidate_all_user_sessions(self, user_id: str) -> int:
        count = await self._repo.delete_by_user(user_id)
        log.info("user_sessions_invalidated", user_id=user_id, count=count)
        return count

    async def get_session_by_refresh_token(self, refresh_token: str) -> Optional[SessionDoc]:
        return await self._repo.find_live_by_refresh_token(refresh_token, self._clock())

    async def get_active_session_by_user(self, user_id: str) -> Optional[SessionDoc]:
        return await self._repo.find_latest_live_by_user(user_id, self._clock())

    async def get_user_sessions(
        self, user_id: str, limit: int = 10, offset: int = 0
    ) -> tuple[list[SessionDoc], int]:
        return await self._repo.list_by_user(user_id, limit, offset)

    async def cleanup_expired_sessions(self) -> int:
        count = await self._repo.delete_expired(self._clock())
        if count:
            log.info("expired_sessions_cleaned", count=count)
        return count
