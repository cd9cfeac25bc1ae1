"""Repository protocols — services depend on these, not the MongoDB classes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from schemas.models.otp import OtpVerificationDoc
from schemas.models.session import SessionDoc
from schemas.models.user import UserDoc


class UserRepository(Protocol):
    async def find_by_email(self, email: str) -> Optional[UserDoc]: ...

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]: ...

    async def create(self, user: UserDoc) -> UserDoc: ...

    async def update_fields(self, email: str, updates: dict[str, Any]) -> UserDoc: ...


class OtpRepository(Protocol):
    async def find_by_email(self, email: str) -> Optional[OtpVerificationDoc]: ...

    async def upsert(
        self,
        email: str,
        fields: dict[str, Any],
        on_insert: Optional[dict[str, Any]] = None,
    ) -> None: ...

    async def update_fields(self, email: str, updates: dict[str, Any]) -> None: ...

    async def delete(self, email: str) -> None: ...


class SessionRepository(Protocol):
    async def create(self, session: SessionDoc) -> SessionDoc: ...

    async def find_by_id(self, session_id: str) -> Optional[SessionDoc]: ...

    async def find_live_by_refresh_token(
        self, refresh_token: str, now: datetime
    ) -> Optional[SessionDoc]: ...

    async def find_latest_live_by_user(
        self, user_id: str, now: datetime
    ) -> Optional[SessionDoc]: ...

    async def list_by_user(
        self, user_id: str, limit: int, offset: int
    ) -> tuple[list[SessionDoc], int]: ...

    async def update_tokens(
        self,
        session_id: str,
        token: str,
        refresh_token: Optional[str],
        expires_at: datetime,
    ) -> SessionDoc: ...

    async def delete(self, session_id: str) -> None: ...

    async def delete_by_user(self, user_id: str) -> int: ...

    async def delete_expired(self, now: datetime) -> int: ...
