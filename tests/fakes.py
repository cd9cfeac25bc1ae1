"""
In-memory stand-ins for the repositories and the email sender.

They honour the same contracts as the MongoDB classes (StoreError kinds,
upsert semantics, live-session filters) so services can be tested without a
database.
"""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from config import JWTSettings
from infrastructure.email.protocol import EmailDeliveryError
from repositories.errors import StoreError, StoreErrorKind
from schemas.models.otp import OtpVerificationDoc
from schemas.models.session import SessionDoc
from schemas.models.user import UserDoc
from shared.generators import generate_user_id

TEST_JWT_SETTINGS = JWTSettings(
    access_token_secret="test-access-secret-0123456789abcdef",
    refresh_token_secret="test-refresh-secret-0123456789abcdef",
)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeUserRepository:
    def __init__(self) -> None:
        self.users: dict[str, UserDoc] = {}

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        for user in self.users.values():
            if user.email == email:
                return user.model_copy()
        return None

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        user = self.users.get(user_id)
        return user.model_copy() if user else None

    async def create(self, user: UserDoc) -> UserDoc:
        if any(u.email == user.email for u in self.users.values()):
            raise StoreError(StoreErrorKind.UNIQUE_VIOLATION, "duplicate email")
        stored = user.model_copy(update={"id": user.id or generate_user_id()})
        self.users[stored.id] = stored
        return stored.model_copy()

    async def update_fields(self, email: str, updates: dict[str, Any]) -> UserDoc:
        for user_id, user in self.users.items():
            if user.email == email:
                self.users[user_id] = user.model_copy(update=updates)
                return self.users[user_id].model_copy()
        raise StoreError.not_found(f"No user with email {email!r}")


class FakeOtpRepository:
    def __init__(self) -> None:
        self.records: dict[str, dict[str, Any]] = {}

    async def find_by_email(self, email: str) -> Optional[OtpVerificationDoc]:
        record = self.records.get(email)
        return OtpVerificationDoc.model_validate(copy.deepcopy(record)) if record else None

    async def upsert(
        self,
        email: str,
        fields: dict[str, Any],
        on_insert: Optional[dict[str, Any]] = None,
    ) -> None:
        if email not in self.records:
            self.records[email] = {"email": email, **(on_insert or {})}
        self.records[email].update(fields)

    async def update_fields(self, email: str, updates: dict[str, Any]) -> None:
        if email not in self.records:
            raise StoreError.not_found(f"No OTP record for {email!r}")
        self.records[email].update(updates)

    async def delete(self, email: str) -> None:
        if self.records.pop(email, None) is None:
            raise StoreError.not_found(f"No OTP record for {email!r}")


class FakeSessionRepository:
    def __init__(self) -> None:
        self.sessions: dict[str, SessionDoc] = {}

    async def create(self, session: SessionDoc) -> SessionDoc:
        self.sessions[session.id] = session.model_copy()
        return session.model_copy()

    async def find_by_id(self, session_id: str) -> Optional[SessionDoc]:
        session = self.sessions.get(session_id)
        return session.model_copy() if session else None

    async def find_live_by_refresh_token(
        self, refresh_token: str, now: datetime
    ) -> Optional[SessionDoc]:
        for session in self.sessions.values():
            if session.refresh_token == refresh_token and session.expires_at > now:
                return session.model_copy()
        return None

    async def find_latest_live_by_user(
        self, user_id: str, now: datetime
    ) -> Optional[SessionDoc]:
        live = [
            s for s in self.sessions.values() if s.user_id == user_id and s.expires_at > now
        ]
        if not live:
            return None
        return max(live, key=lambda s: s.created_at).model_copy()

    async def list_by_user(
        self, user_id: str, limit: int, offset: int
    ) -> tuple[list[SessionDoc], int]:
        owned = sorted(
            (s for s in self.sessions.values() if s.user_id == user_id),
            key=lambda s: s.created_at,
            reverse=True,
        )
        return [s.model_copy() for s in owned[offset : offset + limit]], len(owned)

    async def update_tokens(
        self,
        session_id: str,
        token: str,
        refresh_token: Optional[str],
        expires_at: datetime,
    ) -> SessionDoc:
        session = self.sessions.get(session_id)
        if session is None:
            raise StoreError.not_found(f"Session {session_id!r} not found")
        updated = session.model_copy(
            update={"token": token, "refresh_token": refresh_token, "expires_at": expires_at}
        )
        self.sessions[session_id] = updated
        return updated.model_copy()

    async def delete(self, session_id: str) -> None:
        if self.sessions.pop(session_id, None) is None:
            raise StoreError.not_found(f"Session {session_id!r} not found")

    async def delete_by_user(self, user_id: str) -> int:
        doomed = [sid for sid, s in self.sessions.items() if s.user_id == user_id]
        for sid in doomed:
            del self.sessions[sid]
        return len(doomed)

    async def delete_expired(self, now: datetime) -> int:
        doomed = [sid for sid, s in self.sessions.items() if s.expires_at < now]
        for sid in doomed:
            del self.sessions[sid]
        return len(doomed)


class FakeEmailSender:
    """Records every message; set ``fail`` to simulate a provider outage."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send(
        self,
        to_address: str,
        subject: str,
        text_body: str,
        template_name: str,
        template_data: dict[str, Any],
    ) -> None:
        if self.fail:
            raise EmailDeliveryError("provider down", status_code=503)
        self.sent.append(
            {
                "to": to_address,
                "subject": subject,
                "text": text_body,
                "template": template_name,
                "data": template_data,
            }
        )

    def last_code(self, email: Optional[str] = None) -> str:
        for message in reversed(self.sent):
            if email is None or message["to"] == email:
                return message["data"]["otp"]
        raise AssertionError(f"no OTP email sent to {email!r}")
