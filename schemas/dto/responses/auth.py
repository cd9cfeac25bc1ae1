"""
Response DTOs for authentication endpoints.

All fields serialise as camelCase (``accessTokenExpiresAt``) to match the
request DTOs.

UserResponse        — public user shape (never includes the password hash)
SessionInfo         — session id + expiry
TokenPairResponse   — access/refresh tokens with their expiry instants
LoginData           — data of POST /api/v1/auth/user-login
RefreshData         — data of POST /api/v1/auth/refresh-token
AuthStatusData      — data of GET /api/v1/auth/status
SessionListData     — data of GET /api/v1/users/{user_id}/sessions
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from schemas.dto.responses.common import PaginationMeta
from schemas.models.session import SessionDoc
from schemas.models.user import UserDoc
from services.token_service import TokenPair


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserResponse(_CamelModel):
    id: str
    email: str
    full_name: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            status=user.status,
            created_at=user.created_at,
        )


class SessionInfo(_CamelModel):
    id: str
    expires_at: datetime
    created_at: Optional[datetime] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

    @classmethod
    def from_doc(cls, session: SessionDoc) -> "SessionInfo":
        return cls(
            id=session.id,
            expires_at=session.expires_at,
            created_at=session.created_at,
            user_agent=session.user_agent,
            ip_address=session.ip_address,
        )


class TokenPairResponse(_CamelModel):
    access_token: str
    refresh_token: str
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenPairResponse":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            access_token_expires_at=pair.access_token_expires_at,
            refresh_token_expires_at=pair.refresh_token_expires_at,
        )


class LoginData(_CamelModel):
    user: UserResponse
    session: SessionInfo
    tokens: TokenPairResponse


class RefreshData(_CamelModel):
    session: SessionInfo
    tokens: TokenPairResponse


class AuthStatusData(_CamelModel):
    authenticated: bool
    user: Optional[UserResponse] = None


class SessionListData(_CamelModel):
    sessions: list[SessionInfo]
    pagination: PaginationMeta
