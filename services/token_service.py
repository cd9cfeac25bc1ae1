"""
JWT access/refresh token issuance and verification.

Access and refresh tokens are signed with separate secrets and carry a
``type`` claim; each verifier rejects the other class even when both secrets
happen to be equal. The ``exp`` claim and the ``*_expires_at`` values handed
back to clients are derived from the same ``now`` and the same TTL, so they
always agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Optional

import jwt
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from config import JWTSettings
from errors import AuthenticationError, InvalidTokenError, TokenExpiredError
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_session_id, generate_token_id

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

TokenType = Literal["access", "refresh"]

_BEARER_PREFIX = "Bearer "


class TokenPayload(BaseModel):
    """The identity claims signed into both tokens of a pair."""

    model_config = ConfigDict(extra="ignore")

    user_id: str
    email: str
    session_id: str
    type: TokenType


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime


def extract_token_from_header(auth_header: Optional[str]) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not auth_header:
        raise AuthenticationError("Authorization header is missing")
    if not auth_header.startswith(_BEARER_PREFIX):
        raise AuthenticationError("Invalid authorization header format")
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise AuthenticationError("Token is missing")
    return token


def is_token_near_expiry(
    expires_at: datetime,
    window_seconds: int = 300,
    now: Optional[datetime] = None,
) -> bool:
    """True when *expires_at* falls within *window_seconds* from now."""
    now = now or utcnow()
    return expires_at <= now + timedelta(seconds=window_seconds)


class TokenService:
    def __init__(self, settings: JWTSettings, clock: Clock = utcnow) -> None:
        if not settings.access_token_secret or not settings.refresh_token_secret:
            raise RuntimeError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must both be set"
            )
        self._settings = settings
        self._clock = clock

    def _secret_for(self, token_type: TokenType) -> str:
        if token_type == TOKEN_TYPE_ACCESS:
            return self._settings.access_token_secret
        return self._settings.refresh_token_secret

    def _ttl_for(self, token_type: TokenType) -> timedelta:
        if token_type == TOKEN_TYPE_ACCESS:
            return timedelta(seconds=self._settings.access_token_ttl_seconds)
        return timedelta(seconds=self._settings.refresh_token_ttl_seconds)

    def _sign(
        self,
        user_id: str,
        email: str,
        session_id: str,
        token_type: TokenType,
        now: datetime,
    ) -> tuple[str, datetime]:
        expires_at = now + self._ttl_for(token_type)
        claims = {
            "user_id": user_id,
            "email": email,
            "session_id": session_id,
            "type": token_type,
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": generate_token_id(),
        }
        token = jwt.encode(
            claims, self._secret_for(token_type), algorithm=self._settings.jwt_algorithm
        )
        return token, expires_at

    def generate_access_token(self, user_id: str, email: str, session_id: str) -> str:
        token, _ = self._sign(user_id, email, session_id, TOKEN_TYPE_ACCESS, self._clock())
        return token

    def generate_refresh_token(self, user_id: str, email: str, session_id: str) -> str:
        token, _ = self._sign(user_id, email, session_id, TOKEN_TYPE_REFRESH, self._clock())
        return token

    def generate_token_pair(self, user_id: str, email: str, session_id: str) -> TokenPair:
        now = self._clock()
        access_token, access_expires_at = self._sign(
            user_id, email, session_id, TOKEN_TYPE_ACCESS, now
        )
        refresh_token, refresh_expires_at = self._sign(
            user_id, email, session_id, TOKEN_TYPE_REFRESH, now
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_token_expires_at=access_expires_at,
            refresh_token_expires_at=refresh_expires_at,
        )

    @staticmethod
    def generate_session_id() -> str:
        return generate_session_id()

    def _verify(self, token: str, expected_type: TokenType) -> TokenPayload:
        label = "Access" if expected_type == TOKEN_TYPE_ACCESS else "Refresh"
        try:
            claims = jwt.decode(
                token,
                self._secret_for(expected_type),
                algorithms=[self._settings.jwt_algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={"require": ["exp", "iat", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError(f"{label} token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(f"Invalid {label.lower()} token") from exc

        if claims.get("type") != expected_type:
            raise InvalidTokenError("Invalid token type")
        try:
            return TokenPayload.model_validate(claims)
        except PydanticValidationError as exc:
            raise InvalidTokenError("Token verification failed") from exc

    def verify_access_token(self, token: str) -> TokenPayload:
        return self._verify(token, TOKEN_TYPE_ACCESS)

    def verify_refresh_token(self, token: str) -> TokenPayload:
        return self._verify(token, TOKEN_TYPE_REFRESH)
