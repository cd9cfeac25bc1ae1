"""
Authentication flows and the per-request authentication pipeline.

AuthService sits between the HTTP routes and the OTP, token and session
services. Every failure leaves as a typed AppError so the route layer never
inspects messages or repository errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    OtpAttemptsExceededError,
    OtpExpiredError,
    OtpInvalidError,
)
from repositories.errors import StoreError, StoreErrorKind
from repositories.protocols import UserRepository
from schemas.models.otp import OTP_TYPE_EMAIL_VERIFICATION, OTP_TYPE_PASSWORD_RESET
from schemas.models.session import SessionDoc
from schemas.models.user import USER_STATUS_ACTIVE, USER_STATUS_INACTIVE, UserDoc
from services.otp_service import (
    PASSWORD_RESET_SENTINEL,
    TEMPLATE_FORGOT_PASSWORD,
    TEMPLATE_VERIFY_EMAIL,
    OtpCheckResult,
    OtpFailure,
    OtpService,
)
from services.session_service import SessionManager
from services.token_service import (
    TokenPair,
    TokenPayload,
    TokenService,
    extract_token_from_header,
    is_token_near_expiry,
)
from shared.crypto import hash_password, verify_password
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved for an authenticated request."""

    user: UserDoc
    session_id: str
    token_payload: TokenPayload
    expires_soon: bool = False


@dataclass(frozen=True)
class LoginResult:
    user: UserDoc
    session: SessionDoc
    tokens: TokenPair


@dataclass(frozen=True)
class RefreshResult:
    session: SessionDoc
    tokens: TokenPair


def _raise_for_otp_failure(result: OtpCheckResult) -> None:
    if result.reason is OtpFailure.EXPIRED:
        raise OtpExpiredError(result.message)
    if result.reason is OtpFailure.LOCKED:
        raise OtpAttemptsExceededError(result.message)
    raise OtpInvalidError(result.message)


class AuthService:
    def __init__(
        self,
        user_repo: UserRepository,
        otp_service: OtpService,
        session_manager: SessionManager,
        token_service: TokenService,
        expiry_warning_seconds: int = 300,
        clock: Clock = utcnow,
    ) -> None:
        self._users = user_repo
        self._otp = otp_service
        self._sessions = session_manager
        self._tokens = token_service
        self._expiry_warning_seconds = expiry_warning_seconds
        self._clock = clock

    # ── Registration ─────────────────────────────────────────────────────────

    async def register(self, email: str, full_name: str, password: str) -> UserDoc:
        if await self._users.find_by_email(email) is not None:
            raise ConflictError("User with this email already exists", field="email")

        restriction = await self._otp.check_otp_restriction(email)
        if not restriction.allowed:
            raise OtpAttemptsExceededError(restriction.message or "OTP request not allowed")

        await self._otp.send_otp_email(
            email, TEMPLATE_VERIFY_EMAIL, otp_type=OTP_TYPE_EMAIL_VERIFICATION
        )

        try:
            user = await self._users.create(
                UserDoc(
                    email=email,
                    password_hash=hash_password(password),
                    full_name=full_name,
                    status=USER_STATUS_INACTIVE,
                )
            )
        except StoreError as exc:
            if exc.kind is StoreErrorKind.UNIQUE_VIOLATION:
                raise ConflictError(
                    "User with this email already exists", field="email"
                ) from exc
            raise

        log.info("user_registered", user_id=user.id, email=email)
        return user

    async def verify_registration(self, email: str, otp: str) -> UserDoc:
        if await self._users.find_by_email(email) is None:
            raise AuthenticationError("User not found")

        result = await self._otp.verify_otp(email, otp)
        if not result.valid:
            _raise_for_otp_failure(result)

        user = await self._users.update_fields(email, {"status": USER_STATUS_ACTIVE})
        await self._otp.cleanup_otp(email)
        log.info("user_verified", user_id=user.id, email=email)
        return user

    # ── Login ────────────────────────────────────────────────────────────────

    async def login(
        self,
        email: str,
        password: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> LoginResult:
        user = await self._users.find_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise ForbiddenError("Please verify your email before logging in")
        if not verify_password(password, user.password_hash):
            log.info("login_failed", user_id=user.id, reason="bad_password")
            raise InvalidCredentialsError("Invalid email or password")

        session, pair = await self._sessions.create_session(
            user.id, user.email, user_agent=user_agent, ip_address=ip_address
        )
        log.info("user_logged_in", user_id=user.id, session_id=session.id)
        return LoginResult(user=user, session=session, tokens=pair)

    # ── Password reset ───────────────────────────────────────────────────────

    async def forgot_password(self, email: str) -> None:
        if await self._users.find_by_email(email) is None:
            raise AuthenticationError("User not found")

        restriction = await self._otp.check_otp_restriction(email)
        if not restriction.allowed:
            raise OtpAttemptsExceededError(restriction.message or "OTP request not allowed")

        await self._otp.send_otp_email(
            email, TEMPLATE_FORGOT_PASSWORD, otp_type=OTP_TYPE_PASSWORD_RESET
        )

    async def verify_forgot_password_otp(self, email: str, otp: str) -> None:
        if await self._users.find_by_email(email) is None:
            raise AuthenticationError("User not found")

        result = await self._otp.verify_otp(email, otp)
        if not result.valid:
            _raise_for_otp_failure(result)

    async def reset_password(self, email: str, new_password: str) -> int:
        """Set a new password after a verified OTP; returns sessions revoked."""
        user = await self._users.find_by_email(email)
        if user is None:
            raise AuthenticationError("User not found")

        result = await self._otp.verify_otp(email, PASSWORD_RESET_SENTINEL)
        if not result.valid:
            _raise_for_otp_failure(result)

        await self._users.update_fields(email, {"password_hash": hash_password(new_password)})
        await self._otp.cleanup_otp(email)
        revoked = await self._sessions.invalidate_all_user_sessions(user.id)
        log.info("password_reset", user_id=user.id, sessions_revoked=revoked)
        return revoked

    # ── Tokens ───────────────────────────────────────────────────────────────

    async def refresh_tokens(self, refresh_token: str) -> RefreshResult:
        payload = self._tokens.verify_refresh_token(refresh_token)

        session = await self._sessions.get_session_by_refresh_token(refresh_token)
        if session is None:
            raise AuthenticationError("Invalid or expired refresh token")
        if session.id != payload.session_id:
            raise InvalidTokenError("Token session mismatch")

        user = await self._users.find_by_id(payload.user_id)
        if user is None:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise ForbiddenError("User account is not active")

        pair = self._tokens.generate_token_pair(user.id, user.email, session.id)
        session = await self._sessions.update_session_tokens(session.id, pair)
        log.info("tokens_refreshed", user_id=user.id, session_id=session.id)
        return RefreshResult(session=session, tokens=pair)

    async def logout(self, session_id: str) -> None:
        await self._sessions.invalidate_session(session_id)

    async def logout_everywhere(self, user_id: str) -> int:
        return await self._sessions.invalidate_all_user_sessions(user_id)

    # ── Per-request authentication ───────────────────────────────────────────

    async def authenticate(self, auth_header: Optional[str]) -> AuthContext:
        """Resolve the caller behind an ``Authorization`` header.

        The access token must verify, its session must still be live, and the
        session must still be bound to this exact token; a token rotated out
        by a refresh is rejected even while its signature is valid.
        """
        token = extract_token_from_header(auth_header)
        payload = self._tokens.verify_access_token(token)

        try:
            session = await self._sessions.validate_session(payload.session_id)
        except NotFoundError as exc:
            raise AuthenticationError("Session expired or invalid") from exc

        if session.token != token:
            raise InvalidTokenError("Token session mismatch")

        user = await self._users.find_by_id(payload.user_id)
        if user is None:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise ForbiddenError("User account is not active")

        expires_soon = is_token_near_expiry(
            session.expires_at, self._expiry_warning_seconds, now=self._clock()
        )
        return AuthContext(
            user=user,
            session_id=session.id,
            token_payload=payload,
            expires_soon=expires_soon,
        )
