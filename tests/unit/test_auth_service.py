"""Unit tests for the auth flows and the request authentication pipeline."""

from datetime import timedelta

import pytest

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
    TokenExpiredError,
    ValidationError,
)
from schemas.models.otp import OTP_TYPE_EMAIL_VERIFICATION
from schemas.models.user import USER_STATUS_ACTIVE, USER_STATUS_INACTIVE
from services.auth_service import AuthService
from services.otp_service import OtpService
from services.session_service import SessionManager
from services.token_service import TokenService
from shared.crypto import verify_password
from tests.fakes import (
    TEST_JWT_SETTINGS,
    FakeClock,
    FakeEmailSender,
    FakeOtpRepository,
    FakeSessionRepository,
    FakeUserRepository,
)

EMAIL = "owner@example.com"
PASSWORD = "correct-horse-battery"


class Harness:
    def __init__(self, email_fails: bool = False) -> None:
        self.clock = FakeClock()
        self.users = FakeUserRepository()
        self.otps = FakeOtpRepository()
        self.sessions = FakeSessionRepository()
        self.email = FakeEmailSender(fail=email_fails)
        self.tokens = TokenService(TEST_JWT_SETTINGS)
        self.session_manager = SessionManager(self.sessions, self.tokens, clock=self.clock)
        self.service = AuthService(
            self.users,
            OtpService(self.otps, self.email, clock=self.clock),
            self.session_manager,
            self.tokens,
            clock=self.clock,
        )

    async def active_user(self, email: str = EMAIL, password: str = PASSWORD):
        await self.service.register(email, "Ada Lovelace", password)
        return await self.service.verify_registration(email, self.email.last_code(email))

    def wrong_code(self, email: str = EMAIL) -> str:
        code = self.email.last_code(email)
        return "100000" if code != "100000" else "100001"


@pytest.fixture
def h():
    return Harness()


def bearer(token: str) -> str:
    return f"Bearer {token}"


# ── Registration ──────────────────────────────────────────────────────────────


class TestRegister:
    async def test_creates_inactive_user_and_sends_otp(self, h):
        user = await h.service.register(EMAIL, "Ada Lovelace", PASSWORD)

        assert user.status == USER_STATUS_INACTIVE
        assert user.password_hash != PASSWORD
        assert verify_password(PASSWORD, user.password_hash)
        assert h.email.sent[-1]["template"] == "verify_email_otp"
        assert h.otps.records[EMAIL]["otp_type"] == OTP_TYPE_EMAIL_VERIFICATION
        assert h.otps.records[EMAIL]["attempt_count"] == 0

    async def test_existing_email_conflicts(self, h):
        await h.service.register(EMAIL, "Ada Lovelace", PASSWORD)
        with pytest.raises(ConflictError):
            await h.service.register(EMAIL, "Someone Else", PASSWORD)

    async def test_cooldown_is_rate_limited(self, h):
        await h.otps.upsert(
            EMAIL,
            {
                "otp_hash": "x" * 64,
                "expires_at": h.clock.now + timedelta(minutes=5),
                "otp_cooldown": h.clock.now + timedelta(seconds=30),
            },
        )
        with pytest.raises(OtpAttemptsExceededError) as exc_info:
            await h.service.register(EMAIL, "Ada Lovelace", PASSWORD)
        assert exc_info.value.status_code == 429
        assert "30 seconds" in exc_info.value.message
        assert await h.users.find_by_email(EMAIL) is None

    async def test_email_failure_surfaces_validation_error(self):
        h = Harness(email_fails=True)
        with pytest.raises(ValidationError):
            await h.service.register(EMAIL, "Ada Lovelace", PASSWORD)
        assert EMAIL in h.otps.records


class TestVerifyRegistration:
    async def test_activates_and_cleans_up(self, h):
        user = await h.active_user()
        assert user.status == USER_STATUS_ACTIVE
        assert EMAIL not in h.otps.records

    async def test_unknown_user(self, h):
        with pytest.raises(AuthenticationError):
            await h.service.verify_registration("ghost@example.com", "123456")

    async def test_wrong_code(self, h):
        await h.service.register(EMAIL, "Ada Lovelace", PASSWORD)
        with pytest.raises(OtpInvalidError, match="4 attempts remaining"):
            await h.service.verify_registration(EMAIL, h.wrong_code())

    async def test_expired_code(self, h):
        await h.service.register(EMAIL, "Ada Lovelace", PASSWORD)
        code = h.email.last_code(EMAIL)
        h.clock.advance(minutes=6)
        with pytest.raises(OtpExpiredError):
            await h.service.verify_registration(EMAIL, code)

    async def test_lockout_then_no_otp_found(self, h):
        await h.service.register(EMAIL, "Ada Lovelace", PASSWORD)
        code = h.email.last_code(EMAIL)
        wrong = h.wrong_code()

        for _ in range(4):
            with pytest.raises(OtpInvalidError):
                await h.service.verify_registration(EMAIL, wrong)
        with pytest.raises(OtpAttemptsExceededError):
            await h.service.verify_registration(EMAIL, wrong)

        with pytest.raises(OtpInvalidError, match="No OTP found for this email"):
            await h.service.verify_registration(EMAIL, code)


# ── Login ─────────────────────────────────────────────────────────────────────


class TestLogin:
    async def test_active_user_gets_session_and_tokens(self, h):
        await h.active_user()
        result = await h.service.login(EMAIL, PASSWORD, user_agent="pytest", ip_address="::1")

        assert result.session.token == result.tokens.access_token
        assert result.session.user_agent == "pytest"
        assert result.session.id in h.sessions.sessions

    async def test_unknown_user(self, h):
        with pytest.raises(NotFoundError):
            await h.service.login("ghost@example.com", PASSWORD)

    @pytest.mark.parametrize("password", [PASSWORD, "wrong-password"])
    async def test_inactive_user_forbidden_regardless_of_password(self, h, password):
        await h.service.register(EMAIL, "Ada Lovelace", PASSWORD)
        with pytest.raises(ForbiddenError):
            await h.service.login(EMAIL, password)

    async def test_bad_password(self, h):
        await h.active_user()
        with pytest.raises(InvalidCredentialsError):
            await h.service.login(EMAIL, "wrong-password")
        assert h.sessions.sessions == {}


# ── Authenticate ──────────────────────────────────────────────────────────────


class TestAuthenticate:
    async def test_valid_token(self, h):
        user = await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)

        ctx = await h.service.authenticate(bearer(login.tokens.access_token))

        assert ctx.user.id == user.id
        assert ctx.session_id == login.session.id
        assert ctx.token_payload.email == EMAIL
        assert ctx.expires_soon is False

    async def test_missing_header(self, h):
        with pytest.raises(AuthenticationError):
            await h.service.authenticate(None)

    async def test_refresh_token_not_accepted_as_access(self, h):
        await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        with pytest.raises(InvalidTokenError):
            await h.service.authenticate(bearer(login.tokens.refresh_token))

    async def test_expired_access_token(self, h):
        await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        stale = TokenService(
            TEST_JWT_SETTINGS, clock=lambda: h.clock.now - timedelta(hours=1)
        ).generate_access_token(login.user.id, EMAIL, login.session.id)
        with pytest.raises(TokenExpiredError):
            await h.service.authenticate(bearer(stale))

    async def test_logged_out_session_rejected(self, h):
        await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        await h.service.logout(login.session.id)
        with pytest.raises(AuthenticationError):
            await h.service.authenticate(bearer(login.tokens.access_token))

    async def test_expired_session_rejected_and_deleted(self, h):
        await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        h.sessions.sessions[login.session.id] = login.session.model_copy(
            update={"expires_at": h.clock.now - timedelta(seconds=1)}
        )
        with pytest.raises(AuthenticationError):
            await h.service.authenticate(bearer(login.tokens.access_token))
        assert login.session.id not in h.sessions.sessions

    async def test_inactive_user_forbidden(self, h):
        user = await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        h.users.users[user.id] = user.model_copy(update={"status": USER_STATUS_INACTIVE})
        with pytest.raises(ForbiddenError):
            await h.service.authenticate(bearer(login.tokens.access_token))

    async def test_expires_soon_flag(self, h):
        await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        h.sessions.sessions[login.session.id] = login.session.model_copy(
            update={"expires_at": h.clock.now + timedelta(minutes=2)}
        )
        ctx = await h.service.authenticate(bearer(login.tokens.access_token))
        assert ctx.expires_soon is True


# ── Refresh ───────────────────────────────────────────────────────────────────


class TestRefresh:
    async def test_rotation_invalidates_old_access_token(self, h):
        await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)

        refreshed = await h.service.refresh_tokens(login.tokens.refresh_token)

        assert refreshed.session.id == login.session.id
        ctx = await h.service.authenticate(bearer(refreshed.tokens.access_token))
        assert ctx.session_id == login.session.id
        with pytest.raises(InvalidTokenError, match="Token session mismatch"):
            await h.service.authenticate(bearer(login.tokens.access_token))

    async def test_old_refresh_token_is_spent(self, h):
        await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        await h.service.refresh_tokens(login.tokens.refresh_token)
        with pytest.raises(AuthenticationError):
            await h.service.refresh_tokens(login.tokens.refresh_token)

    async def test_access_token_rejected(self, h):
        await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        with pytest.raises(InvalidTokenError):
            await h.service.refresh_tokens(login.tokens.access_token)

    async def test_inactive_user_forbidden(self, h):
        user = await h.active_user()
        login = await h.service.login(EMAIL, PASSWORD)
        h.users.users[user.id] = user.model_copy(update={"status": USER_STATUS_INACTIVE})
        with pytest.raises(ForbiddenError):
            await h.service.refresh_tokens(login.tokens.refresh_token)


# ── Password reset ────────────────────────────────────────────────────────────


class TestPasswordReset:
    async def _request_and_verify(self, h):
        h.clock.advance(seconds=61)
        await h.service.forgot_password(EMAIL)
        await h.service.verify_forgot_password_otp(EMAIL, h.email.last_code(EMAIL))

    async def test_forgot_password_unknown_user(self, h):
        with pytest.raises(AuthenticationError):
            await h.service.forgot_password("ghost@example.com")

    async def test_forgot_password_uses_reset_template(self, h):
        await h.active_user()
        h.clock.advance(seconds=61)
        await h.service.forgot_password(EMAIL)
        assert h.email.sent[-1]["template"] == "forgot_password_otp"

    async def test_reset_requires_verified_otp(self, h):
        await h.active_user()
        h.clock.advance(seconds=61)
        await h.service.forgot_password(EMAIL)
        with pytest.raises(OtpInvalidError):
            await h.service.reset_password(EMAIL, "a-brand-new-pass")

    async def test_reset_without_any_otp(self, h):
        await h.active_user()
        with pytest.raises(OtpInvalidError, match="No OTP found"):
            await h.service.reset_password(EMAIL, "a-brand-new-pass")

    async def test_verified_record_survives_until_reset(self, h):
        await h.active_user()
        await self._request_and_verify(h)
        assert h.otps.records[EMAIL]["verified"] is True

    async def test_reset_revokes_every_session(self, h):
        await h.active_user()
        first = await h.service.login(EMAIL, PASSWORD)
        second = await h.service.login(EMAIL, PASSWORD)
        await self._request_and_verify(h)

        revoked = await h.service.reset_password(EMAIL, "a-brand-new-pass")

        assert revoked == 2
        assert h.sessions.sessions == {}
        assert EMAIL not in h.otps.records
        for login in (first, second):
            with pytest.raises(AuthenticationError):
                await h.service.authenticate(bearer(login.tokens.access_token))

        with pytest.raises(InvalidCredentialsError):
            await h.service.login(EMAIL, PASSWORD)
        assert (await h.service.login(EMAIL, "a-brand-new-pass")).session.id


# ── Logout ────────────────────────────────────────────────────────────────────


async def test_logout_everywhere(h):
    user = await h.active_user()
    await h.service.login(EMAIL, PASSWORD)
    await h.service.login(EMAIL, PASSWORD)
    assert await h.service.logout_everywhere(user.id) == 2


async def test_logout_unknown_session(h):
    with pytest.raises(NotFoundError):
        await h.service.logout("missing")
