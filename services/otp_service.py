"""
OTP issuance and verification for email ownership checks.

One OTP record per email. The flow is:

1. ``check_otp_restriction`` — refuse while the 60 s cooldown or a lock is
   active.
2. ``send_otp_email`` — upsert a fresh code (attempts reset, unverified) and
   email it.
3. ``verify_otp`` — compare; 5 misses delete the record, a hit marks it
   verified and keeps it for the next step of the flow.
4. ``cleanup_otp`` — drop the record once the flow is done.

Domain outcomes (cooldown, mismatch, expiry, lockout) come back as result
objects; only email delivery failure raises.

Attempt counting is a read-then-write without a lock, so two concurrent
wrong guesses for the same email can both read the same count. That only
delays the lockout by one attempt and can never accept a wrong code.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

from config import OtpSettings
from errors import ValidationError
from infrastructure.email.protocol import EmailDeliveryError, EmailSender
from repositories.errors import StoreError, StoreErrorKind
from repositories.protocols import OtpRepository
from schemas.models.otp import OTP_TYPE_EMAIL_VERIFICATION
from shared.crypto import hash_token, token_matches
from shared.datetime_utils import Clock, ceil_minutes_until, ceil_seconds_until, utcnow
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)

# Passed as the code by the password-reset step to consume an OTP that was
# already verified in the previous step, without sending the raw code again.
PASSWORD_RESET_SENTINEL = "resetPasswordOtp"

TEMPLATE_VERIFY_EMAIL = "verify_email_otp"
TEMPLATE_FORGOT_PASSWORD = "forgot_password_otp"

OTP_EMAIL_SUBJECT = "Your OTP Code"


class OtpFailure(str, Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    NOT_VERIFIED = "not_verified"
    MISMATCH = "mismatch"
    LOCKED = "locked"


@dataclass(frozen=True)
class OtpRestriction:
    allowed: bool
    message: Optional[str] = None


@dataclass(frozen=True)
class OtpSendResult:
    success: bool
    message: str


@dataclass(frozen=True)
class OtpCheckResult:
    valid: bool
    message: str
    reason: Optional[OtpFailure] = None
    remaining_attempts: Optional[int] = None


class OtpService:
    def __init__(
        self,
        repository: OtpRepository,
        email_sender: EmailSender,
        settings: Optional[OtpSettings] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._repo = repository
        self._email = email_sender
        self._settings = settings or OtpSettings()
        self._clock = clock

    async def check_otp_restriction(self, email: str) -> OtpRestriction:
        record = await self._repo.find_by_email(email)
        if record is None:
            return OtpRestriction(allowed=True)

        now = self._clock()
        if record.otp_cooldown and now < record.otp_cooldown:
            remaining = ceil_seconds_until(record.otp_cooldown, now)
            return OtpRestriction(
                allowed=False,
                message=f"You can request a new OTP in {remaining} seconds",
            )

        if record.otp_locked_until and now < record.otp_locked_until:
            remaining = ceil_minutes_until(record.otp_locked_until, now)
            return OtpRestriction(
                allowed=False,
                message=(
                    "Account is locked due to too many failed OTP attempts! "
                    f"Try again after {remaining} minutes"
                ),
            )

        return OtpRestriction(allowed=True)

    async def send_otp_email(
        self,
        email: str,
        template_name: str,
        otp_type: str = OTP_TYPE_EMAIL_VERIFICATION,
    ) -> OtpSendResult:
        code = generate_otp_code()
        now = self._clock()
        expires_at = now + timedelta(seconds=self._settings.otp_expiry_seconds)

        await self._repo.upsert(
            email,
            {
                "otp_hash": hash_token(code),
                "expires_at": expires_at,
                "attempt_count": 0,
                "verified": False,
                "otp_cooldown": now + timedelta(seconds=self._settings.otp_cooldown_seconds),
                "otp_locked_until": None,
            },
            on_insert={"otp_type": otp_type},
        )
        log.info("otp_issued", email=email, purpose=otp_type)

        minutes = max(1, self._settings.otp_expiry_seconds // 60)
        try:
            await self._email.send(
                email,
                OTP_EMAIL_SUBJECT,
                f"Your OTP code is: {code}. It is valid for {minutes} minutes.",
                template_name,
                {"otp": code, "expires_at": expires_at.isoformat(), "email": email},
            )
        except EmailDeliveryError as exc:
            log.error("otp_email_failed", email=email, error=str(exc))
            raise ValidationError(
                "Failed to send OTP email", details={"error": str(exc)}
            ) from exc

        return OtpSendResult(success=True, message="OTP sent successfully")

    async def verify_otp(self, email: str, code: str) -> OtpCheckResult:
        record = await self._repo.find_by_email(email)
        if record is None:
            return OtpCheckResult(
                valid=False,
                message="No OTP found for this email",
                reason=OtpFailure.NOT_FOUND,
            )

        if record.expires_at < self._clock():
            await self._delete_quietly(email)
            return OtpCheckResult(
                valid=False, message="OTP has expired", reason=OtpFailure.EXPIRED
            )

        if code == PASSWORD_RESET_SENTINEL:
            if record.verified:
                return OtpCheckResult(
                    valid=True, message="OTP verified successfully for password reset"
                )
            return OtpCheckResult(
                valid=False,
                message="OTP is not verified for password reset",
                reason=OtpFailure.NOT_VERIFIED,
            )

        if not token_matches(code, record.otp_hash):
            attempts = record.attempt_count + 1
            max_attempts = self._settings.otp_max_attempts
            if attempts >= max_attempts:
                await self._delete_quietly(email)
                log.warning("otp_locked_out", email=email, attempts=attempts)
                return OtpCheckResult(
                    valid=False,
                    message="Too many failed attempts. Please request a new OTP",
                    reason=OtpFailure.LOCKED,
                    remaining_attempts=0,
                )

            await self._repo.update_fields(email, {"attempt_count": attempts})
            remaining = max_attempts - attempts
            return OtpCheckResult(
                valid=False,
                message=f"Invalid OTP. {remaining} attempts remaining",
                reason=OtpFailure.MISMATCH,
                remaining_attempts=remaining,
            )

        await self._repo.update_fields(email, {"verified": True})
        log.info("otp_verified", email=email)
        return OtpCheckResult(valid=True, message="OTP verified successfully")

    async def cleanup_otp(self, email: str) -> None:
        """Best-effort delete of the OTP record; failures are only logged."""
        try:
            await self._repo.delete(email)
        except StoreError as exc:
            log.warning("otp_cleanup_failed", email=email, kind=exc.kind.value, error=str(exc))

    async def _delete_quietly(self, email: str) -> None:
        # A concurrent request may already have removed the record.
        try:
            await self._repo.delete(email)
        except StoreError as exc:
            if exc.kind is not StoreErrorKind.NOT_FOUND:
                raise
