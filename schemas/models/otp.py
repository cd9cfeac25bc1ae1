"""
OTP verification document model.

Maps to the `otp-verifications` MongoDB collection, one document per email
(unique index on `email`). Each issuance overwrites the previous document.

otp_hash stores SHA-256(otp_code) — the plain OTP is never stored.
attempt_count tracks failed verification tries (5 deletes the document).
verified stays True after a successful check so a later step (password
reset) can consume it without the raw code.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel

OTP_TYPE_EMAIL_VERIFICATION = "email_verification"
OTP_TYPE_PASSWORD_RESET = "password_reset"


class OtpVerificationDoc(MongoBaseModel):
    """Document model for the `otp-verifications` collection."""

    email: str
    otp_hash: str
    otp_type: str = OTP_TYPE_EMAIL_VERIFICATION
    expires_at: datetime
    attempt_count: int = Field(default=0, ge=0)
    verified: bool = False
    otp_cooldown: Optional[datetime] = None
    otp_locked_until: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
