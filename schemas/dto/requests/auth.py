"""
Request DTOs for authentication endpoints.

RegisterRequest               — POST /api/v1/auth/user-register
VerifyOtpRequest              — POST /api/v1/auth/user-verify
                                POST /api/v1/auth/verify-forgot-password-otp
LoginRequest                  — POST /api/v1/auth/user-login
ForgotPasswordRequest         — POST /api/v1/auth/forgot-password
ResetPasswordRequest          — POST /api/v1/auth/reset-password
RefreshTokenRequest           — POST /api/v1/auth/refresh-token

Clients send camelCase keys (``fullName``, ``newPassword``, ``refreshToken``);
snake_case is accepted as well.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def _normalise_email(value: str) -> str:
    return value.strip().lower()


class _EmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr

    @field_validator("email", mode="after")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return _normalise_email(value)


class RegisterRequest(_EmailRequest):
    """Request body for POST /api/v1/auth/user-register."""

    full_name: str = Field(alias="fullName", min_length=2, max_length=100)
    password: str = Field(min_length=8, max_length=128)


class VerifyOtpRequest(_EmailRequest):
    """Request body for the OTP verification endpoints.

    ``otp`` is the 6-digit code sent to the user's email address.
    """

    otp: str = Field(pattern=r"^\d{6}$")


class LoginRequest(_EmailRequest):
    """Request body for POST /api/v1/auth/user-login."""

    password: str = Field(min_length=1)


class ForgotPasswordRequest(_EmailRequest):
    """Request body for POST /api/v1/auth/forgot-password."""


class ResetPasswordRequest(_EmailRequest):
    """Request body for POST /api/v1/auth/reset-password.

    The OTP must already have been verified via
    /api/v1/auth/verify-forgot-password-otp.
    """

    new_password: str = Field(alias="newPassword", min_length=8, max_length=128)


class RefreshTokenRequest(BaseModel):
    """Request body for POST /api/v1/auth/refresh-token."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(alias="refreshToken", min_length=1)
