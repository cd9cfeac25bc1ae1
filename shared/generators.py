"""
Random code and identifier generators — pure, side-effect-free functions.

All generators use the ``secrets`` module.
"""

from __future__ import annotations

import secrets
import uuid

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Generate a 6-digit numeric OTP, uniform over [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def generate_session_id(nbytes: int = 32) -> str:
    """Generate an opaque session identifier.

    Args:
        nbytes: Number of random bytes (default 32, giving 64 hex characters).
    """
    return secrets.token_hex(nbytes)


def generate_user_id() -> str:
    return str(uuid.uuid4())


def generate_token_id() -> str:
    """Unique ``jti`` so two tokens minted in the same second never collide."""
    return uuid.uuid4().hex
