"""
MongoDB record store for users, OTP verifications and sessions.

ensure_indexes() is awaited once from the app lifespan.
"""

from __future__ import annotations

from pymongo import ASCENDING

from repositories.base import translate_errors
from repositories.otp_repository import COLLECTION as OTP_COLLECTION
from repositories.otp_repository import MongoOtpRepository
from repositories.session_repository import COLLECTION as SESSION_COLLECTION
from repositories.session_repository import MongoSessionRepository
from repositories.user_repository import COLLECTION as USER_COLLECTION
from repositories.user_repository import MongoUserRepository


async def ensure_indexes(db) -> None:
    async with translate_errors("ensure_indexes"):
        await db[USER_COLLECTION].create_index([("email", ASCENDING)], unique=True)
        await db[OTP_COLLECTION].create_index([("email", ASCENDING)], unique=True)
        await db[SESSION_COLLECTION].create_index([("user_id", ASCENDING)])
        await db[SESSION_COLLECTION].create_index([("refresh_token", ASCENDING)])
        await db[SESSION_COLLECTION].create_index([("expires_at", ASCENDING)])


__all__ = [
    "MongoOtpRepository",
    "MongoSessionRepository",
    "MongoUserRepository",
    "ensure_indexes",
]
