"""MongoDB repository for the `users` collection."""

from __future__ import annotations

from typing import Any, Optional

from pymongo import ReturnDocument

from repositories.base import translate_errors
from repositories.errors import StoreError
from schemas.models.user import UserDoc
from shared.datetime_utils import utcnow
from shared.generators import generate_user_id

COLLECTION = "users"


class MongoUserRepository:
    def __init__(self, db) -> None:
        self._collection = db[COLLECTION]

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        async with translate_errors("users.find_by_email"):
            doc = await self._collection.find_one({"email": email})
        return UserDoc.from_mongo(doc)

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        async with translate_errors("users.find_by_id"):
            doc = await self._collection.find_one({"_id": user_id})
        return UserDoc.from_mongo(doc)

    async def create(self, user: UserDoc) -> UserDoc:
        """Insert *user*; a duplicate email raises StoreError(UNIQUE_VIOLATION)."""
        now = utcnow()
        data = user.to_mongo()
        data.setdefault("_id", generate_user_id())
        data["created_at"] = data.get("created_at") or now
        data["updated_at"] = now
        async with translate_errors("users.create"):
            await self._collection.insert_one(data)
        return UserDoc.from_mongo(data)

    async def update_fields(self, email: str, updates: dict[str, Any]) -> UserDoc:
        async with translate_errors("users.update_fields"):
            doc = await self._collection.find_one_and_update(
                {"email": email},
                {"$set": {**updates, "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise StoreError.not_found(
                f"No user with email {email!r}", operation="users.update_fields"
            )
        return UserDoc.from_mongo(doc)
