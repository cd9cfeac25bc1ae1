"""MongoDB repository for the `sessions` collection."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

from pymongo import DESCENDING, ReturnDocument

from repositories.base import translate_errors
from repositories.errors import StoreError
from schemas.models.session import SessionDoc
from shared.datetime_utils import utcnow

COLLECTION = "sessions"


class MongoSessionRepository:
    def __init__(self, db) -> None:
        self._collection = db[COLLECTION]

    async def create(self, session: SessionDoc) -> SessionDoc:
        now = utcnow()
        data = session.to_mongo()
        data["created_at"] = data.get("created_at") or now
        data["updated_at"] = now
        async with translate_errors("sessions.create"):
            await self._collection.insert_one(data)
        return SessionDoc.from_mongo(data)

    async def find_by_id(self, session_id: str) -> Optional[SessionDoc]:
        async with translate_errors("sessions.find_by_id"):
            doc = await self._collection.find_one({"_id": session_id})
        return SessionDoc.from_mongo(doc)

    async def find_live_by_refresh_token(
        self, refresh_token: str, now: datetime
    ) -> Optional[SessionDoc]:
        async with translate_errors("sessions.find_live_by_refresh_token"):
            doc = await self._collection.find_one(
                {"refresh_token": refresh_token, "expires_at": {"$gt": now}}
            )
        return SessionDoc.from_mongo(doc)

    async def find_latest_live_by_user(
        self, user_id: str, now: datetime
    ) -> Optional[SessionDoc]:
        async with translate_errors("sessions.find_latest_live_by_user"):
            doc = await self._collection.find_one(
                {"user_id": user_id, "expires_at": {"$gt": now}},
                sort=[("created_at", DESCENDING)],
            )
        return SessionDoc.from_mongo(doc)

    async def list_by_user(
        self, user_id: str, limit: int, offset: int
    ) -> tuple[list[SessionDoc], int]:
        query = {"user_id": user_id}
        async with translate_errors("sessions.list_by_user"):
            cursor = (
                self._collection.find(query)
                .sort("created_at", DESCENDING)
                .skip(offset)
                .limit(limit)
            )
            docs, total = await asyncio.gather(
                cursor.to_list(length=limit),
                self._collection.count_documents(query),
            )
        return [SessionDoc.from_mongo(d) for d in docs], total

    async def update_tokens(
        self,
        session_id: str,
        token: str,
        refresh_token: Optional[str],
        expires_at: datetime,
    ) -> SessionDoc:
        async with translate_errors("sessions.update_tokens"):
            doc = await self._collection.find_one_and_update(
                {"_id": session_id},
                {
                    "$set": {
                        "token": token,
                        "refresh_token": refresh_token,
                        "expires_at": expires_at,
                        "updated_at": utcnow(),
                    }
                },
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise StoreError.not_found(
                f"Session {session_id!r} not found", operation="sessions.update_tokens"
            )
        return SessionDoc.from_mongo(doc)

    async def delete(self, session_id: str) -> None:
        async with translate_errors("sessions.delete"):
            result = await self._collection.delete_one({"_id": session_id})
        if result.deleted_count == 0:
            raise StoreError.not_found(
                f"Session {session_id!r} not found", operation="sessions.delete"
            )

    async def delete_by_user(self, user_id: str) -> int:
        async with translate_errors("sessions.delete_by_user"):
            result = await self._collection.delete_many({"user_id": user_id})
        return result.deleted_count

    async def delete_expired(self, now: datetime) -> int:
        async with translate_errors("sessions.delete_expired"):
            result = await self._collection.delete_many({"expires_at": {"$lt": now}})
        return result.deleted_count
