"""MongoDB repository for the `otp-verifications` collection.

One document per email, enforced by a unique index; every issuance is an
upsert so the invariant holds even when two requests race.
"""

from __future__ import annotations

from typing import Any, Optional

from repositories.base import translate_errors
from repositories.errors import StoreError
from schemas.models.otp import OtpVerificationDoc
from shared.datetime_utils import utcnow

COLLECTION = "otp-verifications"


class MongoOtpRepository:
    def __init__(self, db) -> None:
        self._collection = db[COLLECTION]

    async def find_by_email(self, email: str) -> Optional[OtpVerificationDoc]:
        async with translate_errors("otp.find_by_email"):
            doc = await self._collection.find_one({"email": email})
        return OtpVerificationDoc.from_mongo(doc)

    async def upsert(
        self,
        email: str,
        fields: dict[str, Any],
        on_insert: Optional[dict[str, Any]] = None,
    ) -> None:
        now = utcnow()
        update: dict[str, Any] = {"$set": {**fields, "updated_at": now}}
        update["$setOnInsert"] = {**(on_insert or {}), "created_at": now}
        async with translate_errors("otp.upsert"):
            await self._collection.update_one({"email": email}, update, upsert=True)

    async def update_fields(self, email: str, updates: dict[str, Any]) -> None:
        async with translate_errors("otp.update_fields"):
            result = await self._collection.update_one(
                {"email": email}, {"$set": {**updates, "updated_at": utcnow()}}
            )
        if result.matched_count == 0:
            raise StoreError.not_found(
                f"No OTP record for {email!r}", operation="otp.update_fields"
            )

    async def delete(self, email: str) -> None:
        async with translate_errors("otp.delete"):
            result = await self._collection.delete_one({"email": email})
        if result.deleted_count == 0:
            raise StoreError.not_found(f"No OTP record for {email!r}", operation="otp.delete")
