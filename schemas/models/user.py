"""
User document model.

Maps to the `users` MongoDB collection.

Users are created `inactive` at registration and flipped to `active` once the
emailed OTP is verified. Only active users can log in or authenticate.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel

USER_STATUS_ACTIVE = "active"
USER_STATUS_INACTIVE = "inactive"


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    email: str
    password_hash: str
    full_name: Optional[str] = None
    status: str = USER_STATUS_INACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == USER_STATUS_ACTIVE
