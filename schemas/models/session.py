"""
Session document model.

Maps to the `sessions` MongoDB collection. `_id` is the opaque session id
that is also embedded in both JWTs of the pair as the `session_id` claim.

`token` always holds the access token currently bound to the session; an
access token that no longer equals it has been rotated out by a refresh.
`expires_at` mirrors the refresh-token expiry.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel


class SessionDoc(MongoBaseModel):
    """Document model for the `sessions` collection."""

    user_id: str
    token: str
    refresh_token: Optional[str] = None
    expires_at: datetime
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
