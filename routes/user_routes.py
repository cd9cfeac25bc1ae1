"""
User-scoped endpoints under /api/v1/users.

GET /{user_id}/sessions — paginated sessions of the caller (owner only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dependencies import get_session_manager, require_resource_ownership
from schemas.dto.responses.auth import SessionInfo, SessionListData
from schemas.dto.responses.common import ApiResponse, PaginationMeta
from schemas.models.user import UserDoc
from services.session_service import SessionManager

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get(
    "/{user_id}/sessions",
    response_model=ApiResponse[SessionListData],
    response_model_by_alias=True,
)
async def list_sessions(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: UserDoc = Depends(require_resource_ownership("user_id")),
    session_manager: SessionManager = Depends(get_session_manager),
):
    sessions, total = await session_manager.get_user_sessions(user.id, limit, offset)
    return ApiResponse[SessionListData](
        message="Sessions retrieved successfully",
        data=SessionListData(
            sessions=[SessionInfo.from_doc(s) for s in sessions],
            pagination=PaginationMeta(
                limit=limit,
                offset=offset,
                total=total,
                has_next=offset + len(sessions) < total,
            ),
        ),
    )
