"""
User endpoints.

GET /api/v1/users — List active users (for picking channel members and DM partners)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_session
from app.services import users as user_service
from teamchat_shared.schemas.users import UserListResponse, UserResponse

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """List all active users."""
    items = await user_service.list_active_users(session)
    return UserListResponse(data=[UserResponse(**item) for item in items])
