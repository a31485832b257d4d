"""
Direct message endpoint.

POST /{user_id} — Get or create the DM channel with another user.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_session
from app.services.channels import channel_to_dict, get_or_create_dm_channel
from teamchat_shared.schemas.channels import ChannelResponse

router = APIRouter()


@router.post("/{user_id}", response_model=ChannelResponse)
async def open_direct_message(
    user_id: int,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Return the DM channel with ``user_id``; 201 when it had to be created."""
    channel, created = await get_or_create_dm_channel(session, actor, user_id)
    response.status_code = 201 if created else 200
    return ChannelResponse(**channel_to_dict(channel))
