"""
Channel message endpoints.

- GET  /{channel_id}/messages               — Cursor-paginated history
- POST /{channel_id}/messages               — Post a message
- PUT  /{channel_id}/messages/{message_id}  — Edit your own message

Reading and posting are gated by the same visibility rule as the channel
itself; posting additionally honours the channel's posting restriction.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_session
from app.core.events import publish_channel_event
from app.services import access
from app.services import messages as message_service
from app.services.channels import get_channel_or_404
from teamchat_shared.schemas.messages import (
    MessageListResponse,
    MessageResponse,
    MessageUpdateRequest,
    PostMessageRequest,
)

router = APIRouter()


@router.get("/{channel_id}/messages", response_model=MessageListResponse)
async def get_messages(
    channel_id: int,
    cursor: Optional[str] = Query(None, description="ISO timestamp cursor (exclusive, returns older messages)"),
    limit: int = Query(50, ge=1, le=100),
    after: Optional[str] = Query(None, description="ISO timestamp to get messages newer than (reconnect catch-up)"),
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Paginated message history, newest first."""
    channel = await get_channel_or_404(session, channel_id)
    await access.ensure_can_view(session, actor, channel)
    return await message_service.list_messages(
        session, channel, limit=limit, cursor=cursor, after=after
    )


@router.post("/{channel_id}/messages", response_model=MessageResponse, status_code=201)
async def post_message(
    channel_id: int,
    body: PostMessageRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    channel = await get_channel_or_404(session, channel_id)
    await access.ensure_can_post(session, actor, channel)
    message = await message_service.post_message(session, channel, actor, body.content)
    await publish_channel_event(
        channel.id, "message.created", {"message_id": message["id"]}, actor_id=actor.id
    )
    return message


@router.put("/{channel_id}/messages/{message_id}", response_model=MessageResponse)
async def update_message(
    channel_id: int,
    message_id: int,
    body: MessageUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Edit a message. Only its author may, and only while they can still view the channel."""
    channel = await get_channel_or_404(session, channel_id)
    await access.ensure_can_view(session, actor, channel)
    message = await message_service.get_message_or_404(session, channel, message_id)
    access.ensure_can_edit_message(actor, message)
    updated = await message_service.update_message(session, message, body.content)
    await publish_channel_event(
        channel.id, "message.updated", {"message_id": updated["id"]}, actor_id=actor.id
    )
    return updated
