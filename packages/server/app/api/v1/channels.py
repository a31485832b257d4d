"""
Channel endpoints.

- GET    /                      — List channels the caller can view
- POST   /                      — Create a public channel
- GET    /{channel_id}          — Channel details
- PUT    /{channel_id}          — Rename (admin/manager)
- DELETE /{channel_id}          — Delete (admin/manager)
- GET    /{channel_id}/members  — Privacy flag and member ids (admin/manager)
- PUT    /{channel_id}/privacy  — Replace privacy flag and members

Every per-id route resolves the channel first (404) and only then checks
permissions (403).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_session
from app.core.events import publish_channel_event
from app.services import access
from app.services import channels as channel_service
from app.services.privacy import PrivacyChange, apply_privacy_change
from teamchat_shared.schemas.channels import (
    ChannelCreateRequest,
    ChannelListResponse,
    ChannelMembersResponse,
    ChannelPrivacyUpdateRequest,
    ChannelResponse,
    ChannelUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=ChannelListResponse)
async def list_channels(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """List every channel the caller may view."""
    channels = await channel_service.list_channels_visible_to(session, actor)
    return ChannelListResponse(
        data=[ChannelResponse(**channel_service.channel_to_dict(ch)) for ch in channels]
    )


@router.post("", response_model=ChannelResponse, status_code=201)
async def create_channel(
    body: ChannelCreateRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    access.ensure_can_create_channel(actor)
    channel = await channel_service.create_channel(session, body.name, actor)
    return ChannelResponse(**channel_service.channel_to_dict(channel))


@router.get("/{channel_id}", response_model=ChannelResponse)
async def get_channel(
    channel_id: int,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    channel = await channel_service.get_channel_or_404(session, channel_id)
    await access.ensure_can_view(session, actor, channel)
    return ChannelResponse(**channel_service.channel_to_dict(channel))


@router.put("/{channel_id}", response_model=ChannelResponse)
async def rename_channel(
    channel_id: int,
    body: ChannelUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    channel = await channel_service.get_channel_or_404(session, channel_id)
    access.ensure_can_manage(actor)
    channel = await channel_service.rename_channel(session, channel, body.name, actor)
    return ChannelResponse(**channel_service.channel_to_dict(channel))


@router.delete("/{channel_id}", status_code=204)
async def delete_channel(
    channel_id: int,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    channel = await channel_service.get_channel_or_404(session, channel_id)
    access.ensure_can_manage(actor)
    await channel_service.delete_channel(session, channel, actor)


@router.get("/{channel_id}/members", response_model=ChannelMembersResponse)
async def list_members(
    channel_id: int,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Privacy flag and member ids of a channel (admin/manager only)."""
    channel = await channel_service.get_channel_or_404(session, channel_id)
    access.ensure_can_list_members(actor)
    member_ids = await channel_service.list_member_ids(session, channel.id)
    return ChannelMembersResponse(
        is_private=channel.is_private,
        member_ids=sorted(member_ids),
    )


@router.put("/{channel_id}/privacy", response_model=ChannelMembersResponse)
async def update_privacy(
    channel_id: int,
    body: ChannelPrivacyUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """
    Replace a channel's privacy flag and member list.

    Admins and managers may change any channel. Other users may only
    re-affirm a DM channel they take part in (private, both participants).
    """
    channel = await channel_service.get_channel_or_404(session, channel_id)
    change = PrivacyChange.from_request(body)
    await apply_privacy_change(session, actor, channel, change)

    await publish_channel_event(
        channel.id,
        "channel.privacy_updated",
        {"is_private": channel.is_private, "posting_restricted": channel.posting_restricted},
        actor_id=actor.id,
    )
    return ChannelMembersResponse(
        is_private=channel.is_private,
        member_ids=sorted(change.effective_member_ids),
    )
