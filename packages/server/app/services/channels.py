"""
Channel registry: channel rows and their membership relation.

Functions here only ``flush()``. The request-scoped session commits, so
every write made while handling one request lands in one transaction.
"""

from __future__ import annotations

from typing import Iterable, Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Actor
from app.core.errors import NotFound, ValidationFailed
from app.models.channel import Channel
from app.models.channel_member import ChannelMember
from app.models.message import Message
from app.models.user import User
from app.services.access import visible_channels_filter
from app.services.dm import dm_channel_name, is_reserved_name, resolve_channel_kind

log = structlog.get_logger()


def channel_to_dict(channel: Channel) -> dict:
    return {
        "id": channel.id,
        "name": channel.name,
        "is_private": channel.is_private,
        "posting_restricted": channel.posting_restricted,
        "is_dm": resolve_channel_kind(channel.name).is_dm,
        "created_at": channel.created_at,
    }


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def find_channel_by_id(session: AsyncSession, channel_id: int) -> Optional[Channel]:
    result = await session.execute(select(Channel).where(Channel.id == channel_id))
    return result.scalar_one_or_none()


async def get_channel_or_404(session: AsyncSession, channel_id: int) -> Channel:
    channel = await find_channel_by_id(session, channel_id)
    if not channel:
        raise NotFound("Channel not found.")
    return channel


async def find_channel_by_name(session: AsyncSession, name: str) -> Optional[Channel]:
    result = await session.execute(select(Channel).where(Channel.name == name))
    return result.scalar_one_or_none()


async def list_member_ids(session: AsyncSession, channel_id: int) -> set[int]:
    result = await session.execute(
        select(ChannelMember.user_id).where(ChannelMember.channel_id == channel_id)
    )
    return set(result.scalars().all())


async def list_channels_visible_to(session: AsyncSession, actor: Actor) -> list[Channel]:
    """Channels the actor may view, ordered by name."""
    stmt = (
        select(Channel)
        .where(visible_channels_filter(actor))
        .order_by(Channel.name)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def find_missing_user_ids(session: AsyncSession, user_ids: Iterable[int]) -> list[int]:
    """Return the ids in ``user_ids`` that do not belong to an existing user."""
    wanted = set(user_ids)
    if not wanted:
        return []
    result = await session.execute(select(User.id).where(User.id.in_(wanted)))
    found = set(result.scalars().all())
    return sorted(wanted - found)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def replace_membership(
    session: AsyncSession, channel_id: int, user_ids: Iterable[int]
) -> None:
    """Set a channel's membership to exactly ``user_ids``.

    The delete and the inserts are flushed together inside the caller's
    transaction; nothing is visible to other transactions until it commits,
    and a failure rolls back both. Replaying with the same ids yields the
    same rows.
    """
    await session.execute(
        delete(ChannelMember).where(ChannelMember.channel_id == channel_id)
    )
    for user_id in sorted(set(user_ids)):
        session.add(ChannelMember(channel_id=channel_id, user_id=user_id))
    await session.flush()


async def update_channel_flags(
    session: AsyncSession,
    channel: Channel,
    *,
    is_private: bool,
    posting_restricted: Optional[bool] = None,
) -> Channel:
    channel.is_private = is_private
    if posting_restricted is not None:
        channel.posting_restricted = posting_restricted
    session.add(channel)
    await session.flush()
    return channel


def _validate_ordinary_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationFailed("Channel name must not be blank.")
    if is_reserved_name(name):
        raise ValidationFailed("Channel names starting with 'dm:' are reserved for direct messages.")
    return name


async def _ensure_name_free(session: AsyncSession, name: str, *, exclude_id: int | None = None) -> None:
    existing = await find_channel_by_name(session, name)
    if existing and existing.id != exclude_id:
        raise ValidationFailed("A channel with this name already exists.")


async def create_channel(session: AsyncSession, name: str, actor: Actor) -> Channel:
    """Create a public, unrestricted channel."""
    name = _validate_ordinary_name(name)
    await _ensure_name_free(session, name)
    channel = Channel(name=name)
    session.add(channel)
    try:
        await session.flush()
    except IntegrityError:
        raise ValidationFailed("A channel with this name already exists.") from None
    log.info("channel.created", channel_id=channel.id, actor_id=actor.id)
    return channel


async def rename_channel(session: AsyncSession, channel: Channel, name: str, actor: Actor) -> Channel:
    if resolve_channel_kind(channel.name).is_dm:
        raise ValidationFailed("Direct message channels cannot be renamed.")
    name = _validate_ordinary_name(name)
    await _ensure_name_free(session, name, exclude_id=channel.id)
    channel.name = name
    session.add(channel)
    await session.flush()
    log.info("channel.renamed", channel_id=channel.id, actor_id=actor.id)
    return channel


async def delete_channel(session: AsyncSession, channel: Channel, actor: Actor) -> None:
    """Delete a channel together with its messages and membership rows."""
    await session.execute(delete(Message).where(Message.channel_id == channel.id))
    await session.execute(delete(ChannelMember).where(ChannelMember.channel_id == channel.id))
    await session.delete(channel)
    await session.flush()
    log.info("channel.deleted", channel_id=channel.id, actor_id=actor.id)


async def get_or_create_dm_channel(
    session: AsyncSession, actor: Actor, other_user_id: int
) -> tuple[Channel, bool]:
    """Return the DM channel between the actor and another user. Returns (channel, created)."""
    if other_user_id == actor.id:
        raise ValidationFailed("You cannot start a direct message with yourself.")

    result = await session.execute(select(User).where(User.id == other_user_id))
    other = result.scalar_one_or_none()
    if not other or not other.is_active:
        raise NotFound("User not found.")

    name = dm_channel_name(actor.id, other_user_id)
    channel = await find_channel_by_name(session, name)
    if channel:
        return channel, False

    # A concurrent request may create the same pair first; the unique name
    # then fails only the savepoint and the existing channel is returned.
    try:
        async with session.begin_nested():
            channel = Channel(name=name, is_private=True)
            session.add(channel)
            await session.flush()
    except IntegrityError:
        channel = await find_channel_by_name(session, name)
        if channel is None:
            raise
        log.info("dm.create_raced", channel_id=channel.id, actor_id=actor.id)
        return channel, False

    await replace_membership(session, channel.id, (actor.id, other_user_id))
    log.info("dm.created", channel_id=channel.id, actor_id=actor.id)
    return channel, True
