"""
Channel access decisions.

One rule decides who may see a channel, and it is applied everywhere a
channel is touched: listing, detail, member listing, message read and
message write.

    1. admin / manager        -> allowed
    2. public channel         -> allowed
    3. private channel        -> allowed iff the actor has a membership row

DM channels (``dm:<low>-<high>``) follow the same rule. They are created
private with their two participants as members, and only admins and
managers may change that (see ``app.services.privacy``).

The ``ensure_*`` helpers raise ``Forbidden``; callers resolve the channel
(404) before calling them.
"""

from __future__ import annotations

from sqlalchemy import ColumnElement, or_, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Actor
from app.core.errors import DenialReason, Forbidden
from app.models.channel import Channel
from app.models.channel_member import ChannelMember
from app.models.message import Message
from teamchat_shared.schemas.common import PRIVILEGED_ROLES, Role


def is_privileged(actor: Actor) -> bool:
    return actor.role in PRIVILEGED_ROLES


def can_manage(actor: Actor) -> bool:
    """Role gate for admin/manager-only operations. Membership never grants it."""
    return is_privileged(actor)


def can_list_members(actor: Actor) -> bool:
    return is_privileged(actor)


async def is_member(session: AsyncSession, channel_id: int, user_id: int) -> bool:
    stmt = select(ChannelMember.user_id).where(
        ChannelMember.channel_id == channel_id,
        ChannelMember.user_id == user_id,
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def can_view(session: AsyncSession, actor: Actor, channel: Channel) -> bool:
    if is_privileged(actor):
        return True
    if not channel.is_private:
        return True
    return await is_member(session, channel.id, actor.id)


async def can_post(session: AsyncSession, actor: Actor, channel: Channel) -> bool:
    """Posting needs visibility; restricted channels only accept admin/manager posts."""
    if not await can_view(session, actor, channel):
        return False
    return not channel.posting_restricted or is_privileged(actor)


def can_create_channel(actor: Actor) -> bool:
    return actor.role != Role.VIEWER


def can_edit_message(actor: Actor, message: Message) -> bool:
    return message.user_id == actor.id


def visible_channels_filter(actor: Actor) -> ColumnElement[bool]:
    """SQL form of ``can_view`` for listings.

    The membership test is an EXISTS subquery so private channels the actor
    cannot see never leave the database.
    """
    if is_privileged(actor):
        return true()
    membership = (
        select(ChannelMember.user_id)
        .where(
            ChannelMember.channel_id == Channel.id,
            ChannelMember.user_id == actor.id,
        )
        .exists()
    )
    return or_(Channel.is_private == False, membership)  # noqa: E712


# ---------------------------------------------------------------------------
# Raising variants for the gateways
# ---------------------------------------------------------------------------


def ensure_can_manage(actor: Actor) -> None:
    if not can_manage(actor):
        raise Forbidden(DenialReason.NOT_PRIVILEGED)


def ensure_can_list_members(actor: Actor) -> None:
    if not can_list_members(actor):
        raise Forbidden(DenialReason.NOT_PRIVILEGED)


async def ensure_can_view(session: AsyncSession, actor: Actor, channel: Channel) -> None:
    if not await can_view(session, actor, channel):
        raise Forbidden(DenialReason.CHANNEL_NOT_VISIBLE)


async def ensure_can_post(session: AsyncSession, actor: Actor, channel: Channel) -> None:
    await ensure_can_view(session, actor, channel)
    if channel.posting_restricted and not is_privileged(actor):
        raise Forbidden(DenialReason.POSTING_RESTRICTED)


def ensure_can_create_channel(actor: Actor) -> None:
    if not can_create_channel(actor):
        raise Forbidden(DenialReason.READ_ONLY_ROLE)


def ensure_can_edit_message(actor: Actor, message: Message) -> None:
    if not can_edit_message(actor, message):
        raise Forbidden(DenialReason.NOT_MESSAGE_AUTHOR)
