"""
Message persistence behind the channel gateways.

Access checks happen in the API layer before these run.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Actor
from app.core.errors import NotFound, ValidationFailed
from app.models.channel import Channel
from app.models.message import Message
from app.models.user import User

log = structlog.get_logger()


def _parse_timestamp(value: str, field: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationFailed(f"Invalid '{field}' timestamp format.") from None


async def enrich_messages(session: AsyncSession, messages: list[Message]) -> list[dict]:
    """Attach sender display names to messages."""
    sender_ids = {m.user_id for m in messages}
    names: dict[int, str] = {}
    if sender_ids:
        result = await session.execute(select(User.id, User.name).where(User.id.in_(sender_ids)))
        names = {uid: name for uid, name in result.all()}

    return [
        {
            "id": m.id,
            "channel_id": m.channel_id,
            "user_id": m.user_id,
            "sender_name": names.get(m.user_id),
            "content": m.content,
            "created_at": m.created_at,
            "updated_at": m.updated_at,
        }
        for m in messages
    ]


async def list_messages(
    session: AsyncSession,
    channel: Channel,
    *,
    limit: int = 50,
    cursor: Optional[str] = None,
    after: Optional[str] = None,
) -> dict:
    """
    Paginated message history for a channel.

    - No cursor: newest messages first.
    - cursor=<ISO timestamp>: messages older than the cursor.
    - after=<ISO timestamp>: messages newer than the given time, oldest first
      (reconnect catch-up).
    """
    conditions = [Message.channel_id == channel.id]

    if after:
        conditions.append(Message.created_at > _parse_timestamp(after, "after"))
        stmt = (
            select(Message)
            .where(*conditions)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .limit(limit)
        )
    else:
        if cursor:
            conditions.append(Message.created_at < _parse_timestamp(cursor, "cursor"))
        stmt = (
            select(Message)
            .where(*conditions)
            .order_by(desc(Message.created_at), desc(Message.id))
            .limit(limit + 1)  # one extra to detect more pages
        )

    result = await session.execute(stmt)
    messages = list(result.scalars().all())

    has_more = False
    if not after and len(messages) > limit:
        has_more = True
        messages = messages[:limit]

    next_cursor = None
    if has_more and messages:
        next_cursor = messages[-1].created_at.isoformat()

    return {
        "data": await enrich_messages(session, messages),
        "pagination": {
            "next_cursor": next_cursor,
            "has_more": has_more,
            "limit": limit,
        },
    }


async def post_message(
    session: AsyncSession, channel: Channel, actor: Actor, content: str
) -> dict:
    message = Message(channel_id=channel.id, user_id=actor.id, content=content)
    session.add(message)
    await session.flush()
    await session.refresh(message)
    log.info("message.posted", message_id=message.id, channel_id=channel.id, actor_id=actor.id)
    return (await enrich_messages(session, [message]))[0]


async def get_message_or_404(session: AsyncSession, channel: Channel, message_id: int) -> Message:
    result = await session.execute(
        select(Message).where(Message.id == message_id, Message.channel_id == channel.id)
    )
    message = result.scalar_one_or_none()
    if not message:
        raise NotFound("Message not found.")
    return message


async def update_message(session: AsyncSession, message: Message, content: str) -> dict:
    message.content = content
    message.updated_at = datetime.now(timezone.utc)
    session.add(message)
    await session.flush()
    await session.refresh(message)
    log.info("message.updated", message_id=message.id, channel_id=message.channel_id)
    return (await enrich_messages(session, [message]))[0]
