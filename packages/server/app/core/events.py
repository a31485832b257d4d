"""
Channel event publishing over Redis Pub/Sub.

Only the publishing side lives here. Whatever delivers events to clients
subscribes to ``tc:channel:<channel_id>`` and is responsible for checking
that each recipient can still view the channel.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import structlog

from app.core.redis import get_redis

log = structlog.get_logger()

REDIS_CHANNEL_PREFIX = "tc:channel:"


def channel_topic(channel_id: int) -> str:
    return f"{REDIS_CHANNEL_PREFIX}{channel_id}"


async def publish_channel_event(
    channel_id: int,
    event_type: str,
    payload: dict[str, Any],
    actor_id: int | None = None,
) -> dict[str, Any]:
    """Publish an event for a channel. Returns the published envelope."""
    event = {
        "type": event_type,
        "channel_id": channel_id,
        "actor_id": actor_id,
        "payload": payload,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    redis = await get_redis()
    receivers = await redis.publish(channel_topic(channel_id), json.dumps(event))
    log.debug("channel_event.published", channel_id=channel_id, type=event_type, receivers=receivers)
    return event
