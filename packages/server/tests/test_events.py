"""
Tests for channel event publishing.
"""

import json
from unittest.mock import AsyncMock, patch

from app.core.events import channel_topic, publish_channel_event


async def test_publishes_envelope_to_channel_topic():
    mock_redis = AsyncMock()
    mock_redis.publish = AsyncMock(return_value=2)

    with patch("app.core.events.get_redis", return_value=mock_redis):
        event = await publish_channel_event(5, "message.created", {"message_id": 9}, actor_id=3)

    topic, raw = mock_redis.publish.await_args.args
    assert topic == "tc:channel:5" == channel_topic(5)
    assert json.loads(raw) == event
    assert event["type"] == "message.created"
    assert event["channel_id"] == 5
    assert event["actor_id"] == 3
    assert event["payload"] == {"message_id": 9}
