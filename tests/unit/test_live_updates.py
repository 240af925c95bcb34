"""Unit tests for the live update bus."""

import json
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cs_automation.services.live_updates import (
    LiveUpdateBus,
    LiveUpdateEvent,
    conversation_scope,
    widget_scope,
)


def _event_payload(scope: str, reason: str = "message_appended") -> str:
    return LiveUpdateEvent(
        scope=scope, reason=reason, timestamp=datetime.now(timezone.utc)
    ).model_dump_json()


class TestLiveUpdateBus:
    """Tests for LiveUpdateBus."""

    def test_scopes(self):
        tenant_id = uuid4()

        assert conversation_scope(tenant_id, "client") == f"conversations:{tenant_id}:client"
        assert widget_scope(tenant_id, "web_abc") == f"widget:{tenant_id}:web_abc"

    @pytest.mark.asyncio
    async def test_publish_sends_invalidation_only(self, bus, mock_redis):
        receivers = await bus.publish("conversations:t:client", "deleted")

        assert receivers == 1
        channel, payload = mock_redis.publish.await_args.args
        assert channel == "live_updates:conversations:t:client"
        assert set(json.loads(payload)) == {"scope", "reason", "timestamp"}

    @pytest.mark.asyncio
    async def test_notify_logs_instead_of_raising(self, bus, mock_redis):
        mock_redis.publish.side_effect = RedisConnectionError("redis down")

        assert await bus.notify("conversations:t:client", "deleted") is False

    @pytest.mark.asyncio
    async def test_subscribe_lifecycle(self, bus, mock_pubsub):
        async with bus.subscribe("conversations:t:client") as subscription:
            mock_pubsub.subscribe.assert_awaited_once_with("live_updates:conversations:t:client")
            assert subscription.pubsub is mock_pubsub

        mock_pubsub.unsubscribe.assert_awaited_once_with("live_updates:conversations:t:client")
        mock_pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsubscribes_when_consumer_fails(self, bus, mock_pubsub):
        with pytest.raises(RuntimeError):
            async with bus.subscribe("s"):
                raise RuntimeError("consumer crashed")

        mock_pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_decodes_event(self, bus, mock_pubsub):
        mock_pubsub.get_message.return_value = {
            "type": "message",
            "channel": "live_updates:s",
            "data": _event_payload("s"),
        }

        async with bus.subscribe("s") as subscription:
            event = await subscription.get(timeout=0.1)

        assert event.scope == "s"
        assert event.reason == "message_appended"

    @pytest.mark.asyncio
    async def test_iteration_skips_malformed_and_control_messages(self, bus, mock_pubsub):
        async def listen():
            yield {"type": "subscribe", "channel": "live_updates:s", "data": 1}
            yield {"type": "message", "channel": "live_updates:s", "data": "not json"}
            yield {"type": "message", "channel": "live_updates:s", "data": _event_payload("s")}

        mock_pubsub.listen = listen

        async with bus.subscribe("s") as subscription:
            events = [event async for event in subscription]

        assert [event.scope for event in events] == ["s"]
