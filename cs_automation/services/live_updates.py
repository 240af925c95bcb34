"""Live update bus: Redis pub/sub invalidation signals.

Events only say "something changed in scope X". Subscribers re-fetch from
the store instead of applying pushed data.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel
from redis.asyncio import Redis
from redis.exceptions import RedisError

from cs_automation.config import settings

logger = logging.getLogger(__name__)


class LiveUpdateEvent(BaseModel):
    """Invalidation signal for one scope."""

    scope: str
    reason: str
    timestamp: datetime


def conversation_scope(tenant_id: UUID, intent: str) -> str:
    return f"conversations:{tenant_id}:{intent}"


def widget_scope(tenant_id: UUID, session_id: str) -> str:
    return f"widget:{tenant_id}:{session_id}"


class LiveUpdateSubscription:
    """An open subscription; iterate it to receive events."""

    def __init__(self, pubsub, prefix: str):
        self.pubsub = pubsub
        self.prefix = prefix

    def __aiter__(self) -> AsyncIterator[LiveUpdateEvent]:
        return self._events()

    async def _events(self) -> AsyncIterator[LiveUpdateEvent]:
        async for message in self.pubsub.listen():
            event = self._decode(message)
            if event is not None:
                yield event

    async def get(self, timeout: float = 1.0) -> LiveUpdateEvent | None:
        """Wait up to `timeout` seconds for the next event."""
        message = await self.pubsub.get_message(
            ignore_subscribe_messages=True, timeout=timeout
        )
        return self._decode(message)

    @staticmethod
    def _decode(message: dict | None) -> LiveUpdateEvent | None:
        if not message or message.get("type") != "message":
            return None
        try:
            return LiveUpdateEvent.model_validate_json(message["data"])
        except ValueError as e:
            logger.warning(f"Dropping malformed live update: {e}")
            return None


class LiveUpdateBus:
    """Publish/subscribe fan-out over Redis channels."""

    def __init__(self, redis: Redis, prefix: str | None = None):
        self.redis = redis
        self.prefix = prefix or settings.LIVE_UPDATE_CHANNEL_PREFIX

    def channel(self, scope: str) -> str:
        return f"{self.prefix}:{scope}"

    async def publish(self, scope: str, reason: str) -> int:
        """Publish an invalidation; returns the number of receivers."""
        event = LiveUpdateEvent(
            scope=scope, reason=reason, timestamp=datetime.now(timezone.utc)
        )
        receivers = await self.redis.publish(self.channel(scope), event.model_dump_json())
        logger.debug(f"Live update '{reason}' on {scope} reached {receivers} subscribers")
        return receivers

    async def notify(self, scope: str, reason: str) -> bool:
        """Publish, logging instead of raising when Redis is unavailable."""
        try:
            await self.publish(scope, reason)
            return True
        except RedisError as e:
            logger.warning(f"Live update '{reason}' on {scope} not published: {e}")
            return False

    @asynccontextmanager
    async def subscribe(self, *scopes: str) -> AsyncIterator[LiveUpdateSubscription]:
        """Subscribe for the duration of the block; unsubscribes on exit."""
        pubsub = self.redis.pubsub()
        channels = [self.channel(scope) for scope in scopes]
        await pubsub.subscribe(*channels)
        logger.debug(f"Subscribed to {channels}")
        try:
            yield LiveUpdateSubscription(pubsub, self.prefix)
        finally:
            await pubsub.unsubscribe(*channels)
            await pubsub.aclose()
            logger.debug(f"Unsubscribed from {channels}")
