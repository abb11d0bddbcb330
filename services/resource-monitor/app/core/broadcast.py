"""
Resource Monitor — Broadcast channel over Redis pub/sub

Architecture:
  - Quantity updates (API) and scheduled snapshots (Celery) publish
    {"event": ..., "data": ...} to one Redis channel through a RedisBroadcaster
    handed to them explicitly; there is no process-wide handle.
  - The SSE endpoint subscribes to the same channel and relays events to listeners.
"""
import json
import logging
from datetime import datetime
from typing import Any, AsyncGenerator

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.core.redis_client import get_redis
from app.schemas.resource import ResourceView

settings = get_settings()
logger = logging.getLogger(__name__)

EVENT_WELCOME = "welcome"
EVENT_INITIAL = "resources:initial"
EVENT_UPDATE = "resources:update"


def resources_payload(resources: list[ResourceView], timestamp: datetime) -> dict[str, Any]:
    return {
        "resources": [r.model_dump(mode="json", by_alias=True) for r in resources],
        "count": len(resources),
        "timestamp": timestamp.isoformat(),
    }


class RedisBroadcaster:
    def __init__(self, redis: aioredis.Redis, channel: str = settings.BROADCAST_CHANNEL):
        self.redis = redis
        self.channel = channel

    async def publish(self, event: str, data: dict[str, Any]) -> int:
        """
        Publish one event; returns the number of subscribers reached.
        Broadcast failures MUST NOT fail the write that triggered them.
        """
        try:
            return await self.redis.publish(self.channel, json.dumps({"event": event, "data": data}))
        except RedisError as exc:
            logger.warning("Broadcast of %s on %s failed: %s", event, self.channel, exc)
            return 0

    async def publish_resources(self, resources: list[ResourceView], timestamp: datetime) -> int:
        return await self.publish(EVENT_UPDATE, resources_payload(resources, timestamp))

    async def listen(self) -> AsyncGenerator[tuple[str, dict[str, Any]] | None, None]:
        """Yield (event, data) for every message published on the channel, None on idle ticks."""
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if not message or message["type"] != "message":
                    yield None
                    continue
                try:
                    payload = json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning("Dropping malformed broadcast on %s", self.channel)
                    continue
                if not isinstance(payload, dict):
                    logger.warning("Dropping non-object broadcast on %s", self.channel)
                    continue
                yield payload.get("event", EVENT_UPDATE), payload.get("data", {})
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()


def get_broadcaster() -> RedisBroadcaster:
    """FastAPI dependency; overridden in tests."""
    return RedisBroadcaster(get_redis())
