"""Redis-backed per-user event publishing."""

from __future__ import annotations

import json
import logging
from typing import Optional

import redis.asyncio as aioredis

from app.config import get_settings
from app.constants.gitlab import WebsocketEvent

logger = logging.getLogger(__name__)


class AsyncRedisClient:
    _client: Optional[aioredis.Redis] = None

    @classmethod
    def get_client(cls) -> aioredis.Redis:
        if cls._client is None:
            settings = get_settings()
            cls._client = aioredis.Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                decode_responses=True,
            )
        return cls._client


class EventPublisher:
    """
    Publishes `{"event": ..., "data": {}}` on `<namespace>:events:<user_id>`.

    The websocket gateway subscribed to that channel forwards the event to
    the user's connected clients only.
    """

    def __init__(
        self,
        client: Optional[aioredis.Redis] = None,
        namespace: Optional[str] = None,
    ) -> None:
        self._client = client
        self._namespace = namespace or get_settings().redis_namespace

    def channel_for(self, user_id: str) -> str:
        return f"{self._namespace}:events:{user_id}"

    async def publish(self, event: WebsocketEvent, user_id: str) -> None:
        client = self._client or AsyncRedisClient.get_client()
        payload = json.dumps({"event": event.value, "data": {}})
        await client.publish(self.channel_for(user_id), payload)
        logger.debug("Published %s event to user=%s", event.value, user_id)
