"""
Mattermost host adapter.

Uses the REST API v4 with the bot's access token for user props and direct
messages, and the Redis event publisher for per-user websocket events.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from redis.exceptions import RedisError

from app.adapters.base import BaseHostAdapter
from app.config import get_settings
from app.constants.gitlab import (
    BOT_DISPLAY_NAME,
    BOT_ICON_URL,
    LINKED_ACCOUNT_PROP,
    WebsocketEvent,
)
from app.core.exceptions import ConfigurationError, PlatformError
from app.infra.redis import EventPublisher

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v4"
TIMEOUT_SECONDS = 10.0


class MattermostHostAdapter(BaseHostAdapter):
    """Host adapter talking to a Mattermost server."""

    def __init__(
        self,
        server_url: str,
        bot_token: str,
        bot_user_id: str,
        publisher: Optional[EventPublisher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._bot_token = bot_token
        self._bot_user_id = bot_user_id
        self._publisher = publisher or EventPublisher()
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "MattermostHostAdapter":
        settings = get_settings()
        if not (
            settings.mattermost_url
            and settings.mattermost_bot_token
            and settings.bot_user_id
        ):
            raise ConfigurationError(
                "MATTERMOST_URL, MATTERMOST_BOT_TOKEN and BOT_USER_ID must be set"
            )
        return cls(
            server_url=settings.mattermost_url,
            bot_token=settings.mattermost_bot_token,
            bot_user_id=settings.bot_user_id,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self._server_url}{API_PREFIX}",
            headers={"Authorization": f"Bearer {self._bot_token}"},
            timeout=TIMEOUT_SECONDS,
            transport=self._transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        json: Any = None,
    ) -> Any:
        try:
            response = await client.request(method, path, json=json)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise PlatformError(
                f"Mattermost {method} {path} returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise PlatformError(f"Mattermost {method} {path} failed: {e!r}") from e

    async def publish_event(self, event: WebsocketEvent, user_id: str) -> None:
        try:
            await self._publisher.publish(event, user_id)
        except RedisError as e:
            raise PlatformError(f"Unable to publish {event.value} event") from e

    async def _patch_props(self, user_id: str, update: dict[str, Optional[str]]) -> None:
        async with self._client() as client:
            user = await self._request(client, "GET", f"/users/{user_id}")
            props = dict(user.get("props") or {})
            changed = False
            for key, value in update.items():
                if value is None:
                    if key in props:
                        del props[key]
                        changed = True
                elif props.get(key) != value:
                    props[key] = value
                    changed = True
            if not changed:
                return
            await self._request(
                client, "PUT", f"/users/{user_id}/patch", json={"props": props}
            )

    async def set_linked_account_prop(self, user_id: str, gitlab_username: str) -> None:
        await self._patch_props(user_id, {LINKED_ACCOUNT_PROP: gitlab_username})

    async def clear_linked_account_prop(self, user_id: str) -> None:
        await self._patch_props(user_id, {LINKED_ACCOUNT_PROP: None})

    async def create_bot_dm_post(self, user_id: str, message: str, post_type: str) -> str:
        async with self._client() as client:
            channel = await self._request(
                client,
                "POST",
                "/channels/direct",
                json=[self._bot_user_id, user_id],
            )
            post = await self._request(
                client,
                "POST",
                "/posts",
                json={
                    "channel_id": channel["id"],
                    "message": message,
                    "type": post_type,
                    "props": {
                        "from_webhook": "true",
                        "override_username": BOT_DISPLAY_NAME,
                        "override_icon_url": BOT_ICON_URL,
                    },
                },
            )
        return str(post.get("id", ""))
