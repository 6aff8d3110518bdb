"""
Messaging host interface.

The host owns users, channels and the client-side websocket. The bridge only
needs a handful of operations from it, expressed by this contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.constants.gitlab import WebsocketEvent


class BaseHostAdapter(ABC):
    """Contract for the messaging host. Implementations raise PlatformError."""

    @abstractmethod
    async def publish_event(self, event: WebsocketEvent, user_id: str) -> None:
        """Publish an empty-payload event to a single user's clients."""
        ...

    @abstractmethod
    async def set_linked_account_prop(self, user_id: str, gitlab_username: str) -> None:
        """Mark the host user profile as linked to gitlab_username."""
        ...

    @abstractmethod
    async def clear_linked_account_prop(self, user_id: str) -> None:
        """Remove the linked-account marker; no-op when it is absent."""
        ...

    @abstractmethod
    async def create_bot_dm_post(self, user_id: str, message: str, post_type: str) -> str:
        """Post message to the user's direct channel with the bot. Return the post id."""
        ...
