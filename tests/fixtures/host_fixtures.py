"""In-memory messaging host."""

from typing import Optional

import pytest

from app.adapters.base import BaseHostAdapter
from app.constants.gitlab import WebsocketEvent
from app.core.exceptions import PlatformError


class FakeHostAdapter(BaseHostAdapter):
    """Records every host interaction; optionally fails them."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.events: list[tuple[WebsocketEvent, str]] = []
        self.props: dict[str, dict[str, str]] = {}
        self.posts: list[dict[str, str]] = []

    def _check(self) -> None:
        if self.fail:
            raise PlatformError("host unavailable")

    async def publish_event(self, event: WebsocketEvent, user_id: str) -> None:
        self._check()
        self.events.append((event, user_id))

    async def set_linked_account_prop(self, user_id: str, gitlab_username: str) -> None:
        self._check()
        self.props.setdefault(user_id, {})["gitlab_user"] = gitlab_username

    async def clear_linked_account_prop(self, user_id: str) -> None:
        self._check()
        self.props.get(user_id, {}).pop("gitlab_user", None)

    async def create_bot_dm_post(
        self, user_id: str, message: str, post_type: str
    ) -> str:
        self._check()
        post_id = f"post-{len(self.posts) + 1}"
        self.posts.append(
            {"id": post_id, "user_id": user_id, "message": message, "type": post_type}
        )
        return post_id

    def last_event(self) -> Optional[tuple[WebsocketEvent, str]]:
        return self.events[-1] if self.events else None


@pytest.fixture
def host():
    return FakeHostAdapter()
