"""Command to post a user's todo summary to their direct channel with the bot."""

from __future__ import annotations

import time
from typing import Optional

from sqlalchemy.orm import Session

from app.adapters.base import BaseHostAdapter
from app.commands.base_gitlab import BaseGitLabCommand, ClientFactory
from app.constants.gitlab import TODO_POST_TYPE
from app.infra.logging_config import get_logger
from app.services.credential_vault import CredentialVault
from app.services.todo_service import TodoService

logger = get_logger(__name__)


class PostTodoCommand(BaseGitLabCommand):
    """
    Sends the daily todo reminder. Scheduling lives outside this service;
    a scheduler calls this once per user per day.
    """

    def __init__(
        self,
        db: Session,
        host: BaseHostAdapter,
        *,
        vault: Optional[CredentialVault] = None,
        todo_service: Optional[TodoService] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        super().__init__(db, host, vault=vault, client_factory=client_factory)
        self.todo_service = todo_service or TodoService()

    async def execute(self, user_id: str) -> Optional[str]:
        """
        Post the todo summary for user_id.

        Returns:
            str: id of the created post.
            None: the user turned reminders off.

        Raises:
            NotLinkedError: the user has no linked account.
            UpstreamError: GitLab could not be queried.
            PlatformError: the post could not be created.
        """
        identity = self.vault.resolve(user_id)
        if not identity.settings.daily_reminder:
            logger.debug("Daily reminder disabled for user=%s", user_id)
            return None

        async with self.gitlab_client(identity) as client:
            text = await self.todo_service.summarize(identity.gitlab_username, client)

        post_id = await self.host.create_bot_dm_post(user_id, text, TODO_POST_TYPE)

        identity.last_todo_post_at = int(time.time() * 1000)
        self.vault.store(identity)
        return post_id
