"""
Command to link a platform user to a GitLab account.

Called by the OAuth completion flow once it holds a token. Stores the
identity, indexes the GitLab username for notifications, marks the host
profile and tells the user's clients to refresh.
"""

from __future__ import annotations

from app.constants.gitlab import WebsocketEvent
from app.commands.base_gitlab import BaseGitLabCommand
from app.core.exceptions import CryptoError, NotLinkedError, PlatformError
from app.infra.logging_config import get_logger
from app.schemas.identity import LinkedIdentity, LinkIdentityRequest, UserSettings

logger = get_logger(__name__)


class LinkAccountCommand(BaseGitLabCommand):
    """Stores a freshly authorized GitLab identity with default settings."""

    async def execute(self, body: LinkIdentityRequest) -> LinkedIdentity:
        """
        Link body.user_id to body.gitlab_username.

        Relinking replaces the previous identity; a previous GitLab username
        is dropped from the reverse index.

        Raises:
            CryptoError: the token could not be encrypted.
            StorageError: a write failed.
        """
        identity = LinkedIdentity(
            user_id=body.user_id,
            token=body.token,
            gitlab_username=body.gitlab_username,
            settings=UserSettings(notifications=True, daily_reminder=True),
        )

        self._clear_previous_username(identity)
        self.vault.store(identity)
        if identity.settings.notifications:
            self.vault.set_reverse_index(identity.gitlab_username, identity.user_id)

        try:
            await self.host.set_linked_account_prop(
                identity.user_id, identity.gitlab_username
            )
        except PlatformError as e:
            logger.warning(
                "Unable to mark user=%s as linked on the host: %s", identity.user_id, e
            )
        await self.publish(WebsocketEvent.CONNECT, identity.user_id)

        logger.info(
            "Linked user=%s to gitlab_username=%s",
            identity.user_id,
            identity.gitlab_username,
        )
        return identity

    def _clear_previous_username(self, identity: LinkedIdentity) -> None:
        try:
            previous = self.vault.resolve(identity.user_id)
        except (NotLinkedError, CryptoError):
            return
        if previous.gitlab_username != identity.gitlab_username:
            self.vault.clear_reverse_index(previous.gitlab_username, identity.user_id)
