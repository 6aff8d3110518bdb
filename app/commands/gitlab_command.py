"""
Command handling `/gitlab <action> [parameters...]`.

Every action except `connect` requires a linked GitLab account; when none is
stored the user is told to connect first. All responses are ephemeral.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy.orm import Session

from app.adapters.base import BaseHostAdapter
from app.commands.base_gitlab import BaseGitLabCommand, ClientFactory
from app.constants.gitlab import (
    COMMAND_TRIGGER,
    DEFAULT_SUBSCRIPTION_FEATURES,
    SettingName,
    WebsocketEvent,
)
from app.core.exceptions import (
    CryptoError,
    GitLabPluginError,
    NotLinkedError,
    PlatformError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from app.schemas.command import CommandArgs, CommandResponse
from app.schemas.identity import LinkedIdentity, SettingChange
from app.services.credential_vault import CredentialVault
from app.services.subscription_service import (
    BaseSubscriptionManager,
    SubscriptionService,
)
from app.services.todo_service import TodoService

logger = logging.getLogger(__name__)

COMMAND_HELP = """* |/gitlab connect| - Connect your Mattermost account to your GitLab account
* |/gitlab disconnect| - Disconnect your Mattermost account from your GitLab account
* |/gitlab todo| - Get a list of unread todos, your open merge requests and your assignments
* |/gitlab subscribe owner/repo [features]| - Subscribe the current channel to receive notifications about opened merge requests and issues for a repository
  * |features| is a comma-delimited list of one or more the following:
    * issues - includes new issues
    * pulls - includes new merge requests
  * Defaults to "pulls,issues"
* |/gitlab unsubscribe owner/repo| - Unsubscribe the current channel from a repository
* |/gitlab me| - Display the connected GitLab account
* |/gitlab settings [setting] [value]| - Update your user settings
  * |setting| can be "notifications" or "reminders"
  * |value| can be "on" or "off"
"""

HELP_TITLE = "###### Mattermost GitLab Plugin - Slash Command Help\n"

NOT_CONNECTED = (
    "You must connect your account to GitLab first. Either click on the GitLab "
    "logo in the bottom left of the screen or enter `/gitlab connect`."
)
UNKNOWN_ERROR = "Unknown error."
CONNECT_ERROR = "Encountered an error connecting to GitLab."
CONNECT_LINK = "[Click here to link your GitLab account.]({site_url}/oauth/connect)"
TODO_ERROR = "Encountered an error getting your to do items."
PROFILE_ERROR = "Encountered an error getting your GitLab profile."
SETTINGS_ERROR = "Encountered an error updating your settings. Please try again."
SETTINGS_UPDATED = "Settings updated."
SPECIFY_REPOSITORY = "Please specify a repository."
SUBSCRIBE_ERROR = "Encountered an error trying to subscribe. Please try again."
SUBSCRIBED = "Successfully subscribed to {repo}."
UNSUBSCRIBE_ERROR = "Encountered an error trying to unsubscribe. Please try again."
UNSUBSCRIBED = "Successfully unsubscribed from {repo}."
DISCONNECT_ERROR = "Encountered an error disconnecting your GitLab account."
DISCONNECTED = "Disconnected your GitLab account."

ActionHandler = Callable[[CommandArgs, LinkedIdentity, list[str]], Awaitable[str]]


class GitLabSlashCommand(BaseGitLabCommand):
    """
    Parses and executes one `/gitlab` invocation.

    Builds a fresh GitLab client from the caller's own token for every action
    that talks to GitLab.
    """

    def __init__(
        self,
        db: Session,
        host: BaseHostAdapter,
        *,
        vault: Optional[CredentialVault] = None,
        todo_service: Optional[TodoService] = None,
        subscriptions: Optional[BaseSubscriptionManager] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        super().__init__(db, host, vault=vault, client_factory=client_factory)
        self.todo_service = todo_service or TodoService()
        self.subscriptions = subscriptions or SubscriptionService(self.store)
        self._handlers: dict[str, ActionHandler] = {
            "disconnect": self._disconnect,
            "todo": self._todo,
            "me": self._me,
            "settings": self._settings,
            "subscribe": self._subscribe,
            "unsubscribe": self._unsubscribe,
            "help": self._help,
        }

    async def execute(self, args: CommandArgs) -> Optional[CommandResponse]:
        """
        Execute the command line in args.command.

        Returns:
            CommandResponse: ephemeral response for the requesting user.
            None: the command is not `/gitlab` or the action is unknown.
        """
        split = args.command.split()
        if not split or split[0] != COMMAND_TRIGGER:
            return None
        action = split[1] if len(split) > 1 else ""
        parameters = split[2:]

        if action == "connect":
            return CommandResponse.ephemeral(self._connect())

        handler = self._handlers.get(action)
        if handler is None:
            return None

        try:
            identity = self.vault.resolve(args.user_id)
        except NotLinkedError:
            return CommandResponse.ephemeral(NOT_CONNECTED)
        except GitLabPluginError:
            logger.exception("Unable to resolve GitLab identity for user=%s", args.user_id)
            return CommandResponse.ephemeral(UNKNOWN_ERROR)

        text = await handler(args, identity, parameters)
        return CommandResponse.ephemeral(text)

    def _connect(self) -> str:
        site_url = (self.settings.site_url or "").rstrip("/")
        if not site_url:
            return CONNECT_ERROR
        return CONNECT_LINK.format(site_url=site_url)

    async def _todo(
        self, args: CommandArgs, identity: LinkedIdentity, parameters: list[str]
    ) -> str:
        async with self.gitlab_client(identity) as client:
            try:
                return await self.todo_service.summarize(identity.gitlab_username, client)
            except UpstreamError as e:
                logger.error("Todo summary failed for user=%s: %s", args.user_id, e)
                return TODO_ERROR

    async def _me(
        self, args: CommandArgs, identity: LinkedIdentity, parameters: list[str]
    ) -> str:
        async with self.gitlab_client(identity) as client:
            try:
                user = await client.current_user()
            except UpstreamError as e:
                logger.error("Profile lookup failed for user=%s: %s", args.user_id, e)
                return PROFILE_ERROR

        profile_url = f"{self.settings.gitlab_base_url.rstrip('/')}/{user.username}"
        card = "You are connected to GitLab as:\n# "
        if user.avatar_url:
            card += f"[![image]({user.avatar_url} =40x40)]({profile_url}) "
        return card + f"[{user.name or user.username}]({profile_url})"

    async def _settings(
        self, args: CommandArgs, identity: LinkedIdentity, parameters: list[str]
    ) -> str:
        try:
            change = SettingChange.parse(parameters)
        except ValidationError as e:
            return str(e)

        # Read-modify-write without a lock: concurrent updates from the same
        # user race and the last store() wins.
        username = identity.gitlab_username
        previous_owner: Optional[str] = None
        index_changed = False
        try:
            if change.setting == SettingName.NOTIFICATIONS:
                previous_owner = self.vault.lookup_by_gitlab_username(username)
                if change.enabled:
                    self.vault.set_reverse_index(username, identity.user_id)
                else:
                    self.vault.clear_reverse_index(username, identity.user_id)
                index_changed = True
            change.apply(identity.settings)
            self.vault.store(identity)
        except (StorageError, CryptoError):
            logger.exception("Unable to update settings for user=%s", args.user_id)
            if index_changed:
                self._restore_reverse_index(username, identity.user_id, previous_owner)
            return SETTINGS_ERROR

        await self.publish(WebsocketEvent.REFRESH, identity.user_id)
        return SETTINGS_UPDATED

    def _restore_reverse_index(
        self, username: str, user_id: str, previous_owner: Optional[str]
    ) -> None:
        """Put the reverse index entry back after a failed settings update."""
        try:
            if previous_owner is None:
                self.vault.clear_reverse_index(username, user_id)
            else:
                self.vault.set_reverse_index(username, previous_owner)
        except StorageError:
            logger.exception(
                "Unable to restore username mapping for gitlab_username=%s", username
            )

    async def _subscribe(
        self, args: CommandArgs, identity: LinkedIdentity, parameters: list[str]
    ) -> str:
        if not parameters:
            return SPECIFY_REPOSITORY
        repo = parameters[0]
        features = DEFAULT_SUBSCRIPTION_FEATURES
        if len(parameters) > 1:
            features = " ".join(parameters[1:])

        async with self.gitlab_client(identity) as client:
            try:
                await self.subscriptions.subscribe(
                    identity, client, repo, args.channel_id, features
                )
            except (StorageError, CryptoError):
                logger.exception("Unable to store subscription to %s", repo)
                return SUBSCRIBE_ERROR
            except GitLabPluginError as e:
                return str(e)
        return SUBSCRIBED.format(repo=repo)

    async def _unsubscribe(
        self, args: CommandArgs, identity: LinkedIdentity, parameters: list[str]
    ) -> str:
        if not parameters:
            return SPECIFY_REPOSITORY
        repo = parameters[0]
        try:
            await self.subscriptions.unsubscribe(args.channel_id, repo)
        except GitLabPluginError as e:
            logger.error("Unsubscribe from %s failed: %s", repo, e)
            return UNSUBSCRIBE_ERROR
        return UNSUBSCRIBED.format(repo=repo)

    async def _disconnect(
        self, args: CommandArgs, identity: LinkedIdentity, parameters: list[str]
    ) -> str:
        try:
            self.vault.unlink(args.user_id)
        except StorageError:
            logger.exception("Unable to unlink user=%s", args.user_id)
            return DISCONNECT_ERROR

        try:
            await self.host.clear_linked_account_prop(args.user_id)
        except PlatformError as e:
            logger.warning("Unable to clear linked account prop for user=%s: %s", args.user_id, e)
        await self.publish(WebsocketEvent.DISCONNECT, args.user_id)
        return DISCONNECTED

    async def _help(
        self, args: CommandArgs, identity: LinkedIdentity, parameters: list[str]
    ) -> str:
        return HELP_TITLE + COMMAND_HELP.replace("|", "`")
