"""
Base command for GitLab-related operations.

Provides a shared way to build the credential vault and a per-invocation
GitLab client for the slash command, account linking and todo posts.
"""

from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.adapters.base import BaseHostAdapter
from app.adapters.gitlab import GitLabClient
from app.config import get_settings
from app.constants.gitlab import WebsocketEvent
from app.core.credentials import TokenCipher
from app.core.exceptions import PlatformError
from app.infra.logging_config import get_logger
from app.schemas.identity import LinkedIdentity
from app.services.credential_vault import CredentialVault
from app.services.kv_store_service import KVStoreService

logger = get_logger(__name__)

ClientFactory = Callable[[LinkedIdentity], GitLabClient]


def default_client_factory(identity: LinkedIdentity) -> GitLabClient:
    """Build a GitLab client authenticated as the identity's own account."""
    settings = get_settings()
    return GitLabClient.for_identity(
        identity,
        base_url=settings.gitlab_base_url,
        timeout=settings.upstream_timeout_seconds,
    )


class BaseGitLabCommand:
    """
    Base for GitLab-related commands.
    Holds the db session, host adapter, vault and client factory.
    """

    def __init__(
        self,
        db: Session,
        host: BaseHostAdapter,
        *,
        vault: Optional[CredentialVault] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.db = db
        self.settings = get_settings()
        self.host = host
        self.store = KVStoreService(db)
        self.vault = vault or CredentialVault(self.store, TokenCipher.from_settings())
        self._client_factory = client_factory or default_client_factory

    def gitlab_client(self, identity: LinkedIdentity) -> GitLabClient:
        return self._client_factory(identity)

    async def publish(self, event: WebsocketEvent, user_id: str) -> None:
        """Publish an event to the user; failures are logged, never raised."""
        try:
            await self.host.publish_event(event, user_id)
        except PlatformError as e:
            logger.warning(
                "Unable to publish %s event to user=%s: %s", event.value, user_id, e
            )
