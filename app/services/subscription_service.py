"""Channel subscriptions to GitLab repositories."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.adapters.gitlab import GitLabClient
from app.config import get_settings
from app.constants.gitlab import SUBSCRIPTIONS_KEY
from app.core.exceptions import StorageError, UpstreamError, ValidationError
from app.schemas.identity import LinkedIdentity
from app.services.kv_store_service import BaseKVStore
from app.utils.repo_path import check_org, parse_owner_and_repo

logger = logging.getLogger(__name__)


class Subscription(BaseModel):
    channel_id: str
    creator_id: str
    features: str
    repository: str


class BaseSubscriptionManager(ABC):
    """Contract used by the slash command for subscribe/unsubscribe."""

    @abstractmethod
    async def subscribe(
        self,
        identity: LinkedIdentity,
        client: GitLabClient,
        repo: str,
        channel_id: str,
        features: str,
    ) -> None:
        """Subscribe channel_id to repo. Error messages are shown to the user as-is."""
        ...

    @abstractmethod
    async def unsubscribe(self, channel_id: str, repo: str) -> None: ...


_SUBSCRIPTION_MAP = TypeAdapter(dict[str, list[Subscription]])


class SubscriptionService(BaseSubscriptionManager):
    """Keeps all subscriptions in one JSON document keyed by repository."""

    def __init__(self, store: BaseKVStore, gitlab_org: str | None = None) -> None:
        self._store = store
        self._gitlab_org = (
            gitlab_org if gitlab_org is not None else get_settings().gitlab_org
        )

    def get_subscriptions(self) -> dict[str, list[Subscription]]:
        raw = self._store.get(SUBSCRIPTIONS_KEY)
        if not raw:
            return {}
        try:
            return _SUBSCRIPTION_MAP.validate_python(json.loads(raw))
        except (ValueError, PydanticValidationError) as e:
            logger.error("Stored subscriptions are unreadable: %s", e)
            raise StorageError("Unable to read subscriptions") from e

    def get_subscriptions_for_repo(self, repo: str) -> list[Subscription]:
        return self.get_subscriptions().get(repo, [])

    def _save(self, subscriptions: dict[str, list[Subscription]]) -> None:
        self._store.set(SUBSCRIPTIONS_KEY, _SUBSCRIPTION_MAP.dump_json(subscriptions))

    async def subscribe(
        self,
        identity: LinkedIdentity,
        client: GitLabClient,
        repo: str,
        channel_id: str,
        features: str,
    ) -> None:
        try:
            path = parse_owner_and_repo(repo)
        except ValueError:
            raise ValidationError("Invalid repository. Use the owner/repo format.") from None
        check_org(path.owner, self._gitlab_org)

        try:
            await client.get_project(path.full_name)
        except UpstreamError as e:
            logger.info("Project lookup failed for %s: %s", path.full_name, e)
            raise UpstreamError(
                f"Unable to find project with name {path.full_name}"
            ) from e

        subscriptions = self.get_subscriptions()
        entries = [
            s for s in subscriptions.get(path.full_name, []) if s.channel_id != channel_id
        ]
        entries.append(
            Subscription(
                channel_id=channel_id,
                creator_id=identity.user_id,
                features=features,
                repository=path.full_name,
            )
        )
        subscriptions[path.full_name] = entries
        self._save(subscriptions)

    async def unsubscribe(self, channel_id: str, repo: str) -> None:
        try:
            full_name = parse_owner_and_repo(repo).full_name
        except ValueError:
            raise ValidationError("Invalid repository. Use the owner/repo format.") from None

        subscriptions = self.get_subscriptions()
        entries = subscriptions.get(full_name)
        if not entries:
            return
        remaining = [s for s in entries if s.channel_id != channel_id]
        if len(remaining) == len(entries):
            return
        if remaining:
            subscriptions[full_name] = remaining
        else:
            del subscriptions[full_name]
        self._save(subscriptions)
