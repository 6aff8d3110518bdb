"""
GitLab REST API v4 client.

One client is built per invocation from the resolved identity's token and
owns its own httpx.AsyncClient; it is never shared across users.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any, Optional, TypeVar

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import UpstreamError
from app.schemas.gitlab import (
    GitLabIssue,
    GitLabMergeRequest,
    GitLabProject,
    GitLabTodo,
    GitLabUser,
)
from app.schemas.identity import LinkedIdentity

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v4"
PER_PAGE = 100
TIMEOUT_SECONDS = 30.0

SCOPE_CREATED_BY_ME = "created_by_me"
SCOPE_ASSIGNED_TO_ME = "assigned_to_me"
STATE_OPENED = "opened"

T = TypeVar("T")


class GitLabClient:
    """Async GitLab API client authenticated with an OAuth access token."""

    def __init__(
        self,
        access_token: str,
        base_url: str,
        timeout: float = TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}{API_PREFIX}",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def for_identity(
        cls,
        identity: LinkedIdentity,
        base_url: str,
        timeout: float = TIMEOUT_SECONDS,
    ) -> "GitLabClient":
        return cls(identity.token.access_token, base_url, timeout=timeout)

    async def __aenter__(self) -> "GitLabClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        try:
            response = await self._http.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"GitLab GET {path} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"GitLab GET {path} failed: {e!r}") from e

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"GitLab GET {path} returned invalid JSON") from e

    async def _get_as(
        self, adapter: TypeAdapter[T], path: str, params: Optional[dict] = None
    ) -> T:
        data = await self._get(path, params=params)
        try:
            return adapter.validate_python(data)
        except PydanticValidationError as e:
            raise UpstreamError(f"Unexpected GitLab response for {path}: {e}") from e

    async def list_todos(self) -> list[GitLabTodo]:
        """Pending todos of the authenticated user, in GitLab's order."""
        return await self._get_as(
            _TODOS, "/todos", params={"per_page": PER_PAGE}
        )

    async def list_merge_requests(
        self, scope: str, state: str = STATE_OPENED
    ) -> list[GitLabMergeRequest]:
        return await self._get_as(
            _MERGE_REQUESTS,
            "/merge_requests",
            params={"scope": scope, "state": state, "per_page": PER_PAGE},
        )

    async def list_issues(
        self, scope: str, state: str = STATE_OPENED
    ) -> list[GitLabIssue]:
        return await self._get_as(
            _ISSUES,
            "/issues",
            params={"scope": scope, "state": state, "per_page": PER_PAGE},
        )

    async def current_user(self) -> GitLabUser:
        return await self._get_as(_USER, "/user")

    async def get_project(self, path_with_namespace: str) -> GitLabProject:
        encoded = urllib.parse.quote(path_with_namespace, safe="")
        return await self._get_as(_PROJECT, f"/projects/{encoded}")


_TODOS = TypeAdapter(list[GitLabTodo])
_MERGE_REQUESTS = TypeAdapter(list[GitLabMergeRequest])
_ISSUES = TypeAdapter(list[GitLabIssue])
_USER = TypeAdapter(GitLabUser)
_PROJECT = TypeAdapter(GitLabProject)
