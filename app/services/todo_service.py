"""
Todo summary: aggregates a user's pending GitLab work into one report.

Four independent queries (todos, merge requests created by the user, issues
and merge requests assigned to the user) run concurrently and are joined
before rendering. A failing query fails the whole summary; a single todo
whose project cannot be resolved is skipped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from app.adapters.gitlab import SCOPE_ASSIGNED_TO_ME, SCOPE_CREATED_BY_ME, GitLabClient
from app.config import get_settings
from app.core.exceptions import UpstreamError
from app.schemas.gitlab import GitLabIssue, GitLabMergeRequest, GitLabTodo
from app.utils.repo_path import in_org_scope, parse_owner_and_repo

logger = logging.getLogger(__name__)

TODO_STATE_DONE = "done"


@dataclass
class TodoSummary:
    """Filtered work items, each list in upstream order."""

    todos: list[GitLabTodo] = field(default_factory=list)
    open_merge_requests: list[GitLabMergeRequest] = field(default_factory=list)
    assigned_issues: list[GitLabIssue] = field(default_factory=list)
    assigned_merge_requests: list[GitLabMergeRequest] = field(default_factory=list)

    @property
    def assignment_urls(self) -> list[str]:
        return [i.web_url for i in self.assigned_issues] + [
            mr.web_url for mr in self.assigned_merge_requests
        ]


class TodoService:
    """Builds the `/gitlab todo` report for one user."""

    def __init__(
        self,
        gitlab_base_url: Optional[str] = None,
        gitlab_org: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self.gitlab_base_url = (
            gitlab_base_url if gitlab_base_url is not None else settings.gitlab_base_url
        )
        self.gitlab_org = gitlab_org if gitlab_org is not None else settings.gitlab_org
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.upstream_timeout_seconds
        )

    async def summarize(self, username: str, client: GitLabClient) -> str:
        """
        Fetch, filter and render the todo report.

        Raises:
            UpstreamError: any of the four GitLab queries failed or timed out.
        """
        summary = await self.collect(username, client)
        return self.render(summary)

    async def collect(self, username: str, client: GitLabClient) -> TodoSummary:
        todos, open_mrs, assigned_issues, assigned_mrs = await self._fetch_all(
            username, client
        )
        return TodoSummary(
            todos=self._filter_todos(todos),
            open_merge_requests=open_mrs,
            assigned_issues=assigned_issues,
            assigned_merge_requests=assigned_mrs,
        )

    async def _fetch_all(
        self, username: str, client: GitLabClient
    ) -> tuple[
        list[GitLabTodo],
        list[GitLabMergeRequest],
        list[GitLabIssue],
        list[GitLabMergeRequest],
    ]:
        # The TaskGroup cancels the remaining fetches as soon as one fails,
        # and cancelling this coroutine cancels all of them.
        try:
            async with asyncio.timeout(self.timeout_seconds):
                async with asyncio.TaskGroup() as tg:
                    todos = tg.create_task(client.list_todos())
                    open_mrs = tg.create_task(
                        client.list_merge_requests(scope=SCOPE_CREATED_BY_ME)
                    )
                    assigned_issues = tg.create_task(
                        client.list_issues(scope=SCOPE_ASSIGNED_TO_ME)
                    )
                    assigned_mrs = tg.create_task(
                        client.list_merge_requests(scope=SCOPE_ASSIGNED_TO_ME)
                    )
        except ExceptionGroup as group:
            upstream = group.subgroup(UpstreamError)
            if upstream is None:
                raise
            first = _first_leaf(upstream)
            logger.error("Todo fetch failed for gitlab_username=%s: %s", username, first)
            raise first from group
        except TimeoutError as e:
            logger.error(
                "Todo fetch for gitlab_username=%s timed out after %ss",
                username,
                self.timeout_seconds,
            )
            raise UpstreamError("Timed out fetching todo items from GitLab") from e

        return (
            todos.result(),
            open_mrs.result(),
            assigned_issues.result(),
            assigned_mrs.result(),
        )

    def _filter_todos(self, todos: list[GitLabTodo]) -> list[GitLabTodo]:
        kept: list[GitLabTodo] = []
        for todo in todos:
            if todo.state == TODO_STATE_DONE:
                continue
            if not todo.target_url:
                logger.warning("Todo %s has no target url. Skipping.", todo.id)
                continue

            path = todo.project.path_with_namespace if todo.project else None
            try:
                owner = parse_owner_and_repo(path or "", self.gitlab_base_url).owner
            except ValueError:
                logger.error(
                    "Unable to get repository for todo %s in todo list. Skipping.",
                    todo.id,
                )
                continue

            if not in_org_scope(owner, self.gitlab_org):
                continue

            kept.append(todo)
        return kept

    @staticmethod
    def render(summary: TodoSummary) -> str:
        text = "##### Todos\n"
        if not summary.todos:
            text += "You don't have any todos.\n"
        else:
            text += f"You have {len(summary.todos)} pending todos:\n"
            for todo in summary.todos:
                text += f"* {todo.target_url}\n"

        text += "##### Your Open Merge Requests\n"
        if not summary.open_merge_requests:
            text += "You don't have any open merge requests.\n"
        else:
            text += (
                f"You have {len(summary.open_merge_requests)} open merge requests:\n"
            )
            for mr in summary.open_merge_requests:
                text += f"* {mr.web_url}\n"

        text += "##### Your Assignments\n"
        assignments = summary.assignment_urls
        if not assignments:
            text += "You don't have any assignments.\n"
        else:
            text += f"You have {len(assignments)} assignments:\n"
            for url in assignments:
                text += f"* {url}\n"

        return text


def _first_leaf(group: BaseExceptionGroup) -> BaseException:
    exc: BaseException = group
    while isinstance(exc, BaseExceptionGroup):
        exc = exc.exceptions[0]
    return exc
