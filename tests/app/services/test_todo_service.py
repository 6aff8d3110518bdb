"""Tests for TodoService."""

import asyncio

import httpx
import pytest

from app.adapters.gitlab import GitLabClient
from app.core.exceptions import UpstreamError
from app.schemas.gitlab import GitLabIssue, GitLabMergeRequest
from app.services.todo_service import TodoService, TodoSummary
from tests.fixtures.gitlab_fixtures import (
    GITLAB_BASE_URL,
    issue,
    make_gitlab_client,
    merge_request,
    route_key,
    todo,
    work_responses,
)


def make_service(org: str = "", timeout: float = 5.0) -> TodoService:
    return TodoService(
        gitlab_base_url=GITLAB_BASE_URL, gitlab_org=org, timeout_seconds=timeout
    )


async def summarize(service: TodoService, responses: dict) -> str:
    async with make_gitlab_client(responses) as client:
        return await service.summarize("alice", client)


@pytest.mark.asyncio
async def test_report_scenario():
    """One done todo, one open in-org todo, one open MR, one assigned issue."""
    responses = work_responses(
        todos=[todo(1, "acme/widgets", state="done"), todo(2, "acme/widgets")],
        created_mrs=[merge_request(10)],
        assigned_issues=[issue(20)],
        assigned_mrs=[],
    )

    text = await summarize(make_service(org="acme"), responses)

    assert "You have 1 pending todos:" in text
    assert f"* {GITLAB_BASE_URL}/acme/widgets/-/issues/2\n" in text
    assert f"{GITLAB_BASE_URL}/acme/widgets/-/issues/1" not in text
    assert "You have 1 open merge requests:" in text
    assert f"* {GITLAB_BASE_URL}/acme/widgets/-/merge_requests/10\n" in text
    assert "You have 1 assignments:" in text
    assert f"* {GITLAB_BASE_URL}/acme/widgets/-/issues/20\n" in text
    assert text.count("* ") == 3


@pytest.mark.asyncio
async def test_report_sections_in_order():
    text = await summarize(make_service(), work_responses())
    todos = text.index("##### Todos")
    mrs = text.index("##### Your Open Merge Requests")
    assignments = text.index("##### Your Assignments")
    assert todos < mrs < assignments


@pytest.mark.asyncio
async def test_empty_report():
    text = await summarize(make_service(), work_responses())
    assert text == (
        "##### Todos\n"
        "You don't have any todos.\n"
        "##### Your Open Merge Requests\n"
        "You don't have any open merge requests.\n"
        "##### Your Assignments\n"
        "You don't have any assignments.\n"
    )


@pytest.mark.asyncio
async def test_org_filtering():
    responses = work_responses(
        todos=[todo(1, "acme/widgets"), todo(2, "other/widgets")]
    )

    scoped = await summarize(make_service(org="acme"), responses)
    assert "You have 1 pending todos:" in scoped
    assert "acme/widgets/-/issues/1" in scoped
    assert "other/widgets" not in scoped

    unscoped = await summarize(make_service(org=""), responses)
    assert "You have 2 pending todos:" in unscoped
    assert "other/widgets/-/issues/2" in unscoped


@pytest.mark.asyncio
async def test_org_filter_does_not_apply_to_merge_requests():
    responses = work_responses(created_mrs=[merge_request(1, project="other/repo")])
    text = await summarize(make_service(org="acme"), responses)
    assert "You have 1 open merge requests:" in text


@pytest.mark.asyncio
async def test_unparseable_project_skips_only_that_todo(caplog):
    responses = work_responses(
        todos=[
            todo(1, "acme/widgets"),
            todo(2, "no-slash"),
            todo(3, None),
            todo(4, "acme/gadgets"),
            todo(5, "acme/old", state="done"),
        ]
    )

    text = await summarize(make_service(), responses)

    assert "You have 2 pending todos:" in text
    assert "acme/widgets/-/issues/1" in text
    assert "acme/gadgets/-/issues/4" in text
    assert "Unable to get repository" in caplog.text


@pytest.mark.asyncio
async def test_todos_keep_upstream_order():
    responses = work_responses(
        todos=[todo(3, "acme/c"), todo(1, "acme/a"), todo(2, "acme/b")]
    )
    text = await summarize(make_service(), responses)
    assert text.index("acme/c") < text.index("acme/a") < text.index("acme/b")


@pytest.mark.asyncio
async def test_assignments_list_issues_before_merge_requests():
    responses = work_responses(
        assigned_issues=[issue(1), issue(2)],
        assigned_mrs=[merge_request(3)],
    )
    text = await summarize(make_service(), responses)
    assert "You have 3 assignments:" in text
    assert text.count("You have 3 assignments") == 1
    assert text.index("issues/1") < text.index("issues/2") < text.index(
        "merge_requests/3"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failing_route",
    [
        "/todos",
        "/merge_requests?scope=created_by_me",
        "/issues?scope=assigned_to_me",
        "/merge_requests?scope=assigned_to_me",
    ],
)
async def test_any_failed_query_fails_the_summary(failing_route):
    responses = work_responses(todos=[todo(1, "acme/widgets")])
    responses[failing_route] = httpx.Response(500, json={"message": "boom"})

    with pytest.raises(UpstreamError):
        await summarize(make_service(), responses)


def _slow_transport(fast_routes: dict, started: list, cancelled: list, delay: float):
    async def handler(request: httpx.Request) -> httpx.Response:
        key = route_key(request)
        if key in fast_routes:
            return fast_routes[key]
        started.append(key)
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            cancelled.append(key)
            raise
        return httpx.Response(200, json=[])

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_failure_cancels_other_fetches():
    started, cancelled = [], []
    transport = _slow_transport(
        {"/todos": httpx.Response(502, json={"message": "bad gateway"})},
        started,
        cancelled,
        delay=5,
    )
    async with GitLabClient("t", GITLAB_BASE_URL, transport=transport) as client:
        with pytest.raises(UpstreamError):
            await asyncio.wait_for(make_service().summarize("alice", client), 2)

    assert sorted(cancelled) == sorted(started)


@pytest.mark.asyncio
async def test_timeout_raises_upstream_error():
    started, cancelled = [], []
    transport = _slow_transport({}, started, cancelled, delay=5)
    async with GitLabClient("t", GITLAB_BASE_URL, transport=transport) as client:
        with pytest.raises(UpstreamError, match="Timed out"):
            await make_service(timeout=0.05).summarize("alice", client)

    assert len(cancelled) == 4


@pytest.mark.asyncio
async def test_cancellation_propagates_to_fetches():
    started, cancelled = [], []
    transport = _slow_transport({}, started, cancelled, delay=5)
    async with GitLabClient("t", GITLAB_BASE_URL, transport=transport) as client:
        task = asyncio.create_task(make_service().summarize("alice", client))
        while len(started) < 4:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert len(cancelled) == 4


def test_render_counts_issues_and_merge_requests_as_assignments():
    summary = TodoSummary(
        assigned_issues=[GitLabIssue(id=1, web_url="https://g/i/1")],
        assigned_merge_requests=[GitLabMergeRequest(id=2, web_url="https://g/m/2")],
    )
    assert summary.assignment_urls == ["https://g/i/1", "https://g/m/2"]
    text = TodoService.render(summary)
    assert "You have 2 assignments:\n* https://g/i/1\n* https://g/m/2\n" in text


@pytest.mark.asyncio
async def test_todo_without_target_url_is_skipped():
    linkless = todo(2, "acme/widgets")
    del linkless["target_url"]
    responses = work_responses(todos=[todo(1, "acme/widgets"), linkless])

    text = await summarize(make_service(), responses)

    assert "You have 1 pending todos:" in text
    assert "None" not in text
