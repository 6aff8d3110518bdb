"""Subset of GitLab REST API v4 resources used by the bridge."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class _GitLabResource(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GitLabProject(_GitLabResource):
    id: Optional[int] = None
    path_with_namespace: Optional[str] = None
    web_url: Optional[str] = None


class GitLabTodo(_GitLabResource):
    id: int
    state: str
    target_url: Optional[str] = None
    action_name: Optional[str] = None
    project: Optional[GitLabProject] = None


class GitLabMergeRequest(_GitLabResource):
    id: int
    iid: Optional[int] = None
    title: Optional[str] = None
    state: Optional[str] = None
    web_url: str


class GitLabIssue(_GitLabResource):
    id: int
    iid: Optional[int] = None
    title: Optional[str] = None
    state: Optional[str] = None
    web_url: str


class GitLabUser(_GitLabResource):
    id: int
    username: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    web_url: Optional[str] = None
