"""Adapters for GitLab and the messaging host."""

from app.adapters.base import BaseHostAdapter
from app.adapters.gitlab import GitLabClient
from app.adapters.mattermost import MattermostHostAdapter

__all__ = ["BaseHostAdapter", "GitLabClient", "MattermostHostAdapter"]
