"""Helpers for GitLab project paths and the configured organization scope."""

from __future__ import annotations

from typing import NamedTuple

from app.core.exceptions import ConfigurationError


class RepoPath(NamedTuple):
    full_name: str
    owner: str
    repo: str


def parse_owner_and_repo(path: str, base_url: str = "") -> RepoPath:
    """
    Split a project path (or project URL under base_url) into owner and repo.

    The owner is the top-level namespace; nested groups stay part of repo,
    e.g. "acme/platform/widgets" -> ("acme", "platform/widgets").

    Raises:
        ValueError: the path has no owner and repo component.
    """
    if not path:
        raise ValueError("Empty project path")
    trimmed = path.strip()
    base = base_url.rstrip("/")
    if base and trimmed.startswith(base):
        trimmed = trimmed[len(base):]
    trimmed = trimmed.strip("/")

    parts = trimmed.split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1].strip("/"):
        raise ValueError(f"Invalid project path: {path!r}")
    owner, repo = parts[0], parts[1].strip("/")
    return RepoPath(full_name=f"{owner}/{repo}", owner=owner, repo=repo)


def check_org(org: str, configured_org: str) -> None:
    """Raise ConfigurationError when an organization scope is set and org is outside it."""
    scope = configured_org.strip()
    if scope and scope != org:
        raise ConfigurationError(
            f"Only repositories in the {scope} organization are supported"
        )


def in_org_scope(org: str, configured_org: str) -> bool:
    scope = configured_org.strip()
    return not scope or scope == org
