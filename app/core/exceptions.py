"""Error taxonomy for the GitLab bridge.

Services raise these; the slash command layer turns them into user-facing
text and the routers turn them into HTTP errors.
"""

from __future__ import annotations


class GitLabPluginError(Exception):
    """Base class for all errors raised by this service."""


class NotLinkedError(GitLabPluginError):
    """No linked GitLab identity is stored for the platform user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} has not connected a GitLab account")
        self.user_id = user_id


class ConfigurationError(GitLabPluginError):
    """A required setting is missing or a request violates the configured scope."""


class ValidationError(GitLabPluginError):
    """Malformed command arguments. The message is safe to show to the user."""


class UpstreamError(GitLabPluginError):
    """A GitLab API request failed."""


class CryptoError(GitLabPluginError):
    """Token encryption or decryption failed."""


class StorageError(GitLabPluginError):
    """A key-value read or write failed."""


class PlatformError(GitLabPluginError):
    """A call to the messaging host's REST API failed."""
