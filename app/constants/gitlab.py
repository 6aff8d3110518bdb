"""Storage keys, event names and user setting values for the GitLab bridge."""

from enum import StrEnum

COMMAND_TRIGGER = "/gitlab"

# Key-value storage suffixes
GITLAB_TOKEN_KEY = "_gitlabtoken"
GITLAB_USERNAME_KEY = "_gitlabusername"
SUBSCRIPTIONS_KEY = "subscriptions"

# Host user profile prop marking a linked account
LINKED_ACCOUNT_PROP = "gitlab_user"

# Command responses are authored as
BOT_DISPLAY_NAME = "GitLab Plugin"
BOT_ICON_URL = "https://about.gitlab.com/images/press/logo/png/gitlab-icon-rgb.png"

TODO_POST_TYPE = "custom_gitlab_todo"
DEFAULT_SUBSCRIPTION_FEATURES = "pulls,issues"


class WebsocketEvent(StrEnum):
    """Per-user events consumed by the client to refresh linked-account state."""

    CONNECT = "connect"
    DISCONNECT = "disconnect"
    REFRESH = "refresh"


class SettingName(StrEnum):
    """User settings adjustable through `/gitlab settings`."""

    NOTIFICATIONS = "notifications"
    REMINDERS = "reminders"


class SettingValue(StrEnum):
    ON = "on"
    OFF = "off"
