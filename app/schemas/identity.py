"""Pydantic schemas for linked GitLab identities and user settings."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.constants.gitlab import SettingName, SettingValue
from app.core.exceptions import ValidationError


class OAuthToken(BaseModel):
    """OAuth2 token issued by GitLab. Secrets are cleartext only in memory."""

    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None


class UserSettings(BaseModel):
    """Per-user notification preferences."""

    notifications: bool = True
    daily_reminder: bool = True


class LinkedIdentity(BaseModel):
    """Association of one platform user with one GitLab account."""

    user_id: str
    token: OAuthToken
    gitlab_username: str
    last_todo_post_at: int = 0  # epoch milliseconds
    settings: UserSettings = Field(default_factory=UserSettings)


class LinkIdentityRequest(BaseModel):
    """Body posted by the OAuth completion flow once a token is obtained."""

    user_id: str = Field(..., min_length=1)
    gitlab_username: str = Field(..., min_length=1)
    token: OAuthToken


class LinkedIdentityRead(BaseModel):
    """Public view of a linked identity (never includes the token)."""

    user_id: str
    gitlab_username: str
    settings: UserSettings


class ReverseLookupRead(BaseModel):
    gitlab_username: str
    user_id: str


USAGE_SETTINGS = (
    "Please specify both a setting and value. "
    "Use `/gitlab help` for more usage information."
)
UNKNOWN_SETTING = "Unknown setting."
INVALID_VALUE = 'Invalid value. Accepted values are: "on" or "off".'


class SettingChange(BaseModel):
    """A validated `/gitlab settings <setting> <on|off>` request."""

    setting: SettingName
    enabled: bool

    @classmethod
    def parse(cls, parameters: list[str]) -> "SettingChange":
        """
        Parse the positional parameters of the settings action.

        Raises:
            ValidationError: wrong arity, unknown setting or invalid value.
                The message is meant to be shown to the user as-is.
        """
        if len(parameters) != 2:
            raise ValidationError(USAGE_SETTINGS)
        raw_setting, raw_value = parameters
        try:
            setting = SettingName(raw_setting)
        except ValueError:
            raise ValidationError(UNKNOWN_SETTING) from None
        try:
            value = SettingValue(raw_value)
        except ValueError:
            raise ValidationError(INVALID_VALUE) from None
        return cls(setting=setting, enabled=value == SettingValue.ON)

    def apply(self, settings: UserSettings) -> None:
        if self.setting == SettingName.NOTIFICATIONS:
            settings.notifications = self.enabled
        elif self.setting == SettingName.REMINDERS:
            settings.daily_reminder = self.enabled
