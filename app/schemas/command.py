"""Slash command request and response contracts."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from app.constants.gitlab import BOT_DISPLAY_NAME, BOT_ICON_URL


class ResponseType(str, Enum):
    EPHEMERAL = "ephemeral"
    IN_CHANNEL = "in_channel"


class CommandArgs(BaseModel):
    """One slash command invocation as received from the host."""

    command: str
    user_id: str
    channel_id: str = ""
    team_id: str = ""


class CommandResponse(BaseModel):
    """Response rendered by the host; authored under the bot's name and icon."""

    response_type: ResponseType = ResponseType.EPHEMERAL
    text: str
    username: str = BOT_DISPLAY_NAME
    icon_url: str = BOT_ICON_URL
    type: str = ""

    @classmethod
    def ephemeral(cls, text: str) -> "CommandResponse":
        return cls(response_type=ResponseType.EPHEMERAL, text=text)
