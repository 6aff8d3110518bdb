"""
Slash command route.

The host POSTs `/gitlab ...` invocations here as form fields and renders the
returned JSON as an ephemeral post.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Optional

from fastapi import APIRouter, Depends, Form, HTTPException
from sqlalchemy.orm import Session

from app.adapters.base import BaseHostAdapter
from app.commands.gitlab_command import GitLabSlashCommand
from app.config import get_settings
from app.core.exceptions import CryptoError
from app.db import get_db
from app.routers.utils.dependencies import get_host_adapter
from app.schemas.command import CommandArgs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commands", tags=["commands"])


def _verify_command_token(token: Optional[str]) -> None:
    expected = get_settings().slash_command_token
    if not expected:
        return
    if not token or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=403, detail="Invalid command token")


@router.post("/gitlab", response_model=dict[str, Any])
async def execute_gitlab_command(
    command: str = Form(...),
    text: str = Form(""),
    user_id: str = Form(...),
    channel_id: str = Form(""),
    team_id: str = Form(""),
    token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    host: BaseHostAdapter = Depends(get_host_adapter),
) -> dict[str, Any]:
    """
    Execute a `/gitlab` slash command.
    Returns the command response, or {} when the command is not handled here.
    """
    _verify_command_token(token)
    args = CommandArgs(
        command=f"{command} {text}".strip(),
        user_id=user_id,
        channel_id=channel_id,
        team_id=team_id,
    )
    try:
        slash_command = GitLabSlashCommand(db, host)
    except CryptoError as e:
        logger.error("Slash command unavailable: %s", e)
        raise HTTPException(
            status_code=503, detail="Token encryption is not configured"
        ) from e

    response = await slash_command.execute(args)
    if response is None:
        return {}
    return response.model_dump(mode="json")
