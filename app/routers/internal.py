"""
Internal API used by collaborators outside this service: the OAuth
completion flow, the webhook notification pipeline and the reminder
scheduler.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.adapters.base import BaseHostAdapter
from app.commands.link_account_command import LinkAccountCommand
from app.commands.post_todo_command import PostTodoCommand
from app.core.exceptions import (
    CryptoError,
    NotLinkedError,
    PlatformError,
    StorageError,
    UpstreamError,
)
from app.db import get_db
from app.routers.utils.dependencies import (
    get_credential_vault,
    get_host_adapter,
    verify_internal_token,
)
from app.schemas.identity import (
    LinkedIdentityRead,
    LinkIdentityRequest,
    ReverseLookupRead,
)
from app.services.credential_vault import CredentialVault

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(verify_internal_token)],
)


@router.post("/identities", response_model=LinkedIdentityRead, status_code=201)
async def link_identity(
    body: LinkIdentityRequest,
    db: Session = Depends(get_db),
    host: BaseHostAdapter = Depends(get_host_adapter),
    vault: CredentialVault = Depends(get_credential_vault),
) -> LinkedIdentityRead:
    """Store a newly authorized GitLab identity for a platform user."""
    try:
        identity = await LinkAccountCommand(db, host, vault=vault).execute(body)
    except (CryptoError, StorageError) as e:
        logger.error("Unable to link user=%s: %s", body.user_id, e)
        raise HTTPException(status_code=500, detail="Unable to store identity") from e
    return LinkedIdentityRead(
        user_id=identity.user_id,
        gitlab_username=identity.gitlab_username,
        settings=identity.settings,
    )


@router.get("/identities/by-gitlab/{gitlab_username}", response_model=ReverseLookupRead)
def lookup_by_gitlab_username(
    gitlab_username: str,
    vault: CredentialVault = Depends(get_credential_vault),
) -> ReverseLookupRead:
    """Resolve the platform user that receives notifications for a GitLab username."""
    try:
        user_id = vault.lookup_by_gitlab_username(gitlab_username)
    except StorageError as e:
        raise HTTPException(status_code=500, detail="Lookup failed") from e
    if user_id is None:
        raise HTTPException(status_code=404, detail="No user mapped to this username")
    return ReverseLookupRead(gitlab_username=gitlab_username, user_id=user_id)


@router.post("/todo/{user_id}", response_model=dict[str, Any])
async def post_todo(
    user_id: str,
    db: Session = Depends(get_db),
    host: BaseHostAdapter = Depends(get_host_adapter),
    vault: CredentialVault = Depends(get_credential_vault),
) -> dict[str, Any]:
    """Post the user's todo summary to their bot direct channel."""
    try:
        post_id = await PostTodoCommand(db, host, vault=vault).execute(user_id)
    except NotLinkedError as e:
        raise HTTPException(status_code=404, detail="User is not linked") from e
    except (UpstreamError, PlatformError) as e:
        logger.error("Todo post failed for user=%s: %s", user_id, e)
        raise HTTPException(status_code=502, detail="Unable to post todo summary") from e
    except (CryptoError, StorageError) as e:
        logger.error("Todo post failed for user=%s: %s", user_id, e)
        raise HTTPException(status_code=500, detail="Unable to post todo summary") from e
    return {"data": {"posted": post_id is not None, "post_id": post_id}}
