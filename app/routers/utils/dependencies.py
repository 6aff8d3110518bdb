import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.adapters.base import BaseHostAdapter
from app.adapters.mattermost import MattermostHostAdapter
from app.config import get_settings
from app.core.credentials import TokenCipher
from app.core.exceptions import ConfigurationError, CryptoError
from app.db import get_db
from app.services.credential_vault import CredentialVault
from app.services.kv_store_service import KVStoreService


def get_host_adapter() -> BaseHostAdapter:
    """FastAPI dependency to get the messaging host adapter."""
    try:
        return MattermostHostAdapter.from_settings()
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


def get_credential_vault(db: Session = Depends(get_db)) -> CredentialVault:
    """FastAPI dependency to get the credential vault for this request."""
    try:
        cipher = TokenCipher.from_settings()
    except CryptoError as e:
        raise HTTPException(
            status_code=503, detail="Token encryption is not configured"
        ) from e
    return CredentialVault(KVStoreService(db), cipher)


def verify_internal_token(
    x_internal_token: Optional[str] = Header(default=None),
) -> None:
    """Reject internal calls without the shared token when one is configured."""
    expected = get_settings().internal_api_token
    if not expected:
        return
    if not x_internal_token or not secrets.compare_digest(x_internal_token, expected):
        raise HTTPException(status_code=403, detail="Invalid internal token")
