"""Credential vault: encrypted linked identities and the GitLab username index."""

from __future__ import annotations

import json
import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from app.constants.gitlab import GITLAB_TOKEN_KEY, GITLAB_USERNAME_KEY
from app.core.credentials import TokenCipher
from app.core.exceptions import CryptoError, NotLinkedError, StorageError
from app.schemas.identity import LinkedIdentity
from app.services.kv_store_service import BaseKVStore

logger = logging.getLogger(__name__)


def identity_key(user_id: str) -> str:
    return user_id + GITLAB_TOKEN_KEY


def username_key(gitlab_username: str) -> str:
    return gitlab_username + GITLAB_USERNAME_KEY


class CredentialVault:
    """
    Stores one LinkedIdentity per platform user with its token encrypted.

    The reverse index (GitLab username -> user id) is maintained through
    explicit calls; store() never touches it. The reverse index entry should
    exist exactly while the identity has notifications enabled.
    """

    def __init__(self, store: BaseKVStore, cipher: TokenCipher) -> None:
        self._store = store
        self._cipher = cipher

    def store(self, identity: LinkedIdentity) -> None:
        """
        Encrypt the token and persist the identity under its user key.

        The caller's identity keeps its cleartext token.

        Raises:
            CryptoError: encryption failed.
            StorageError: the write failed.
        """
        record = identity.model_copy(deep=True)
        record.token.access_token = self._cipher.encrypt(identity.token.access_token)
        record.token.refresh_token = self._cipher.encrypt_optional(
            identity.token.refresh_token
        )
        self._store.set(
            identity_key(identity.user_id),
            record.model_dump_json().encode("utf-8"),
        )

    def resolve(self, user_id: str) -> LinkedIdentity:
        """
        Load and decrypt the identity linked to user_id.

        Raises:
            NotLinkedError: nothing is stored for the user.
            CryptoError: the record is unreadable or the token cannot be decrypted.
            StorageError: the read failed.
        """
        raw = self._store.get(identity_key(user_id))
        if raw is None:
            raise NotLinkedError(user_id)

        try:
            identity = LinkedIdentity.model_validate(json.loads(raw))
        except (ValueError, PydanticValidationError) as e:
            logger.error("Unable to parse stored identity for user=%s: %s", user_id, e)
            raise CryptoError("Unable to parse token") from e

        try:
            identity.token.access_token = self._cipher.decrypt(
                identity.token.access_token
            )
            identity.token.refresh_token = self._cipher.decrypt_optional(
                identity.token.refresh_token
            )
        except CryptoError:
            logger.exception("Unable to decrypt access token for user=%s", user_id)
            raise
        return identity

    def set_reverse_index(self, gitlab_username: str, user_id: str) -> None:
        self._store.set(username_key(gitlab_username), user_id.encode("utf-8"))

    def clear_reverse_index(
        self, gitlab_username: str, user_id: Optional[str] = None
    ) -> None:
        """
        Delete the reverse index entry for gitlab_username.

        With user_id, the entry is only deleted while it still points to that
        user; a later link of the same GitLab account by someone else keeps it.
        """
        if user_id is not None and self.lookup_by_gitlab_username(gitlab_username) != user_id:
            return
        self._store.delete(username_key(gitlab_username))

    def lookup_by_gitlab_username(self, gitlab_username: str) -> Optional[str]:
        """Return the platform user id mapped to gitlab_username, or None."""
        raw = self._store.get(username_key(gitlab_username))
        if not raw:
            return None
        return raw.decode("utf-8")

    def unlink(self, user_id: str) -> Optional[LinkedIdentity]:
        """
        Delete the identity and, when it can be resolved, its reverse index entry.

        Idempotent: returns None and writes nothing when no identity is stored.
        An identity whose token cannot be decrypted is still deleted; its
        reverse index entry is left for the next link to overwrite.
        """
        try:
            identity = self.resolve(user_id)
        except NotLinkedError:
            return None
        except CryptoError:
            logger.warning("Unlinking unreadable identity for user=%s", user_id)
            self._store.delete(identity_key(user_id))
            return None

        self._store.delete(identity_key(user_id))
        try:
            self.clear_reverse_index(identity.gitlab_username, user_id)
        except StorageError:
            logger.exception(
                "Unable to clear username mapping for gitlab_username=%s",
                identity.gitlab_username,
            )
        return identity
