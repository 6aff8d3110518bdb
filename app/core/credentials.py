"""Symmetric encryption of GitLab access tokens at rest."""

from __future__ import annotations

import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from app.config import get_settings
from app.core.exceptions import CryptoError


def _derive_key(secret: str, salt: str) -> bytes:
    """Derive a Fernet key from an arbitrary-length secret."""
    digest = hashlib.sha256(salt.encode() + secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)


class TokenCipher:
    """Fernet (AES-CBC + HMAC) cipher keyed by the configured encryption secret.

    Decrypting with a different secret fails the HMAC check and raises
    CryptoError instead of returning garbage.
    """

    def __init__(self, secret: str, salt: str = "default-salt") -> None:
        if not secret:
            raise CryptoError("An encryption key must be configured")
        self._fernet = Fernet(_derive_key(secret, salt))

    @classmethod
    def from_settings(cls) -> "TokenCipher":
        settings = get_settings()
        return cls(settings.encryption_key or "", settings.fernet_salt)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token, returning URL-safe text suitable for JSON."""
        try:
            return self._fernet.encrypt(plaintext.encode()).decode()
        except (TypeError, ValueError) as e:
            raise CryptoError(f"Unable to encrypt token: {e}") from e

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as e:
            raise CryptoError("Unable to decrypt access token") from e
        except (TypeError, ValueError) as e:
            raise CryptoError(f"Unable to decrypt access token: {e}") from e

    def encrypt_optional(self, plaintext: Optional[str]) -> Optional[str]:
        return self.encrypt(plaintext) if plaintext else plaintext

    def decrypt_optional(self, ciphertext: Optional[str]) -> Optional[str]:
        return self.decrypt(ciphertext) if ciphertext else ciphertext
