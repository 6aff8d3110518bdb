"""Tests for TokenCipher."""

import pytest

from app.core.credentials import TokenCipher
from app.core.exceptions import CryptoError


@pytest.mark.parametrize(
    "plaintext",
    ["glpat-abc123", "", "ünïcødé-tøken", "x" * 4096],
)
def test_round_trip(plaintext):
    cipher = TokenCipher("some secret")
    assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext


def test_ciphertext_does_not_contain_plaintext():
    cipher = TokenCipher("some secret")
    encrypted = cipher.encrypt("glpat-visible-token")
    assert "glpat-visible-token" not in encrypted


def test_encryption_is_randomized():
    cipher = TokenCipher("some secret")
    assert cipher.encrypt("token") != cipher.encrypt("token")


def test_wrong_secret_fails():
    encrypted = TokenCipher("right secret").encrypt("token")
    with pytest.raises(CryptoError):
        TokenCipher("wrong secret").decrypt(encrypted)


def test_wrong_salt_fails():
    encrypted = TokenCipher("secret", salt="a").encrypt("token")
    with pytest.raises(CryptoError):
        TokenCipher("secret", salt="b").decrypt(encrypted)


def test_tampered_ciphertext_fails():
    cipher = TokenCipher("secret")
    encrypted = cipher.encrypt("token")
    tampered = encrypted[:-4] + ("AAAA" if not encrypted.endswith("AAAA") else "BBBB")
    with pytest.raises(CryptoError):
        cipher.decrypt(tampered)


def test_garbage_ciphertext_fails():
    with pytest.raises(CryptoError):
        TokenCipher("secret").decrypt("not-a-fernet-token")


def test_missing_secret_rejected():
    with pytest.raises(CryptoError):
        TokenCipher("")


def test_from_settings_uses_configured_key():
    encrypted = TokenCipher.from_settings().encrypt("token")
    assert TokenCipher("test-encryption-key").decrypt(encrypted) == "token"


def test_optional_helpers_pass_through_empty_values():
    cipher = TokenCipher("secret")
    assert cipher.encrypt_optional(None) is None
    assert cipher.decrypt_optional(None) is None
    assert cipher.decrypt_optional(cipher.encrypt_optional("r")) == "r"
