try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from app.services.token_cipher import TokenCipherService


def test_token_cipher_roundtrip() -> None:
    cipher = TokenCipherService(secret="super-secret-key")
    plaintext = "sensitive-token"

    encrypted = cipher.encrypt(plaintext)
    assert encrypted != plaintext
    assert cipher.decrypt(encrypted) == plaintext


def test_token_cipher_payload_hides_token_values() -> None:
    cipher = TokenCipherService(secret="super-secret-key")
    payload = {"access_token": "T", "refresh_token": "R", "expiry_date": 1700000000}

    encrypted = cipher.encrypt_payload(payload)

    assert "refresh_token" not in encrypted
    assert cipher.decrypt_payload(encrypted) == payload


def test_token_cipher_rejects_bad_ciphertext() -> None:
    cipher = TokenCipherService(secret="another-secret")

    with pytest.raises(ValueError):
        cipher.decrypt("not-valid")


def test_token_cipher_rejects_other_secret() -> None:
    encrypted = TokenCipherService(secret="one").encrypt("value")

    with pytest.raises(ValueError):
        TokenCipherService(secret="two").decrypt(encrypted)


def test_token_cipher_requires_secret() -> None:
    with pytest.raises(ValueError):
        TokenCipherService(secret="")
