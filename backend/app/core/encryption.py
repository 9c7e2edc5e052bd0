"""Asymmetric encryption of bank account numbers.

Account numbers are encrypted with the public key on write. Decryption needs
the private key and its passphrase, which the web process does not hold at
rest, so plaintext only exists transiently during validation or when a payout
adapter asks for it.
"""
from __future__ import annotations

import hashlib
import hmac
import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from app.core.config import settings

logger = logging.getLogger(__name__)

_OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)


class EncryptionKeyUnavailable(RuntimeError):
    pass


class AccountNumberCipher:
    def __init__(self, public_key_pem: str | bytes, private_key_pem: str | bytes | None = None):
        self._public_key_pem = _as_bytes(public_key_pem)
        self._private_key_pem = _as_bytes(private_key_pem) if private_key_pem else None

    @classmethod
    def from_settings(cls) -> "AccountNumberCipher":
        return cls(settings.bank_account_public_key, settings.bank_account_private_key or None)

    def encrypt_with_public_key(self, plaintext: str) -> bytes:
        if not self._public_key_pem:
            raise EncryptionKeyUnavailable("bank account public key is not configured")
        try:
            key = serialization.load_pem_public_key(self._public_key_pem)
        except (ValueError, UnsupportedAlgorithm) as e:
            logger.exception("bank account public key could not be loaded")
            raise EncryptionKeyUnavailable("bank account public key is invalid") from e
        return key.encrypt(plaintext.encode("utf-8"), _OAEP)

    def decrypt(self, ciphertext: bytes, passphrase: str) -> str:
        if not self._private_key_pem:
            raise EncryptionKeyUnavailable("bank account private key is not configured")
        try:
            key = serialization.load_pem_private_key(
                self._private_key_pem,
                password=passphrase.encode("utf-8") if passphrase else None,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise EncryptionKeyUnavailable("bank account private key could not be opened") from e
        try:
            plaintext = key.decrypt(ciphertext, _OAEP)
        except ValueError as e:
            logger.exception("stored account number does not match the bank account private key")
            raise EncryptionKeyUnavailable("account number could not be decrypted with the configured key") from e
        return plaintext.decode("utf-8")


def account_number_fingerprint(account_number: str, secret: str | None = None) -> str:
    key = (secret if secret is not None else settings.account_fingerprint_secret).encode("utf-8")
    return hmac.new(key, account_number.encode("utf-8"), hashlib.sha256).hexdigest()


def _as_bytes(v: str | bytes) -> bytes:
    if isinstance(v, bytes):
        return v
    return (v or "").encode("utf-8")
