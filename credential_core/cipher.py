"""
Field Cipher
============
Reversible encryption of personally identifiable fields.

Envelope format is ``ivHex:cipherHex`` (AES-256-CBC, PKCS7 padding). The key is
the SHA-256 digest of the configured secret. A fresh IV per call means the same
plaintext never encrypts to the same envelope, so envelopes are useless for
equality lookups; use ``credential_core.lookup`` for that.
"""

import hashlib
import os
from typing import Optional

import structlog
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .config import CredentialSettings
from .errors import ConfigurationError, DecryptionError

logger = structlog.get_logger(__name__)

IV_SIZE = 16
SEPARATOR = ":"


def derive_key(secret: str) -> bytes:
    """SHA-256 digest of the secret -> 32-byte AES-256 key."""
    return hashlib.sha256(secret.encode("utf-8")).digest()


class FieldCipher:
    """Encrypts and decrypts PII columns under a process-wide key."""

    def __init__(self, secret: Optional[str]):
        # A missing secret is allowed at construction; every operation fails closed.
        self._key = derive_key(secret) if secret else None

    @classmethod
    def from_settings(cls, settings: CredentialSettings) -> "FieldCipher":
        return cls(settings.require_encryption_key())

    @property
    def configured(self) -> bool:
        return self._key is not None

    def _require_key(self) -> bytes:
        if self._key is None:
            raise ConfigurationError("ENCRYPTION_KEY is not configured")
        return self._key

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a field value.

        Args:
            plaintext: Value to protect

        Returns:
            Envelope string ``ivHex:cipherHex``
        """
        key = self._require_key()
        iv = os.urandom(IV_SIZE)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return f"{iv.hex()}{SEPARATOR}{ciphertext.hex()}"

    def decrypt(self, envelope: str) -> str:
        """
        Decrypt an envelope produced by ``encrypt``.

        Raises:
            ConfigurationError: No key configured
            DecryptionError: Malformed envelope or wrong key
        """
        key = self._require_key()

        iv_hex, sep, cipher_hex = (envelope or "").partition(SEPARATOR)
        if not sep or not iv_hex or not cipher_hex:
            raise DecryptionError("Invalid encrypted data format")

        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(cipher_hex)
        except ValueError as e:
            raise DecryptionError("Envelope is not hex encoded") from e

        if len(iv) != IV_SIZE:
            raise DecryptionError("Invalid IV length")
        if len(ciphertext) % (algorithms.AES.block_size // 8):
            raise DecryptionError("Ciphertext is not a whole number of blocks")

        try:
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning("Field decryption failed", error_type=type(e).__name__)
            raise DecryptionError("Failed to decrypt the data") from e

    def encrypt_optional(self, plaintext: Optional[str]) -> Optional[str]:
        return None if plaintext is None else self.encrypt(plaintext)

    def decrypt_optional(self, envelope: Optional[str]) -> Optional[str]:
        return None if envelope is None else self.decrypt(envelope)
