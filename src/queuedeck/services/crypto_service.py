"""Cryptography service for stored Redis credentials.

Passwords are encrypted with AES-256-GCM. The stored form is
``nonce:tag:ciphertext`` with every segment hex-encoded, so decryption only
needs the process-wide key.
"""

from __future__ import annotations

import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from queuedeck.errors import (
    ConfigurationError,
    CredentialCryptoError,
    CredentialFormatError,
    InvalidArgumentError,
)

logger = logging.getLogger(__name__)

NONCE_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32

# Development fallback. Anyone can derive this key; production must configure one.
FALLBACK_PASSPHRASE = b"fallback-password"
FALLBACK_SALT = b"salt"


def derive_fallback_key() -> bytes:
    """Derive the deterministic development key (scrypt N=16384, r=8, p=1)."""
    kdf = Scrypt(salt=FALLBACK_SALT, length=KEY_LENGTH, n=2**14, r=8, p=1)
    return kdf.derive(FALLBACK_PASSPHRASE)


def _parse_key(encryption_key: str) -> bytes:
    try:
        key = bytes.fromhex(encryption_key.strip())
    except ValueError as exc:
        raise ConfigurationError("Encryption key must be hex-encoded") from exc
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(
            f"Encryption key must be {KEY_LENGTH} bytes ({KEY_LENGTH * 2} hex characters)",
            details={"length": len(key)},
        )
    return key


def _unhex(segment: str, name: str) -> bytes:
    if not segment:
        raise CredentialFormatError(f"Invalid encrypted data format: empty {name}")
    try:
        return bytes.fromhex(segment)
    except ValueError as exc:
        raise CredentialFormatError(f"Invalid encrypted data format: {name} is not hex") from exc


class CryptoService:
    """Service for encrypting and decrypting Redis passwords."""

    def __init__(self, encryption_key: str = "", *, require_key: bool = False) -> None:
        """Initialize with an encryption key.

        Args:
            encryption_key: Hex-encoded 32-byte key. If empty, the deterministic
                development key is used unless ``require_key`` is set.
            require_key: Raise ConfigurationError instead of falling back.
        """
        if encryption_key:
            key = _parse_key(encryption_key)
        elif require_key:
            raise ConfigurationError("QUEUEDECK_ENCRYPTION_KEY is required but not set")
        else:
            logger.warning(
                "No encryption key configured; using the insecure development fallback key"
            )
            key = derive_fallback_key()
        self._aesgcm = AESGCM(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string.

        Args:
            plaintext: Non-empty string to encrypt.

        Returns:
            ``nonce:tag:ciphertext``, hex-encoded.
        """
        if not plaintext:
            raise InvalidArgumentError("Cannot encrypt an empty value")
        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, encrypted: str) -> str:
        """Decrypt a value produced by ``encrypt``.

        Raises:
            CredentialFormatError: Not exactly three non-empty hex segments.
            CredentialCryptoError: Integrity tag does not verify.
        """
        segments = encrypted.split(":")
        if len(segments) != 3:
            raise CredentialFormatError(
                "Invalid encrypted data format: expected nonce:tag:ciphertext"
            )
        nonce = _unhex(segments[0], "nonce")
        tag = _unhex(segments[1], "tag")
        ciphertext = _unhex(segments[2], "ciphertext")
        if len(nonce) != NONCE_LENGTH or len(tag) != TAG_LENGTH:
            raise CredentialFormatError("Invalid encrypted data format: bad nonce or tag length")

        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as exc:
            raise CredentialCryptoError() from exc
        return plaintext.decode("utf-8")
