"""Authenticated symmetric encryption for values at rest.

Security:
- AES-256-GCM with a fresh 12-byte nonce per value
- Stored form is base64(nonce + ciphertext + tag)
- Keys are never logged
"""

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
KEY_SIZE = 32


class DecryptionError(Exception):
    """Raised when a stored value cannot be authenticated or decoded."""


def parse_key(key_hex: str) -> bytes:
    """Parse a 32-byte hex encoded key.

    Raises:
        ValueError: If the key is not 64 hex characters.
    """
    try:
        key = bytes.fromhex(key_hex.strip())
    except ValueError:
        raise ValueError(
            "Encryption key must be hex encoded. Generate with: openssl rand -hex 32"
        ) from None
    if len(key) != KEY_SIZE:
        raise ValueError(
            "Encryption key must be 32 bytes hex (64 hex chars). "
            "Generate with: openssl rand -hex 32"
        )
    return key


class Cipher:
    """AES-256-GCM cipher bound to a single key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError("Cipher key must be 32 bytes")
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_hex(cls, key_hex: str) -> "Cipher":
        return cls(parse_key(key_hex))

    @classmethod
    def ephemeral(cls) -> "Cipher":
        """Create a cipher with a random key that lives only in this process."""
        return cls(AESGCM.generate_key(bit_length=256))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string.

        Returns:
            Base64-encoded nonce + ciphertext.
        """
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode(), None)
        return base64.b64encode(nonce + ciphertext).decode()

    def decrypt(self, encrypted: str) -> str:
        """Decrypt a value produced by :meth:`encrypt`.

        Raises:
            DecryptionError: If the value is malformed, was tampered with or
                was written under another key.
        """
        try:
            data = base64.b64decode(encrypted, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError(f"Invalid base64 payload: {e}") from e

        if len(data) <= NONCE_SIZE:
            raise DecryptionError("Payload too short")

        nonce, ciphertext = data[:NONCE_SIZE], data[NONCE_SIZE:]
        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext, None)
        except InvalidTag:
            raise DecryptionError("Authentication tag mismatch") from None

        try:
            return plaintext.decode()
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted payload is not UTF-8") from e


def load_cipher(key_hex: str | None = None) -> Cipher:
    """Build the process cipher from configuration.

    Args:
        key_hex: Hex key (default: from PAYCHAT_ENCRYPTION_KEY env)

    Returns:
        Cipher for the configured key, or an ephemeral one when no key is set
    """
    key_hex = key_hex or os.environ.get("PAYCHAT_ENCRYPTION_KEY")
    if not key_hex:
        logger.warning(
            "PAYCHAT_ENCRYPTION_KEY not configured; using an ephemeral key. "
            "Encrypted values will not survive a restart."
        )
        return Cipher.ephemeral()
    return Cipher.from_hex(key_hex)
