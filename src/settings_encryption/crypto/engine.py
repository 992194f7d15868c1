"""AES-256-CBC token engine.

A token is ``prefix + base64(iv + ciphertext)``. The prefix only marks the
value as encrypted; it carries no security. The IV is 16 fresh random bytes
per call and the plaintext is PKCS#7 padded, which is what OpenSSL's
``aes-256-cbc`` produces, so tokens written by other OpenSSL-based
implementations with the same key decrypt here unchanged.

There is no authentication tag. A corrupted token usually fails the padding
check, but a bit flip can also decrypt to different text without any error.
"""

from __future__ import annotations

import base64
import binascii
import secrets

import structlog
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from settings_encryption.crypto.errors import (
    CipherError,
    MalformedTokenError,
    RandomnessError,
)
from settings_encryption.crypto.keys import KeyMaterial, derive_key

logger = structlog.get_logger()

DEFAULT_PREFIX = "__ENCRYPTED__"
IV_LENGTH = 16
BLOCK_SIZE_BITS = 128


def _random_iv() -> bytes:
    try:
        return secrets.token_bytes(IV_LENGTH)
    except (OSError, NotImplementedError) as e:
        raise RandomnessError(f"Failed to generate IV: {e}") from e


class CipherEngine:
    """Encrypts and decrypts strings into self-describing tokens.

    Args:
        key: Explicit key material. Hashed with SHA-256 into the AES key.
        prefix: Marker prepended to every token.
        key_material: Fallback sources used when *key* is empty, and again
            by :meth:`change_key` when called without a key.

    Raises:
        ConfigurationError: if no key can be derived.
    """

    def __init__(
        self,
        key: str | bytes | None = None,
        prefix: str = DEFAULT_PREFIX,
        *,
        key_material: KeyMaterial | None = None,
    ) -> None:
        if not prefix:
            raise ValueError("Token prefix must not be empty")
        self._key_material = key_material
        self._key = derive_key(key, key_material)
        self.prefix = prefix

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(iv))

    def encrypt(self, plaintext: str) -> str:
        """Return the token for *plaintext*; ``""`` is returned unchanged.

        Raises:
            RandomnessError: if no IV could be generated.
            CipherError: if the AES backend fails.
        """
        if not plaintext:
            return plaintext

        iv = _random_iv()
        try:
            padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            encryptor = self._cipher(iv).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        except ValueError as e:
            raise CipherError(f"Encryption failed: {e}") from e

        return self.prefix + base64.b64encode(iv + ciphertext).decode("ascii")

    def decrypt(self, value: str) -> str:
        """Return the plaintext behind *value*.

        Values without the prefix (including ``""``) are returned unchanged,
        so decrypting already-plain text is safe.

        Raises:
            MalformedTokenError: if the body is not base64 or is too short.
            CipherError: if decryption, unpadding or UTF-8 decoding fails.
        """
        if not value or not self.is_encrypted(value):
            return value

        body = value[len(self.prefix):]
        try:
            data = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedTokenError(f"Invalid encrypted data: {e}") from e

        iv, ciphertext = data[:IV_LENGTH], data[IV_LENGTH:]
        if len(iv) < IV_LENGTH or not ciphertext or len(ciphertext) % IV_LENGTH:
            raise MalformedTokenError(
                f"Invalid encrypted data: {len(data)} bytes is not an IV "
                "followed by whole cipher blocks"
            )

        try:
            decryptor = self._cipher(iv).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            raw = unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise CipherError(f"Decryption failed: {e}") from e

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CipherError(f"Decryption failed: {e}") from e

    def is_encrypted(self, value: str) -> bool:
        return value.startswith(self.prefix)

    def change_key(self, key: str | bytes | None = None) -> None:
        """Replace the in-memory key.

        Tokens written under the previous key are not migrated and will no
        longer decrypt.
        """
        self._key = derive_key(key, self._key_material)
        logger.info("encryption_key_changed", explicit=bool(key))
