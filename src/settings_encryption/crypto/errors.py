"""Exception hierarchy for token encryption and key configuration."""

from __future__ import annotations


class EncryptionError(Exception):
    """Base class for every error raised by the cipher engine."""


class RandomnessError(EncryptionError):
    """The secure random source could not produce an IV."""


class CipherError(EncryptionError):
    """The AES backend rejected the input, the key, or the padding."""


class MalformedTokenError(EncryptionError):
    """A prefixed value is not valid base64 or has an impossible length."""


class ConfigurationError(EncryptionError):
    """No key material is available to derive an encryption key from."""
