"""Token encryption: key derivation, AES-256-CBC engine, error types."""

from .engine import DEFAULT_PREFIX, CipherEngine
from .errors import (
    CipherError,
    ConfigurationError,
    EncryptionError,
    MalformedTokenError,
    RandomnessError,
)
from .keys import KeyMaterial, derive_key

__all__ = [
    "DEFAULT_PREFIX",
    "CipherEngine",
    "CipherError",
    "ConfigurationError",
    "EncryptionError",
    "KeyMaterial",
    "MalformedTokenError",
    "RandomnessError",
    "derive_key",
]
