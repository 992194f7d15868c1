"""Encryption at rest for key/value settings with override precedence."""

from .crypto import (
    DEFAULT_PREFIX,
    CipherEngine,
    CipherError,
    ConfigurationError,
    EncryptionError,
    KeyMaterial,
    MalformedTokenError,
    RandomnessError,
)
from .overrides import CallableOverrides, EnvironmentOverrides, NoOverrides
from .resolver import ValueProvenance, ValueResolver, ValueSource, WriteResult, WriteStatus

__all__ = [
    "DEFAULT_PREFIX",
    "CallableOverrides",
    "CipherEngine",
    "CipherError",
    "ConfigurationError",
    "EncryptionError",
    "EnvironmentOverrides",
    "KeyMaterial",
    "MalformedTokenError",
    "NoOverrides",
    "RandomnessError",
    "ValueProvenance",
    "ValueResolver",
    "ValueSource",
    "WriteResult",
    "WriteStatus",
]
