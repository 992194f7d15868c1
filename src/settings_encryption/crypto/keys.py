"""Encryption key derivation.

The 32-byte AES key is always a SHA-256 digest of some key material. The
material is picked from the first available source:

1. key material passed explicitly by the caller,
2. the dedicated encryption secret,
3. the long-lived site secrets, concatenated in their configured order.

Empty values count as absent at every level.
"""

from __future__ import annotations

import hashlib

import structlog
from pydantic import BaseModel, SecretStr

from settings_encryption.crypto.errors import ConfigurationError

logger = structlog.get_logger()

KEY_LENGTH = 32


class KeyMaterial(BaseModel):
    """Fallback key sources used when no explicit key is supplied."""

    dedicated_secret: SecretStr | None = None
    site_secrets: list[SecretStr] = []

    def combined_site_secrets(self) -> str:
        return "".join(secret.get_secret_value() for secret in self.site_secrets)


def _digest(material: str | bytes) -> bytes:
    if isinstance(material, str):
        material = material.encode("utf-8")
    return hashlib.sha256(material).digest()


def derive_key(
    explicit: str | bytes | None = None,
    material: KeyMaterial | None = None,
) -> bytes:
    """Return the 32-byte encryption key for the first available source.

    Raises:
        ConfigurationError: if neither *explicit* nor *material* yields a
            non-empty secret.
    """
    if explicit:
        logger.debug("encryption_key_derived", source="explicit")
        return _digest(explicit)

    if material is not None:
        dedicated = material.dedicated_secret
        if dedicated is not None and dedicated.get_secret_value():
            logger.debug("encryption_key_derived", source="dedicated_secret")
            return _digest(dedicated.get_secret_value())

        combined = material.combined_site_secrets()
        if combined:
            logger.debug("encryption_key_derived", source="site_secrets")
            return _digest(combined)

    raise ConfigurationError(
        "Cannot derive an encryption key: no explicit key, dedicated "
        "secret, or site secrets are configured."
    )
