from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from settings_encryption.crypto.engine import DEFAULT_PREFIX
from settings_encryption.crypto.keys import KeyMaterial


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SETTINGS_ENCRYPTION_")

    # Dedicated secret; wins over the site secrets below.
    encryption_key: SecretStr | None = None

    # Long-lived site secrets, combined in this order.
    auth_key: SecretStr | None = None
    secure_auth_key: SecretStr | None = None
    logged_in_key: SecretStr | None = None
    nonce_key: SecretStr | None = None

    token_prefix: str = DEFAULT_PREFIX
    namespace: str = ""

    database_url: str = "sqlite:///settings_encryption.db"
    log_json: bool = True
    log_level: str = "INFO"

    def key_material(self) -> KeyMaterial:
        site_secrets = [
            self.auth_key,
            self.secure_auth_key,
            self.logged_in_key,
            self.nonce_key,
        ]
        return KeyMaterial(
            dedicated_secret=self.encryption_key,
            site_secrets=[s for s in site_secrets if s is not None],
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
