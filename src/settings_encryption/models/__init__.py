from settings_encryption.models.base import Base
from settings_encryption.models.stored_value import ExpiringValue, OwnerValue, StoredValue

__all__ = [
    "Base",
    "ExpiringValue",
    "OwnerValue",
    "StoredValue",
]
