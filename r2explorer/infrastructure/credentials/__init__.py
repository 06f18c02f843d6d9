"""
Local credential persistence for storage accounts.
"""

from .cipher import SecretCipher
from .store import (
    ConfigDirError,
    ConfigIOError,
    ConfigSerializationError,
    CredentialStore,
    CredentialStoreError,
)

__all__ = [
    "ConfigDirError",
    "ConfigIOError",
    "ConfigSerializationError",
    "CredentialStore",
    "CredentialStoreError",
    "SecretCipher",
]
