"""
Reversible protection for secrets stored in the config file.

Secrets are kept inline in the account entry, never in plaintext. They
are sealed with Fernet under a key derived from machine-specific data,
so the file is useless when copied to another machine or user. This is
obfuscation against casual inspection, not a vault: anyone running as
the same user on the same machine can derive the key.
"""

import base64
import logging
import os
import platform
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

MACHINE_ID_PATHS = ("/etc/machine-id", "/var/lib/dbus/machine-id")
KEY_SALT = b"r2-explorer-salt-v1"
KDF_ITERATIONS = 100_000


def derive_key(password: str, salt: bytes = KEY_SALT) -> bytes:
    """Derive a Fernet key from a password with PBKDF2-SHA256."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(password.encode()))


def _machine_id() -> str:
    for path in MACHINE_ID_PATHS:
        try:
            with open(path, "r") as f:
                machine_id = f.read().strip()
        except OSError:
            continue
        if machine_id:
            return machine_id
    # No machine id on this platform (macOS, Windows)
    return platform.node() or "default-machine"


def machine_key() -> bytes:
    """
    Key bound to this machine and user.

    Stable across runs without asking the user for anything, which is
    what an unattended desktop backend needs.
    """
    username = os.getenv("USER") or os.getenv("USERNAME") or "default-user"
    return derive_key(f"{_machine_id()}-{username}")


class SecretCipher:
    """Seals and opens secrets for the credential file."""

    def __init__(self, key: Optional[bytes] = None) -> None:
        self._fernet = Fernet(key or machine_key())

    def encrypt(self, secret: str) -> str:
        return self._fernet.encrypt(secret.encode()).decode()

    def decrypt(self, token: str) -> Optional[str]:
        """
        Open a sealed secret.

        Returns None when the token is empty, corrupt, or was sealed under
        another key (e.g. the file came from another machine).
        """
        if not token:
            return None
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except (InvalidToken, ValueError, UnicodeDecodeError) as e:
            logger.warning(
                "Could not decrypt stored secret",
                extra={"error": type(e).__name__},
            )
            return None
