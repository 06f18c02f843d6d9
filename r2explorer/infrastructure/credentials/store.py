"""
Local, multi-account credential persistence.

Accounts live in one JSON document under the per-user configuration
directory:

    {"accounts": [{"id": ..., "name": ..., "account_id": ...,
                   "access_key_id": ..., "secret_key_encrypted": ...}]}

Entries keep insertion order. The secret is sealed with SecretCipher
before it touches the file.

Every read-modify-write cycle holds a lock shared by all stores pointing
at the same file, and writes go to a temporary file that atomically
replaces the old one. Concurrent saves in one process therefore never
lose each other's entries or leave a half-written file behind. Separate
processes are not coordinated.
"""

import json
import logging
import os
import platform
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

from ...core.explorer.models import Account
from .cipher import SecretCipher

logger = logging.getLogger(__name__)

APP_DIR_NAME = "r2-explorer"
CONFIG_FILE_NAME = "config.json"

ENTRY_FIELDS = ("id", "name", "account_id", "access_key_id")

_locks_guard = threading.Lock()
_path_locks: dict[Path, threading.Lock] = {}


class CredentialStoreError(Exception):
    """Raised when the credential file cannot be used."""
    kind = "CredentialStore"


class ConfigDirError(CredentialStoreError):
    """The per-user configuration directory cannot be resolved or created."""
    kind = "ConfigDir"


class ConfigIOError(CredentialStoreError):
    kind = "Io"


class ConfigSerializationError(CredentialStoreError):
    """The config file is not valid JSON or does not hold an account list."""
    kind = "Serialization"


def default_config_dir() -> Path:
    """
    Resolve this application's directory under the per-user config root.

    Honors XDG_CONFIG_HOME, then the platform convention: %APPDATA% on
    Windows, ~/Library/Application Support on macOS, ~/.config elsewhere.
    """
    try:
        config_home = os.environ.get("XDG_CONFIG_HOME")
        if config_home:
            root = Path(config_home).expanduser()
        elif os.name == "nt":
            root = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
        elif platform.system() == "Darwin":
            root = Path.home() / "Library" / "Application Support"
        else:
            root = Path.home() / ".config"
    except RuntimeError as e:
        # Path.home() raises when no home directory can be determined
        raise ConfigDirError(f"Could not resolve configuration directory: {e}")
    return root / APP_DIR_NAME


def _lock_for(path: Path) -> threading.Lock:
    with _locks_guard:
        return _path_locks.setdefault(path, threading.Lock())


class CredentialStore:
    """
    Handle on the credential file.

    Create one and pass it to whoever needs accounts. Every call rereads
    the file, so several handles on the same directory stay consistent.
    """

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        cipher: Optional[SecretCipher] = None,
    ) -> None:
        directory = Path(config_dir).expanduser() if config_dir else default_config_dir()

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigDirError(f"Could not create configuration directory {directory}: {e}")

        self._path = (directory / CONFIG_FILE_NAME).resolve()
        self._lock = _lock_for(self._path)
        self._cipher = cipher or SecretCipher()

        logger.debug("Opened credential store", extra={"path": str(self._path)})

    @property
    def path(self) -> Path:
        return self._path

    # -----------------------------------------------------------------------
    # File access
    # -----------------------------------------------------------------------

    def _load_entries(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []

        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigIOError(f"Could not read {self._path}: {e}")

        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigSerializationError(f"Invalid JSON in {self._path}: {e}")

        if not isinstance(document, dict):
            raise ConfigSerializationError(f"Expected an object in {self._path}")

        entries = document.get("accounts", [])
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise ConfigSerializationError(f"Malformed account list in {self._path}")

        for entry in entries:
            missing = [name for name in ENTRY_FIELDS if not isinstance(entry.get(name), str)]
            if missing:
                raise ConfigSerializationError(
                    f"Account entry in {self._path} is missing {', '.join(missing)}"
                )

        return entries

    def _save_entries(self, entries: list[dict[str, Any]]) -> None:
        content = json.dumps({"accounts": entries}, indent=2, ensure_ascii=False)

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=".config-",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(content)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._path)  # atomic on the same filesystem
        except OSError as e:
            raise ConfigIOError(f"Could not write {self._path}: {e}")
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()

    def _to_entry(self, account: Account) -> dict[str, Any]:
        return {
            "id": account.id,
            "name": account.name,
            "account_id": account.account_id,
            "access_key_id": account.access_key_id,
            "secret_key_encrypted": self._cipher.encrypt(account.secret_access_key),
        }

    def _to_account(self, entry: dict[str, Any]) -> Account:
        secret = self._cipher.decrypt(entry.get("secret_key_encrypted") or "")
        if secret is None:
            logger.warning(
                "Stored secret unreadable, using empty secret",
                extra={"account": entry["id"]},
            )
        return Account(
            id=entry["id"],
            name=entry["name"],
            account_id=entry["account_id"],
            access_key_id=entry["access_key_id"],
            secret_access_key=secret or "",
        )

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    def save_account(self, account: Account) -> None:
        """Insert or replace (matched by id) an account."""
        with self._lock:
            entries = self._load_entries()
            entry = self._to_entry(account)

            for index, existing in enumerate(entries):
                if existing["id"] == account.id:
                    entries[index] = entry
                    replaced = True
                    break
            else:
                entries.append(entry)
                replaced = False

            self._save_entries(entries)

        logger.info(
            "Saved account",
            extra={"account": account.id, "replaced": replaced},
        )

    def get_accounts(self) -> list[Account]:
        """All accounts, in insertion order, with secrets opened."""
        with self._lock:
            entries = self._load_entries()
        return [self._to_account(entry) for entry in entries]

    def get_account(self, account_id: str) -> Optional[Account]:
        """Look an account up by its local id. None when absent."""
        for account in self.get_accounts():
            if account.id == account_id:
                return account
        return None

    def delete_account(self, account_id: str) -> None:
        """Remove an account. Unknown ids are ignored."""
        with self._lock:
            entries = self._load_entries()
            remaining = [entry for entry in entries if entry["id"] != account_id]
            if len(remaining) == len(entries):
                return
            self._save_entries(remaining)

        logger.info("Deleted account", extra={"account": account_id})
