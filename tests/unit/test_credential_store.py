"""
Unit tests for local credential persistence.

Every test gets its own config directory under tmp_path and a random
Fernet key, so nothing touches the real per-user configuration.
"""

import json
import threading

import pytest
from cryptography.fernet import Fernet

from r2explorer.core.explorer.models import Account
from r2explorer.infrastructure.credentials import (
    ConfigSerializationError,
    CredentialStore,
    SecretCipher,
)
from r2explorer.infrastructure.credentials.cipher import derive_key
from r2explorer.infrastructure.credentials.store import default_config_dir


def make_account(id="work", name="Work", secret="s3cr3t-value"):
    return Account(
        id=id,
        name=name,
        account_id=f"{id}-tenant",
        access_key_id=f"{id}-key",
        secret_access_key=secret,
    )


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher(Fernet.generate_key())


@pytest.fixture
def store(tmp_path, cipher) -> CredentialStore:
    return CredentialStore(config_dir=tmp_path / "r2-explorer", cipher=cipher)


# ---------------------------------------------------------------------------
# Cipher Tests
# ---------------------------------------------------------------------------

class TestSecretCipher:
    """Tests for sealing secrets."""

    def test_round_trip(self, cipher):
        token = cipher.encrypt("s3cr3t-value")

        assert token != "s3cr3t-value"
        assert cipher.decrypt(token) == "s3cr3t-value"

    def test_foreign_key_cannot_open(self, cipher):
        """A file copied from another machine yields no secret."""
        token = SecretCipher(Fernet.generate_key()).encrypt("s3cr3t-value")
        assert cipher.decrypt(token) is None

    def test_garbage_token(self, cipher):
        assert cipher.decrypt("not-a-token") is None
        assert cipher.decrypt("") is None

    def test_derived_key_is_stable(self):
        assert derive_key("machine-user") == derive_key("machine-user")
        assert derive_key("machine-user") != derive_key("other-user")


# ---------------------------------------------------------------------------
# Store Tests
# ---------------------------------------------------------------------------

class TestCredentialStore:
    """Tests for the account file."""

    def test_missing_file_means_no_accounts(self, store):
        assert store.get_accounts() == []
        assert store.get_account("work") is None

    def test_save_then_load(self, store):
        store.save_account(make_account())

        account = store.get_account("work")

        assert account is not None
        assert account.name == "Work"
        assert account.account_id == "work-tenant"
        assert account.access_key_id == "work-key"
        assert account.secret_access_key == "s3cr3t-value"

    def test_save_replaces_same_id(self, store):
        """Saving an existing id replaces it in place; no duplicates."""
        store.save_account(make_account("work", name="Old"))
        store.save_account(make_account("home"))
        store.save_account(make_account("work", name="New"))

        accounts = store.get_accounts()

        assert [a.id for a in accounts] == ["work", "home"]
        assert accounts[0].name == "New"

    def test_accounts_keep_insertion_order(self, store):
        for id in ("c", "a", "b"):
            store.save_account(make_account(id))

        assert [a.id for a in store.get_accounts()] == ["c", "a", "b"]

    def test_delete(self, store):
        store.save_account(make_account("work"))
        store.save_account(make_account("home"))

        store.delete_account("work")

        assert store.get_account("work") is None
        assert [a.id for a in store.get_accounts()] == ["home"]

    def test_delete_unknown_id_is_ignored(self, store):
        store.save_account(make_account())
        before = store.path.read_text()

        store.delete_account("nope")

        assert store.path.read_text() == before

    def test_secret_is_not_stored_in_plaintext(self, store):
        store.save_account(make_account(secret="s3cr3t-value"))

        content = store.path.read_text()
        entry = json.loads(content)["accounts"][0]

        assert "s3cr3t-value" not in content
        assert "secret_access_key" not in entry
        assert entry["secret_key_encrypted"]

    def test_file_layout(self, store):
        store.save_account(make_account())

        document = json.loads(store.path.read_text())

        assert store.path.name == "config.json"
        assert set(document["accounts"][0]) == {
            "id", "name", "account_id", "access_key_id", "secret_key_encrypted",
        }

    def test_other_handle_sees_changes(self, tmp_path, cipher):
        """Every call rereads the file; handles never cache."""
        first = CredentialStore(config_dir=tmp_path, cipher=cipher)
        second = CredentialStore(config_dir=tmp_path, cipher=cipher)

        first.save_account(make_account())

        assert second.get_account("work") is not None

    def test_unreadable_secret_becomes_empty(self, tmp_path, cipher):
        CredentialStore(config_dir=tmp_path, cipher=cipher).save_account(make_account())

        other = CredentialStore(config_dir=tmp_path, cipher=SecretCipher(Fernet.generate_key()))
        account = other.get_account("work")

        assert account is not None
        assert account.secret_access_key == ""

    def test_invalid_json(self, store):
        store.path.write_text("{not json")

        with pytest.raises(ConfigSerializationError):
            store.get_accounts()

    def test_malformed_entry(self, store):
        store.path.write_text(json.dumps({"accounts": [{"id": "work"}]}))

        with pytest.raises(ConfigSerializationError, match="missing"):
            store.get_accounts()

    def test_concurrent_saves_keep_every_account(self, tmp_path, cipher):
        """Saves from many threads never lose each other's entries."""
        ids = [f"account-{i}" for i in range(20)]

        def save(id):
            CredentialStore(config_dir=tmp_path, cipher=cipher).save_account(make_account(id))

        threads = [threading.Thread(target=save, args=(id,)) for id in ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        stored = CredentialStore(config_dir=tmp_path, cipher=cipher).get_accounts()
        assert sorted(a.id for a in stored) == sorted(ids)

    def test_no_temporary_files_left_behind(self, store):
        store.save_account(make_account())

        assert [p.name for p in store.path.parent.iterdir()] == ["config.json"]


class TestDefaultConfigDir:
    """Tests for resolving the per-user directory."""

    def test_honors_xdg_config_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert default_config_dir() == tmp_path / "r2-explorer"
