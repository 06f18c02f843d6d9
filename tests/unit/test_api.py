"""
Unit tests for the HTTP API.

The app is built with create_app() and its dependencies are overridden:
a credential store under tmp_path and one shared in-memory storage
client. Requests go through FastAPI's TestClient.
"""

import pytest
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient

from r2explorer.api import dependencies
from r2explorer.api.dependencies import get_client_factory, get_credential_store
from r2explorer.config.settings import Settings, get_settings
from r2explorer.core.explorer import NetworkError
from r2explorer.infrastructure.credentials import CredentialStore, SecretCipher
from r2explorer.infrastructure.storage import MockStorageClient
from r2explorer.main import create_app


ACCOUNT = {
    "name": "Work",
    "account_id": "tenant-1",
    "access_key_id": "AKIA",
    "secret_access_key": "secret",
}


class UnreachableClient(MockStorageClient):
    async def list_buckets(self):
        raise NetworkError("Could not reach storage endpoint")


@pytest.fixture
def storage() -> MockStorageClient:
    return MockStorageClient()


@pytest.fixture
def store(tmp_path) -> CredentialStore:
    return CredentialStore(config_dir=tmp_path, cipher=SecretCipher(Fernet.generate_key()))


@pytest.fixture
def app(store, storage, monkeypatch):
    app = create_app()
    # the readiness check opens the store itself
    monkeypatch.setattr(dependencies, "_credential_store", store)
    app.dependency_overrides[get_credential_store] = lambda: store
    app.dependency_overrides[get_client_factory] = lambda: (lambda *credentials: storage)
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def account(client) -> str:
    response = client.put("/api/v1/accounts/work", json=ACCOUNT)
    assert response.status_code == 204
    return "work"


@pytest.fixture
def bucket(client, account) -> str:
    response = client.post(f"/api/v1/accounts/{account}/buckets", json={"name": "media"})
    assert response.status_code == 201
    return f"/api/v1/accounts/{account}/buckets/media"


# ---------------------------------------------------------------------------
# Health Tests
# ---------------------------------------------------------------------------

class TestHealth:
    """Tests for liveness and readiness."""

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_readiness(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_when_config_is_corrupt(self, client, store):
        store.path.write_text("{broken")

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"][0]["status"] == "error"

    def test_not_ready_when_config_dir_cannot_be_created(self, app, client, tmp_path, monkeypatch):
        """A config dir under a regular file is a readiness failure, not a 500."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        monkeypatch.setattr(dependencies, "_credential_store", None)
        app.dependency_overrides[get_settings] = lambda: Settings(
            config_dir=blocker / "r2explorer",
            credential_key=Fernet.generate_key().decode(),
        )

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"][0]["name"] == "credential_store"
        assert body["checks"][0]["status"] == "error"
        assert "configuration directory" in body["checks"][0]["error"]


# ---------------------------------------------------------------------------
# Routing Tests
# ---------------------------------------------------------------------------

class TestRouting:
    """Tests for how settings shape the URL space."""

    @pytest.fixture
    def reset_settings(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_api_version_sets_route_prefix(self, reset_settings, store, storage, monkeypatch):
        monkeypatch.setenv("API_VERSION", "v2")
        app = create_app()
        app.dependency_overrides[get_credential_store] = lambda: store
        app.dependency_overrides[get_client_factory] = lambda: (lambda *credentials: storage)
        client = TestClient(app)

        assert client.get("/api/v2/accounts").status_code == 200
        assert client.get("/api/v1/accounts").status_code == 404


# ---------------------------------------------------------------------------
# Account Tests
# ---------------------------------------------------------------------------

class TestAccountEndpoints:
    """Tests for /api/v1/accounts."""

    def test_save_and_list(self, client, account):
        response = client.get("/api/v1/accounts")

        assert response.status_code == 200
        assert response.json() == [{"id": "work", "name": "Work", "account_id": "tenant-1"}]

    def test_secrets_are_never_returned(self, client, account):
        body = client.get("/api/v1/accounts").text

        assert "secret" not in body
        assert "AKIA" not in body

    def test_save_requires_credentials(self, client):
        response = client.put(
            "/api/v1/accounts/work",
            json={**ACCOUNT, "secret_access_key": ""},
        )
        assert response.status_code == 422

    def test_delete(self, client, account):
        assert client.delete(f"/api/v1/accounts/{account}").status_code == 204
        assert client.get("/api/v1/accounts").json() == []

    def test_delete_unknown_account_succeeds(self, client):
        assert client.delete("/api/v1/accounts/nope").status_code == 204

    def test_validate(self, client):
        payload = {k: ACCOUNT[k] for k in ("account_id", "access_key_id", "secret_access_key")}

        response = client.post("/api/v1/accounts/validate", json=payload)

        assert response.status_code == 200
        assert response.json() == {"valid": True}

    def test_validate_offline(self, app, client):
        app.dependency_overrides[get_client_factory] = (
            lambda: (lambda *credentials: UnreachableClient())
        )
        payload = {k: ACCOUNT[k] for k in ("account_id", "access_key_id", "secret_access_key")}

        response = client.post("/api/v1/accounts/validate", json=payload)

        assert response.status_code == 503
        assert response.json()["kind"] == "NetworkError"


# ---------------------------------------------------------------------------
# Bucket Tests
# ---------------------------------------------------------------------------

class TestBucketEndpoints:
    """Tests for bucket routes."""

    def test_unknown_account(self, client):
        response = client.get("/api/v1/accounts/nope/buckets")

        assert response.status_code == 404
        assert response.json()["kind"] == "AccountNotFound"

    def test_list(self, client, account, bucket):
        response = client.get(f"/api/v1/accounts/{account}/buckets")

        assert response.status_code == 200
        assert [b["name"] for b in response.json()] == ["media"]

    def test_info(self, client, bucket):
        response = client.get(bucket)

        assert response.status_code == 200
        assert response.json() == {"name": "media", "creation_date": None}

    def test_info_for_missing_bucket(self, client, account):
        response = client.get(f"/api/v1/accounts/{account}/buckets/missing")

        assert response.status_code == 404
        assert response.json()["kind"] == "BucketNotFound"

    def test_delete_non_empty_bucket(self, client, storage, bucket):
        storage._buckets["media"]["a.txt"] = b"a"

        response = client.delete(bucket)

        assert response.status_code == 502
        assert response.json()["kind"] == "SdkError"

    def test_delete(self, client, account, bucket):
        assert client.delete(bucket).status_code == 204
        assert client.get(f"/api/v1/accounts/{account}/buckets").json() == []


# ---------------------------------------------------------------------------
# Object Tests
# ---------------------------------------------------------------------------

class TestObjectEndpoints:
    """Tests for listing, folders, deletes and presigned URLs."""

    def test_folder_listing(self, client, bucket):
        assert client.post(f"{bucket}/folders", json={"path": "a"}).status_code == 201
        client.post(f"{bucket}/folders", json={"path": "a/nested/"})

        root = client.get(f"{bucket}/objects").json()
        inside = client.get(f"{bucket}/objects", params={"prefix": "a"}).json()

        assert [(e["key"], e["is_folder"]) for e in root] == [("a/", True)]
        assert [(e["key"], e["name"]) for e in inside] == [("a/nested/", "nested")]

    def test_create_folder_response(self, client, bucket):
        response = client.post(f"{bucket}/folders", json={"path": "photos/2024"})

        assert response.json()["key"] == "photos/2024/"
        assert response.json()["name"] == "2024"

    def test_max_pages_must_be_positive(self, client, bucket):
        response = client.get(f"{bucket}/objects", params={"max_pages": 0})
        assert response.status_code == 422

    def test_delete_one_and_many(self, client, storage, bucket):
        for key in ("a.txt", "b.txt", "c.txt"):
            storage._buckets["media"][key] = b"x"

        assert client.delete(f"{bucket}/objects", params={"key": "a.txt"}).status_code == 204
        response = client.post(f"{bucket}/objects/delete", json={"keys": ["b.txt", "c.txt"]})

        assert response.status_code == 204
        assert client.get(f"{bucket}/objects").json() == []

    def test_presign_uses_default_expiry(self, client, bucket):
        response = client.get(f"{bucket}/presign", params={"key": "a.txt"})

        assert response.status_code == 200
        assert response.json()["expires_in"] == 3600

    def test_presign_with_expiry(self, client, bucket):
        response = client.get(f"{bucket}/presign", params={"key": "a.txt", "expires_in": 60})

        assert response.json() == {
            "url": "mock://storage/media/a.txt?expires=60",
            "expires_in": 60,
        }


# ---------------------------------------------------------------------------
# Transfer Tests
# ---------------------------------------------------------------------------

class TestTransferEndpoints:
    """Tests for upload and download routes."""

    def test_upload_then_download(self, client, bucket, tmp_path):
        source = tmp_path / "hello.txt"
        source.write_text("hello")
        target = tmp_path / "out" / "hello.txt"

        upload = client.post(
            f"{bucket}/upload",
            json={"key": "hello.txt", "local_file_path": str(source)},
        )
        download = client.post(
            f"{bucket}/download",
            json={"key": "hello.txt", "local_save_path": str(target)},
        )

        assert upload.status_code == 201
        assert download.status_code == 200
        assert target.read_text() == "hello"

    def test_upload_missing_file(self, client, bucket, tmp_path):
        response = client.post(
            f"{bucket}/upload",
            json={"key": "a.txt", "local_file_path": str(tmp_path / "missing.txt")},
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "TransferError"

    def test_download_missing_object(self, client, bucket, tmp_path):
        response = client.post(
            f"{bucket}/download",
            json={"key": "missing.txt", "local_save_path": str(tmp_path / "a.txt")},
        )

        assert response.status_code == 404
        assert response.json()["kind"] == "ObjectNotFound"
