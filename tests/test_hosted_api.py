"""
HTTP tests for the hosted configuration: authentication gate, classification
requirement and health reporting, with in-memory adapters.
"""

from collections.abc import Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from dal.hosted_block_dal import HostedBlockDAL
from main import create_app
from tests.conftest import block_form
from tests.fakes import FakeAuthenticator, FakeBlobStore, FakeBlockStore
from utils.settings import Settings

AUTH = {"Authorization": f"Bearer {FakeAuthenticator.VALID_TOKEN}"}


@pytest.fixture
def store() -> FakeBlockStore:
    return FakeBlockStore()


@pytest.fixture
def blobs() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def hosted_api(store, blobs) -> Generator[TestClient, None, None]:
    settings = Settings(
        backend="hosted",
        supabase_url="https://project.example.test",
        supabase_anon_key="anon-key",
        supabase_service_key="service-key",
    )
    app = create_app(settings, block_store=store, blob_store=blobs, authenticator=FakeAuthenticator())
    with TestClient(app) as client:
        yield client


class TestAuthenticationGate:
    @pytest.mark.parametrize("path", ["/api/blocks", "/api/blocks/1", "/api/blocks/search/x"])
    def test_reads_require_a_token(self, hosted_api: TestClient, path: str):
        response = hosted_api.get(path)

        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_mutations_require_a_token(self, hosted_api: TestClient, store: FakeBlockStore):
        assert hosted_api.post("/api/blocks", data=block_form(classification="A")).status_code == 401
        assert hosted_api.put("/api/blocks/1", data={"material": "x"}).status_code == 401
        assert hosted_api.delete("/api/blocks/1").status_code == 401
        assert store.rows == {}

    def test_invalid_token_is_rejected(self, hosted_api: TestClient):
        response = hosted_api.get("/api/blocks", headers={"Authorization": "Bearer expired"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or expired token"}

    def test_non_bearer_scheme_is_rejected(self, hosted_api: TestClient):
        response = hosted_api.get("/api/blocks", headers={"Authorization": f"Basic {FakeAuthenticator.VALID_TOKEN}"})

        assert response.status_code == 401

    def test_valid_token_is_accepted(self, hosted_api: TestClient):
        response = hosted_api.get("/api/blocks", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == []

    def test_health_and_config_are_public(self, hosted_api: TestClient):
        assert hosted_api.get("/health").status_code == 200
        assert hosted_api.get("/api/config").json() == {
            "supabaseUrl": "https://project.example.test",
            "supabaseKey": "anon-key",
            "authRequired": True,
        }


class TestHostedCrud:
    def test_classification_is_required(self, hosted_api: TestClient):
        response = hosted_api.post("/api/blocks", data=block_form(), headers=AUTH)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_create_returns_public_photo_url(self, hosted_api: TestClient, png_bytes: bytes):
        response = hosted_api.post(
            "/api/blocks",
            data=block_form(classification="Extra"),
            files={"photo_right": ("r.png", png_bytes, "image/png")},
            headers=AUTH,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["classification"] == "Extra"
        assert body["photo_right"].startswith(FakeBlobStore.BASE)
        assert body["photo_urls"] == {"right": body["photo_right"]}

    def test_delete_removes_blobs(self, hosted_api: TestClient, blobs: FakeBlobStore, png_bytes: bytes):
        body = hosted_api.post(
            "/api/blocks",
            data=block_form(classification="Extra"),
            files={"photo_front": ("f.png", png_bytes, "image/png")},
            headers=AUTH,
        ).json()

        response = hosted_api.delete(f"/api/blocks/{body['id']}", headers=AUTH)

        assert response.status_code == 200
        assert blobs.deleted == [body["photo_front"]]
        assert blobs.blobs == {}

    def test_duplicate_code_discards_uploaded_blob(self, hosted_api: TestClient, blobs: FakeBlobStore, png_bytes: bytes):
        form = block_form(classification="Extra")
        photo = {"photo_front": ("f.png", png_bytes, "image/png")}
        first = hosted_api.post("/api/blocks", data=form, files=photo, headers=AUTH).json()

        second = hosted_api.post("/api/blocks", data=form, files=photo, headers=AUTH)

        assert second.status_code == 400
        assert list(blobs.blobs) == [first["photo_front"]]

    def test_update_keeps_classification_when_omitted(self, hosted_api: TestClient):
        created = hosted_api.post("/api/blocks", data=block_form(classification="Extra"), headers=AUTH).json()

        updated = hosted_api.put(f"/api/blocks/{created['id']}", data={"length": "3.5"}, headers=AUTH).json()

        assert updated["classification"] == "Extra"
        assert updated["length"] == 3.5


class TestHostedHealth:
    def test_unreachable_store_returns_503(self, hosted_api: TestClient, store: FakeBlockStore):
        store.available = False

        response = hosted_api.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "unreachable"

    def test_rejected_service_key_returns_503(self, blobs: FakeBlobStore):
        settings = Settings(
            backend="hosted",
            supabase_url="https://project.example.test",
            supabase_anon_key="anon-key",
            supabase_service_key="wrong-key",
        )
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"message": "Invalid API key"}))
        store = HostedBlockDAL(httpx.AsyncClient(transport=transport), settings.supabase_url, "wrong-key")
        app = create_app(settings, block_store=store, blob_store=blobs, authenticator=FakeAuthenticator())

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "ERROR"
        assert response.json()["database"] == "unreachable"
