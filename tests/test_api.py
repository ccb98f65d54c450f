"""HTTP-level tests with the owned catalog/store swapped for in-memory ones."""

import pytest
from fastapi.testclient import TestClient

from catalog.cache import DatasetCache
from catalog.router import get_catalog
from catalog.service import SheetCatalog
from core.errors import SourceUnavailable
from core.sheets import SAMPLE_ROWS, StaticSource
from main import app
from uploads.router import get_artifact_store
from uploads.stores import DriveArtifactStore


class BrokenSource:
    async def fetch(self):
        raise SourceUnavailable("Could not reach the dataset source: timed out")


@pytest.fixture
def catalog():
    return SheetCatalog(DatasetCache(StaticSource(SAMPLE_ROWS, "G1"), ttl_s=300))


@pytest.fixture
def client(catalog, fake_drive):
    store = DriveArtifactStore(fake_drive, root_folder_id="root", now_ms=lambda: 42)
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_artifact_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_search(client):
    resp = client.get("/api/search", params={"q": "999999"})
    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 1
    assert body[0]["title"] == "MLA999999"
    assert body[0]["envio"] == "Colecta"
    assert body[0]["agregados"] == []


def test_search_without_query_is_empty(client):
    assert client.get("/api/search").json() == []


def test_search_source_down_is_structured_error(client):
    app.dependency_overrides[get_catalog] = lambda: SheetCatalog(DatasetCache(BrokenSource()))
    resp = client.get("/api/search", params={"q": "mla"})
    assert resp.status_code == 503
    assert resp.json()["success"] is False
    assert resp.json()["code"] == "source_unavailable"


def test_shipments_and_refresh(client):
    assert client.get("/api/shipments").json() == [{"id": "G1", "name": "G1"}]
    assert client.post("/api/refresh").json() == {"success": True}


def test_upload_builds_folder_chain(client, fake_drive):
    resp = client.post(
        "/api/upload",
        data={"shipment_id": "G1", "item_id": "MLA1"},
        files={"file": ("caja.png", b"png-bytes", "image/png")},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["artifactRef"]["backend"] == "drive"

    [shipment_folder] = fake_drive.children("root")
    assert shipment_folder["name"] == "G1"
    [item_folder] = fake_drive.children(shipment_folder["id"])
    assert item_folder["name"] == "MLA1"
    assert [f["parent"] for f in fake_drive.files] == [item_folder["id"]]


def test_upload_missing_item_id_rejected_before_remote_calls(client, fake_drive):
    resp = client.post(
        "/api/upload",
        data={"shipment_id": "G1"},
        files={"file": ("caja.png", b"png-bytes", "image/png")},
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "missing_required_field"
    assert fake_drive.calls == []


def test_upload_over_limit_rejected(client, fake_drive, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "10")
    resp = client.post(
        "/api/upload",
        data={"shipment_id": "G1", "item_id": "MLA1"},
        files={"file": ("big.bin", b"x" * 100, "application/octet-stream")},
    )

    assert resp.status_code == 413
    assert resp.json()["code"] == "upload_too_large"
    assert fake_drive.calls == []


def test_upload_declared_size_rejected_before_reading(client, fake_drive, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "10")
    resp = client.post(
        "/api/upload",
        data={"shipment_id": "G1", "item_id": "MLA1"},
        files={"file": ("big.bin", b"x" * (128 * 1024), "application/octet-stream")},
    )

    assert resp.status_code == 413
    assert resp.json()["success"] is False
    assert fake_drive.calls == []


def test_upload_without_content_length_rejected_before_reading(client, fake_drive):
    def chunks():
        yield b"--b\r\nContent-Disposition: form-data; name=\"shipment_id\"\r\n\r\nG1\r\n"
        yield b"--b--\r\n"

    resp = client.post(
        "/api/upload",
        content=chunks(),
        headers={"content-type": "multipart/form-data; boundary=b"},
    )

    assert resp.status_code == 411
    assert resp.json()["code"] == "length_required"
    assert fake_drive.calls == []


def test_upload_without_configured_store(catalog):
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.state.artifact_store = None
    try:
        resp = TestClient(app).post(
            "/api/upload",
            data={"shipment_id": "G1", "item_id": "MLA1"},
            files={"file": ("a.png", b"x", "image/png")},
        )
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json()["code"] == "unsupported_backend"
