import uuid

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, create_engine

from image_vault.config import settings
from image_vault.database import create_db_and_tables
from image_vault.infrastructure.persistence.memory.image_record_repository_memory import InMemoryImageRecordRepository
from image_vault.infrastructure.persistence.sqlalchemy.repositories.image_record_repository_sql import SqlImageRecordRepository
from image_vault.main import app
from image_vault.routers.images_router import get_image_repository


@pytest.fixture
def repo():
    return InMemoryImageRecordRepository()


@pytest.fixture
def client(repo):
    app.dependency_overrides[get_image_repository] = lambda: repo
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _upload(client, data=b"0123456789", key="password123", name="hello.png"):
    return client.post(
        "/api/upload",
        files={"image": (name, data, "image/png")},
        data={"key": key},
    )


def test_upload_list_decrypt_scenario(client):
    resp = _upload(client)
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"]
    image_id = body["image"]["_id"]

    listed = client.get("/api/images").json()["images"]
    assert len(listed) == 1
    assert listed[0]["_id"] == image_id
    assert listed[0]["size"] == 10
    assert set(listed[0]) == {"_id", "originalName", "mimeType", "size", "uploadDate"}

    dec = client.post(f"/api/decrypt/{image_id}", json={"key": "password123"})
    assert dec.status_code == 200
    assert dec.content == b"0123456789"
    assert dec.headers["content-type"].startswith("image/png")
    assert 'filename="hello.png"' in dec.headers["content-disposition"]


def test_wrong_key_is_400_with_generic_message(client):
    image_id = _upload(client).json()["image"]["_id"]
    resp = client.post(f"/api/decrypt/{image_id}", json={"key": "wrongpass"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Decryption failed. Check your key."
    assert "wrongpass" not in resp.text


def test_short_key_rejected_on_upload(client, repo):
    resp = _upload(client, key="short")
    assert resp.status_code == 400
    assert "8 characters" in resp.json()["error"]
    assert repo.list() == []


def test_missing_file_rejected(client):
    resp = client.post("/api/upload", data={"key": "password123"})
    assert resp.status_code == 400


def test_unknown_id_is_404(client):
    resp = client.post(f"/api/decrypt/{uuid.uuid4()}", json={"key": "password123"})
    assert resp.status_code == 404
    assert client.delete(f"/api/images/{uuid.uuid4()}").status_code == 404


def test_malformed_id_is_400(client):
    assert client.post("/api/decrypt/not-a-uuid", json={"key": "password123"}).status_code == 400
    assert client.delete("/api/images/not-a-uuid").status_code == 400


def test_validation_error_does_not_echo_body(client):
    image_id = _upload(client).json()["image"]["_id"]
    resp = client.post(f"/api/decrypt/{image_id}", json={"key": ["super-secret-passphrase"]})
    assert resp.status_code == 400
    assert "super-secret-passphrase" not in resp.text


def test_delete_then_decrypt_is_404(client):
    image_id = _upload(client).json()["image"]["_id"]
    resp = client.delete(f"/api/images/{image_id}")
    assert resp.status_code == 200
    assert resp.json()["message"]
    assert client.get("/api/images").json()["images"] == []
    assert client.post(f"/api/decrypt/{image_id}", json={"key": "password123"}).status_code == 404


def test_non_ascii_filename_download(client):
    image_id = _upload(client, name="café.png").json()["image"]["_id"]
    dec = client.post(f"/api/decrypt/{image_id}", json={"key": "password123"})
    assert dec.status_code == 200
    assert "filename*=UTF-8''caf%C3%A9.png" in dec.headers["content-disposition"]


def test_security_headers_present(client):
    resp = client.get("/api/images")
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["cache-control"] == "no-store"


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"]["ok"] is True


def test_oversize_upload_is_413(client, repo, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 1024)
    resp = _upload(client, data=b"x" * 1025)
    assert resp.status_code == 413
    assert resp.json()["success"] is False
    assert repo.list() == []
    assert _upload(client, data=b"x" * 1024).status_code == 201


def test_health_timestamp_is_utc(client):
    assert client.get("/health").json()["timestamp"].endswith("+00:00")


@pytest.fixture
def sql_client(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'api.db'}", connect_args={"check_same_thread": False})
    create_db_and_tables(bind=engine)

    def sql_repository():
        with Session(engine) as session:
            yield SqlImageRecordRepository(session)

    app.dependency_overrides[get_image_repository] = sql_repository
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    engine.dispose()


def test_sql_store_upload_list_decrypt_delete(sql_client):
    resp = _upload(sql_client)
    assert resp.status_code == 201
    image_id = resp.json()["image"]["_id"]

    listed = sql_client.get("/api/images").json()["images"]
    assert [img["_id"] for img in listed] == [image_id]
    assert listed[0]["size"] == 10
    assert set(listed[0]) == {"_id", "originalName", "mimeType", "size", "uploadDate"}

    dec = sql_client.post(f"/api/decrypt/{image_id}", json={"key": "password123"})
    assert dec.status_code == 200
    assert dec.content == b"0123456789"

    wrong = sql_client.post(f"/api/decrypt/{image_id}", json={"key": "wrongpass"})
    assert wrong.status_code == 400

    assert sql_client.delete(f"/api/images/{image_id}").status_code == 200
    assert sql_client.post(f"/api/decrypt/{image_id}", json={"key": "password123"}).status_code == 404
