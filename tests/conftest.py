"""Pytest configuration and shared fixtures for the admin panel tests."""

import io

import pytest

from shopadmin import create_app

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct-horse"
PUBLIC_URL = "http://localhost:3001"


@pytest.fixture
def app(tmp_path):
    """App on the JSON-file store with local uploads, both under tmp_path."""
    return create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "DATABASE_URL": None,
        "SUPABASE_URL": None,
        "SUPABASE_SERVICE_KEY": None,
        "DATA_DIR": str(tmp_path / "data"),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "PUBLIC_URL": PUBLIC_URL,
        "ADMIN_EMAIL": ADMIN_EMAIL,
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
        "ADMIN_NAME": "Test Admin",
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def store(app):
    return app.extensions["store"]


@pytest.fixture
def auth_headers(client):
    resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


@pytest.fixture
def make_image():
    """Build a multipart file tuple; each call gets a fresh stream."""
    def _make(name="photo.jpg", content=b"\xff\xd8fake-jpeg-bytes", content_type="image/jpeg"):
        return (io.BytesIO(content), name, content_type)
    return _make
