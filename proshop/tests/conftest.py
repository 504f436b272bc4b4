import io
import uuid

import pytest
from PIL import Image

from proshop import create_app
from proshop.models import db

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Admin123!pass"


def build_test_app(tmp_path, monkeypatch, overrides=None):
    db_path = tmp_path / f"proshop_test_{uuid.uuid4().hex[:8]}.db"
    media_path = tmp_path / f"media_{uuid.uuid4().hex[:8]}"

    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.delenv("ADMIN_USERNAME", raising=False)
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)

    config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "MEDIA_ROOT": str(media_path),
        "MEDIA_PUBLIC_BASE_URL": "/media",
        "SEED_SAMPLE_CONTENT": False,
        "GEMINI_API_KEY": "",
        "LOG_JSON": False,
    }
    if overrides:
        config.update(overrides)
    return create_app(config)


def png_bytes(size=(4, 4), color=(0, 120, 200)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def app(tmp_path, monkeypatch):
    app = build_test_app(tmp_path, monkeypatch)
    yield app
    with app.app_context():
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


def refresh_csrf(client, token):
    client.environ_base["HTTP_X_CSRF_TOKEN"] = token


@pytest.fixture()
def admin_client(client):
    refresh_csrf(client, client.get("/admin/session").get_json()["csrf_token"])
    response = client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    # Signing in starts a fresh session, so the token rotates.
    refresh_csrf(client, response.get_json()["csrf_token"])
    return client
