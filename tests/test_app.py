from fastapi.testclient import TestClient

from app.config import settings
from app.main import create_app


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_shutdown_clears_ephemeral_stores(stores):
    app = create_app(stores)
    with TestClient(app) as c:
        assert c.get("/health").status_code == 200
        stores.download_tokens.mint(1, 1, "pdf")
        stores.registrations.issue("a@example.com", name="A", password_hash="h")
        assert len(stores.download_tokens) == 1

    assert len(stores.download_tokens) == 0
    assert len(stores.registrations) == 0


def test_unknown_route_keeps_default_404(client):
    assert client.get("/api/v1/nope").status_code == 404


def test_error_detail_follows_app_env(stores, monkeypatch):
    app = create_app(stores)

    @app.get("/boom")
    def boom():
        raise RuntimeError("disk on fire")

    c = TestClient(app, raise_server_exceptions=False)
    res = c.get("/boom")
    assert res.status_code == 500
    assert res.json()["error"]["details"] is None
    assert not hasattr(settings, "APP_DEBUG")

    monkeypatch.setattr(settings, "APP_ENV", "development")
    res = c.get("/boom")
    assert res.json()["error"]["details"][0]["message"] == "disk on fire"
