# tests/test_health.py
import logging

from fastapi.testclient import TestClient

from datefunnel import main
from datefunnel.config import get_settings
from datefunnel.main import app

client = TestClient(app)


def test_health_check():
    settings = get_settings()

    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data == {
        "status": "ok",
        "app": settings.APP_NAME,
        "env": settings.ENV,
        "database": "ok",
    }
    assert app.title == settings.APP_NAME


def test_scheduling_routes_are_mounted():
    paths = {route.path for route in app.routes}

    assert "/trips/{trip_id}" in paths
    assert "/trips/{trip_id}/windows" in paths
    assert "/trips/{trip_id}/date-proposal" in paths
    assert "/trips/{trip_id}/lock" in paths


def test_startup_is_logged(caplog):
    caplog.set_level(logging.INFO, logger="datefunnel.main")

    with TestClient(app) as started:
        assert started.get("/health").status_code == 200

    assert any(
        r.name == "datefunnel.main" and "started (env=" in r.getMessage()
        for r in caplog.records
    )


def test_database_failure_degrades_health(monkeypatch, caplog):
    class _BrokenEngine:
        def connect(self):
            raise RuntimeError("database is gone")

    monkeypatch.setattr(main, "engine", _BrokenEngine())

    with caplog.at_level(logging.ERROR, logger="datefunnel.main"):
        data = client.get("/health").json()

    assert data["status"] == "degraded"
    assert data["database"] == "error"
    assert "Database health check failed" in caplog.text
