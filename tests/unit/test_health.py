"""
Tests for health check endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from dapp_ranker.config import load_settings
from dapp_ranker.main import app
from dapp_ranker.routes.dependencies import get_db_pool

client = TestClient(app)


class FakePool:
    def __init__(self, health: dict | None = None, error: Exception | None = None):
        self.health = health or {}
        self.error = error

    async def health_check(self) -> dict:
        if self.error is not None:
            raise self.error
        return self.health


@pytest.fixture
def app_settings(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    app.state.settings = load_settings(
        _env_file=None, DATABASE_URL="postgresql://ranker@localhost/ranker"
    )
    yield app.state.settings
    app.state.settings = None
    app.dependency_overrides.clear()


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "dapp-ranker"


def test_readyz_all_healthy(app_settings):
    pool = FakePool(
        {
            "healthy": True,
            "pool_stats": {"pool_size": 2, "pool_available": 1},
            "connection_time_ms": 1.5,
        }
    )
    app.dependency_overrides[get_db_pool] = lambda: pool

    response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["database"]["ok"] is True
    assert data["checks"]["database"]["pool_size"] == 2
    assert data["checks"]["configuration"]["ok"] is True
    assert data["checks"]["configuration"]["environment"] == "development"


def test_readyz_database_unhealthy(app_settings):
    pool = FakePool({"healthy": False, "error": "connection refused"})
    app.dependency_overrides[get_db_pool] = lambda: pool

    data = client.get("/readyz").json()

    assert data["overall_ok"] is False
    assert data["checks"]["database"]["ok"] is False
    assert data["checks"]["database"]["error"] == "connection refused"


def test_readyz_health_check_exception(app_settings):
    pool = FakePool(error=RuntimeError("pool closed"))
    app.dependency_overrides[get_db_pool] = lambda: pool

    data = client.get("/readyz").json()

    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "RuntimeError: pool closed"


def test_readyz_without_pool_or_settings():
    data = client.get("/readyz").json()

    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Database pool not configured"
    assert data["checks"]["configuration"]["issues"] == ["Settings not loaded"]
