import pytest
from fastapi.testclient import TestClient

from dapp_ranker.db.helpers import DatabaseError
from dapp_ranker.main import app
from dapp_ranker.routes.dependencies import get_ranking_repository

client = TestClient(app)


@pytest.fixture
def repository(fake_repository, sample_rankings):
    fake_repository.rows = [
        {
            "rank_position": entry.rank,
            "package_id": entry.origin_id,
            "dapp_name": entry.display_name,
            "active_account_count": entry.active_account_count,
            "dapp_type": entry.category,
            "last_update": entry.computed_at,
        }
        for entry in sample_rankings
    ]
    app.dependency_overrides[get_ranking_repository] = lambda: fake_repository
    yield fake_repository
    app.dependency_overrides.clear()


def test_list_rankings(repository):
    response = client.get("/rankings")

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert data["limit"] == 20
    assert [r["display_name"] for r in data["rankings"]] == ["App1", "App2"]
    assert data["rankings"][0]["active_account_count"] == 2
    assert data["rankings"][0]["rank"] == 1


def test_list_rankings_respects_limit(repository):
    data = client.get("/rankings", params={"limit": 1}).json()

    assert data["count"] == 1
    assert data["rankings"][0]["origin_id"] == "0xapp1"


@pytest.mark.parametrize("limit", [0, 101])
def test_list_rankings_rejects_out_of_range_limit(repository, limit):
    response = client.get("/rankings", params={"limit": limit})

    assert response.status_code == 422


def test_get_single_ranking(repository):
    response = client.get("/rankings/0xapp2")

    assert response.status_code == 200
    data = response.json()
    assert data["display_name"] == "App2"
    assert data["category"] == "Lending"


def test_get_unranked_dapp_returns_404(repository):
    response = client.get("/rankings/0xunknown")

    assert response.status_code == 404


def test_database_error_returns_503(repository):
    repository.fail_with = DatabaseError("Query failed", operation="fetch_all")

    response = client.get("/rankings")

    assert response.status_code == 503


def test_no_database_pool_returns_503():
    response = client.get("/rankings")

    assert response.status_code == 503
