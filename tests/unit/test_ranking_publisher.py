import pytest

from dapp_ranker.db.helpers import DatabaseError
from dapp_ranker.features.rankings.services import RankingPublisher


@pytest.mark.asyncio
async def test_publish_replaces_snapshot(registry, fake_repository, sample_rankings):
    publisher = RankingPublisher(fake_repository, registry)

    assert await publisher.publish(sample_rankings) is True
    assert await publisher.publish(sample_rankings[:1]) is True

    assert [row["package_id"] for row in fake_repository.rows] == ["0xapp1"]


@pytest.mark.asyncio
async def test_publish_failure_is_reported_not_raised(registry, fake_repository, sample_rankings):
    publisher = RankingPublisher(fake_repository, registry)
    await publisher.publish(sample_rankings)
    fake_repository.fail_with = DatabaseError("Transaction failed", operation="transaction")

    assert await publisher.publish([]) is False

    assert len(fake_repository.rows) == 2


@pytest.mark.asyncio
async def test_cleanup_removes_untracked_and_unknown_rows(
    registry, fake_repository, sample_rankings, base_time
):
    fake_repository.rows = [
        {
            "rank_position": 1,
            "package_id": "0xretired",
            "dapp_name": "Retired",
            "active_account_count": 5,
            "dapp_type": "DEX",
            "last_update": base_time,
        },
        {
            "rank_position": 2,
            "package_id": "0xapp2",
            "dapp_name": "Unknown DApp",
            "active_account_count": 1,
            "dapp_type": "Unknown",
            "last_update": base_time,
        },
        {
            "rank_position": 3,
            "package_id": "0xapp1",
            "dapp_name": "App1",
            "active_account_count": 1,
            "dapp_type": "DEX",
            "last_update": base_time,
        },
    ]
    publisher = RankingPublisher(fake_repository, registry)

    deleted = await publisher.cleanup()

    assert deleted == 2
    assert fake_repository.deleted_untracked_with == registry.origin_ids
    assert [row["package_id"] for row in fake_repository.rows] == ["0xapp1"]


@pytest.mark.asyncio
async def test_cleanup_failure_returns_none(registry, fake_repository):
    fake_repository.fail_with = DatabaseError("Query failed", operation="execute")

    assert await RankingPublisher(fake_repository, registry).cleanup() is None


@pytest.mark.asyncio
async def test_load_restores_registered_entries(registry, fake_repository, sample_rankings):
    publisher = RankingPublisher(fake_repository, registry)
    await publisher.publish(sample_rankings)
    fake_repository.rows.append({**fake_repository.rows[0], "package_id": "0xretired"})

    loaded = await publisher.load()

    assert loaded == sample_rankings


@pytest.mark.asyncio
async def test_load_failure_starts_empty(registry, fake_repository):
    fake_repository.fail_with = DatabaseError("Query failed", operation="fetch_all")

    assert await RankingPublisher(fake_repository, registry).load() == []


@pytest.mark.asyncio
async def test_reset_deletes_everything(registry, fake_repository, sample_rankings):
    publisher = RankingPublisher(fake_repository, registry)
    await publisher.publish(sample_rankings)

    assert await publisher.reset() == 2
    assert fake_repository.rows == []
