from datetime import UTC, datetime

import pytest

from dapp_ranker.features.rankings.registry import ApplicationRegistry
from dapp_ranker.models.domain.ranking_domain import RankingEntry

APP1 = "0xapp1"
APP2 = "0xapp2"
CETUS_A = "0xcetus-a"
CETUS_B = "0xcetus-b"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeRankingRepository:
    """In-memory stand-in for RankingRepository."""

    def __init__(self):
        self.rows: list[dict] = []
        self.fail_with: Exception | None = None
        self.replace_calls = 0
        self.deleted_untracked_with: list[str] | None = None

    async def replace_rankings(self, rankings) -> int:
        self.replace_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.rows = [
            {
                "rank_position": entry.rank,
                "package_id": entry.origin_id,
                "dapp_name": entry.display_name,
                "active_account_count": entry.active_account_count,
                "dapp_type": entry.category,
                "last_update": entry.computed_at,
            }
            for entry in rankings
        ]
        return len(self.rows)

    async def delete_untracked(self, tracked_package_ids) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        self.deleted_untracked_with = list(tracked_package_ids)
        before = len(self.rows)
        self.rows = [
            row
            for row in self.rows
            if row["package_id"] in tracked_package_ids and row["dapp_name"] != "Unknown DApp"
        ]
        return before - len(self.rows)

    async def fetch_rankings(self, limit=None) -> list[dict]:
        if self.fail_with is not None:
            raise self.fail_with
        rows = sorted(self.rows, key=lambda r: r["rank_position"])
        return rows if limit is None else rows[:limit]

    async def fetch_ranking(self, package_id):
        if self.fail_with is not None:
            raise self.fail_with
        return next((r for r in self.rows if r["package_id"] == package_id), None)

    async def delete_all(self) -> int:
        deleted = len(self.rows)
        self.rows = []
        return deleted


@pytest.fixture
def registry():
    return ApplicationRegistry.from_tuples(
        [
            (APP1, "App1", "DEX"),
            (APP2, "App2", "Lending"),
            (CETUS_A, "Cetus AMM", "DEX"),
            (CETUS_B, "Cetus AMM", "DEX"),
        ]
    )


@pytest.fixture
def base_time():
    return datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def fake_repository():
    return FakeRankingRepository()


@pytest.fixture
def sample_rankings(base_time):
    return [
        RankingEntry(1, APP1, "App1", 2, "DEX", base_time),
        RankingEntry(2, APP2, "App2", 1, "Lending", base_time),
    ]


@pytest.fixture
def clock(base_time):
    return FakeClock(base_time)
