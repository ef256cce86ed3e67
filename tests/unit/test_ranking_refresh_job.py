from datetime import UTC, datetime, timedelta

import pytest

from dapp_ranker.features.rankings.services import RankingEngine
from dapp_ranker.jobs.ranking_refresh_job import RankingRefreshJob
from dapp_ranker.models.domain.ranking_domain import EventBatch, RawEvent

WINDOW = timedelta(hours=1)


@pytest.mark.asyncio
async def test_run_once_refreshes_engine(registry, clock, base_time):
    engine = RankingEngine(registry, WINDOW, clock=clock)
    engine.start()
    try:
        await engine.submit_batch(
            EventBatch(1, base_time, (RawEvent("0xapp1", "acct-A", "tx1"),))
        )
        job = RankingRefreshJob(engine, interval_seconds=120)

        result = await job.run_once()

        assert result["success"] is True
        assert result["entries"] == 1
        assert result["window_size"] == 1

        clock.now = base_time + WINDOW + timedelta(seconds=1)
        result = await job.run_once()

        assert result["entries"] == 0
        assert engine.rankings == ()
    finally:
        await engine.stop()

    assert job.runs == 2


@pytest.mark.asyncio
async def test_run_once_reports_stopped_engine(registry):
    job = RankingRefreshJob(RankingEngine(registry, WINDOW), interval_seconds=120)

    result = await job.run_once()

    assert result["success"] is False
    assert "not running" in result["error"]
    assert job.failures == 1


def test_job_status_flags_overdue_runs(registry):
    job = RankingRefreshJob(RankingEngine(registry, WINDOW), interval_seconds=60)

    status = job.get_job_status()
    assert status["healthy"] is True
    assert status["last_run_time"] is None
    assert status["engine"]["batches_processed"] == 0
    assert status["engine"]["recent_errors"] == []

    job.last_run_time = datetime.now(UTC) - timedelta(minutes=5)
    status = job.get_job_status()

    assert status["is_overdue"] is True
    assert status["healthy"] is False
