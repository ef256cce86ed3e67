"""
Ranking Refresh Job - keeps rankings current during quiet periods.

Interactions age out of the window even when no checkpoints arrive, so
scores must decay on a timer. Each tick sends a refresh command to the
ranking engine (evict -> recompute -> publish); the engine serializes it
with batch processing.

Usage:
    job = RankingRefreshJob(engine, interval_seconds=settings.UPDATE_INTERVAL_SECONDS)
    task = asyncio.create_task(job.run_forever())
"""

import asyncio
from datetime import UTC, datetime, timedelta

from dapp_ranker.features.rankings.services.ranking_engine import RankingEngine, RankingEngineError
from dapp_ranker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RankingRefreshJob:
    """Fixed-interval background refresh of the dApp leaderboard."""

    def __init__(self, engine: RankingEngine, interval_seconds: float):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.last_run_time: datetime | None = None
        self.runs = 0
        self.failures = 0

    async def run_once(self) -> dict:
        """
        Run a single refresh cycle.

        Returns:
            dict: cycle summary; never raises for engine-side failures
        """
        start = datetime.now(UTC)
        try:
            rankings = await self.engine.refresh()
        except RankingEngineError as e:
            self.failures += 1
            logger.error("Ranking refresh skipped", error=str(e))
            return {"success": False, "error": str(e)}
        except Exception as e:
            self.failures += 1
            logger.error("Ranking refresh failed", error=str(e), error_type=type(e).__name__)
            return {"success": False, "error": str(e)}

        self.runs += 1
        self.last_run_time = datetime.now(UTC)
        result = {
            "success": True,
            "entries": len(rankings),
            "window_size": self.engine.window_size,
            "duration_seconds": round((self.last_run_time - start).total_seconds(), 3),
        }
        logger.info("Background job: ranking refresh completed", **result)
        return result

    async def run_forever(self) -> None:
        logger.info("Starting ranking refresh scheduler", interval_seconds=self.interval_seconds)

        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()

    def get_job_status(self) -> dict:
        now = datetime.now(UTC)
        overdue_threshold = timedelta(seconds=self.interval_seconds * 2)
        is_overdue = self.last_run_time is not None and (now - self.last_run_time) > overdue_threshold

        return {
            "job_name": "ranking_refresh",
            "healthy": not is_overdue,
            "interval_seconds": self.interval_seconds,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "runs": self.runs,
            "failures": self.failures,
            "is_overdue": is_overdue,
            "engine": self.engine.stats.to_dict(),
        }
