"""
dApp ranking indexer job.

Wires the runtime together: settings -> registry -> database pool ->
publisher -> ranking engine, then feeds checkpoints to the engine in order
while the refresh job ticks in the background.

Startup sequence:
1. Ensure the dapp_rankings table exists and drop rows for untracked packages
2. Either wipe persisted rankings (RESET_ON_STARTUP) or load them as the
   initial in-memory snapshot
3. Start the engine and the refresh job, then stream checkpoints from the
   last recorded progress
"""

import asyncio
import contextlib

from dapp_ranker.config import ConfigurationError, Settings, load_settings
from dapp_ranker.db.pool import DatabasePoolManager
from dapp_ranker.features.rankings.registry import ApplicationRegistry, RegistryError
from dapp_ranker.features.rankings.repository.ranking_repository import RankingRepository
from dapp_ranker.features.rankings.services.publisher import RankingPublisher
from dapp_ranker.features.rankings.services.ranking_engine import RankingEngine
from dapp_ranker.infrastructure.observability.logging import (
    get_logger,
    log_leaderboard,
    setup_logging,
)
from dapp_ranker.ingestion.checkpoint_reader import CheckpointReader, FileProgressStore
from dapp_ranker.jobs.ranking_refresh_job import RankingRefreshJob

logger = get_logger(__name__)

ENGINE_STOP_TIMEOUT_SECONDS = 30.0


def build_registry(settings: Settings) -> ApplicationRegistry:
    if not settings.REGISTRY_PATH:
        return ApplicationRegistry.default()
    try:
        return ApplicationRegistry.from_json_file(settings.REGISTRY_PATH)
    except RegistryError as e:
        raise ConfigurationError(str(e)) from e


class RankingIndexer:
    def __init__(
        self,
        settings: Settings,
        registry: ApplicationRegistry,
        reader: CheckpointReader,
        progress_store: FileProgressStore,
        pool: DatabasePoolManager | None = None,
    ):
        self.settings = settings
        self.registry = registry
        self.reader = reader
        self.progress_store = progress_store
        self.pool = pool
        self.publisher: RankingPublisher | None = None
        self.engine: RankingEngine | None = None
        self.refresh_job: RankingRefreshJob | None = None
        self._refresh_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RankingIndexer":
        return cls(
            settings=settings,
            registry=build_registry(settings),
            reader=CheckpointReader(settings.CHECKPOINTS_DIR, settings.REMOTE_STORAGE),
            progress_store=FileProgressStore(settings.BACKFILL_PROGRESS_FILE_PATH),
            pool=DatabasePoolManager(settings) if settings.USE_DATABASE else None,
        )

    async def setup(self) -> None:
        initial_rankings = []

        if self.pool is not None:
            await self.pool.initialize()
            repository = RankingRepository(self.pool)
            await repository.ensure_schema()
            self.publisher = RankingPublisher(repository, self.registry)

            await self.publisher.cleanup()
            if self.settings.RESET_ON_STARTUP:
                await self.publisher.reset()
                logger.info("Starting fresh with clean database and memory")
            else:
                initial_rankings = await self.publisher.load()
                log_leaderboard(initial_rankings, source="database")
        else:
            logger.warning("Database disabled - rankings will not be persisted")

        self.engine = RankingEngine(
            self.registry,
            self.settings.ranking_window,
            self.publisher,
            recompute_every_batches=self.settings.RECOMPUTE_EVERY_BATCHES,
            min_new_records=self.settings.MIN_NEW_RECORDS_FOR_RECOMPUTE,
            initial_rankings=initial_rankings,
        )
        self.engine.start()

        self.refresh_job = RankingRefreshJob(self.engine, self.settings.UPDATE_INTERVAL_SECONDS)
        self._refresh_task = asyncio.create_task(
            self.refresh_job.run_forever(), name="ranking-refresh"
        )

    def starting_checkpoint(self) -> int:
        last_processed = self.progress_store.load()
        if last_processed is None:
            return self.settings.STARTING_CHECKPOINT
        return last_processed + 1

    async def run(
        self, stop_event: asyncio.Event | None = None, max_batches: int | None = None
    ) -> int:
        """
        Feed checkpoints to the engine until stopped.

        Returns:
            int: number of checkpoints processed
        """
        if self.engine is None:
            raise RuntimeError("RankingIndexer.setup() must be called before run()")

        start = self.starting_checkpoint()
        logger.info("Starting dApp ranking checkpoint processing", starting_checkpoint=start)

        processed = 0
        async for batch in self.reader.stream(
            start, poll_interval=self.settings.POLL_INTERVAL_SECONDS, stop_event=stop_event
        ):
            await self.engine.submit_batch(batch)
            await asyncio.to_thread(self.progress_store.save, batch.sequence_number)
            processed += 1
            if max_batches is not None and processed >= max_batches:
                break

        return processed

    async def shutdown(self) -> None:
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._refresh_task
            self._refresh_task = None

        if self.engine is not None:
            await self.engine.stop(timeout=ENGINE_STOP_TIMEOUT_SECONDS)

        await self.reader.close()

        if self.pool is not None:
            await self.pool.close()

        logger.info("dApp ranking indexer shut down")


async def start_ranking_indexer() -> None:
    """Entry point for the long-running indexer worker."""
    settings = load_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info("Starting dApp ranking indexer", **settings.summary())

    indexer = RankingIndexer.from_settings(settings)
    try:
        await indexer.setup()
        await indexer.run()
    finally:
        await indexer.shutdown()


async def reset_persisted_rankings() -> None:
    """One-shot job: wipe the persisted leaderboard."""
    settings = load_settings()
    setup_logging(settings.LOG_LEVEL)

    pool = DatabasePoolManager(settings)
    await pool.initialize()
    try:
        repository = RankingRepository(pool)
        await repository.ensure_schema()
        publisher = RankingPublisher(repository, build_registry(settings))
        await publisher.reset()
    finally:
        await pool.close()
