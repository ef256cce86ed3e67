"""
Ranking engine - single owner of the interaction window and current rankings.

One asyncio task consumes commands from a queue and is the only code that
touches the InteractionLog and the ranking snapshot. Batch arrivals and the
periodic refresh job both talk to it through that queue, so their critical
sections (evict -> recompute -> publish) never interleave and no lock is
needed. Readers get an immutable tuple that is swapped in whole.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from dapp_ranker.features.rankings.pipeline.extraction import extract_interactions
from dapp_ranker.features.rankings.pipeline.scoring import calculate_rankings, top_rankings
from dapp_ranker.features.rankings.pipeline.window import InteractionLog
from dapp_ranker.features.rankings.registry import ApplicationRegistry
from dapp_ranker.features.rankings.services.publisher import RankingPublisher
from dapp_ranker.infrastructure.observability.logging import get_logger, log_leaderboard
from dapp_ranker.models.domain.ranking_domain import BatchResult, EventBatch, RankingEntry

logger = get_logger(__name__)

DEFAULT_RECOMPUTE_EVERY_BATCHES = 10
DEFAULT_MIN_NEW_RECORDS = 5


class RankingEngineError(Exception):
    """Raised when the engine cannot accept or complete a command."""


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class _Command:
    kind: str  # "batch", "refresh", "query", "reset" or "stop"
    future: asyncio.Future
    payload: Any = None


@dataclass
class EngineStats:
    batches_processed: int = 0
    records_inserted: int = 0
    records_evicted: int = 0
    recomputes: int = 0
    publishes: int = 0
    publish_failures: int = 0
    last_batch: int | None = None
    last_recompute_at: datetime | None = None
    recent_errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "batches_processed": self.batches_processed,
            "records_inserted": self.records_inserted,
            "records_evicted": self.records_evicted,
            "recomputes": self.recomputes,
            "publishes": self.publishes,
            "publish_failures": self.publish_failures,
            "last_batch": self.last_batch,
            "last_recompute_at": (
                self.last_recompute_at.isoformat() if self.last_recompute_at else None
            ),
            "recent_errors": list(self.recent_errors),
        }


class RankingEngine:
    def __init__(
        self,
        registry: ApplicationRegistry,
        window: timedelta,
        publisher: RankingPublisher | None = None,
        *,
        recompute_every_batches: int = DEFAULT_RECOMPUTE_EVERY_BATCHES,
        min_new_records: int = DEFAULT_MIN_NEW_RECORDS,
        clock: Callable[[], datetime] = utc_now,
        initial_rankings: Iterable[RankingEntry] = (),
    ):
        if recompute_every_batches < 1:
            raise ValueError("recompute_every_batches must be >= 1")
        if window <= timedelta(0):
            raise ValueError("window must be positive")

        self.registry = registry
        self.window = window
        self.publisher = publisher
        self.recompute_every_batches = recompute_every_batches
        self.min_new_records = min_new_records
        self._clock = clock

        self._log = InteractionLog()
        self._rankings: tuple[RankingEntry, ...] = tuple(initial_rankings)
        self._queue: asyncio.Queue[_Command] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self.stats = EngineStats()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Ranking engine already running")
            return
        self._task = asyncio.create_task(self._run(), name="ranking-engine")
        logger.info(
            "Ranking engine started",
            window_seconds=int(self.window.total_seconds()),
            tracked_dapps=len(self.registry),
            recompute_every_batches=self.recompute_every_batches,
            min_new_records=self.min_new_records,
        )

    async def stop(self, timeout: float | None = None) -> None:
        """
        Let the in-flight command finish, then exit. If `timeout` elapses
        the task is cancelled; an interrupted publish rolls back and the
        previous persisted snapshot stays in place.
        """
        if not self.is_running:
            return

        stop_future = asyncio.get_running_loop().create_future()
        await self._queue.put(_Command("stop", stop_future))

        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except TimeoutError:
            logger.warning("Ranking engine stop timed out, cancelling", timeout=timeout)
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        self._fail_pending(RankingEngineError("Ranking engine stopped"))
        logger.info("Ranking engine stopped", **self.stats.to_dict())

    # ------------------------------------------------------------------
    # Public API (message passing)
    # ------------------------------------------------------------------

    async def submit_batch(self, batch: EventBatch) -> BatchResult:
        """Process one checkpoint batch. Callers must submit in delivery order."""
        return await self._send("batch", batch)

    async def refresh(self) -> tuple[RankingEntry, ...]:
        """Evict, recompute and publish unconditionally."""
        return await self._send("refresh")

    async def get_rankings(self, limit: int | None = None) -> list[RankingEntry]:
        rankings = await self._send("query")
        return list(rankings) if limit is None else top_rankings(rankings, limit)

    async def reset(self) -> None:
        """Drop all window contents and rankings held in memory."""
        await self._send("reset")

    @property
    def rankings(self) -> tuple[RankingEntry, ...]:
        """Last committed snapshot; safe to read from the event loop at any time."""
        return self._rankings

    @property
    def window_size(self) -> int:
        return len(self._log)

    async def _send(self, kind: str, payload: Any = None) -> Any:
        if not self.is_running:
            raise RankingEngineError("Ranking engine is not running")
        future = asyncio.get_running_loop().create_future()
        await self._queue.put(_Command(kind, future, payload))
        return await future

    # ------------------------------------------------------------------
    # Actor loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            command = await self._queue.get()
            try:
                if command.kind == "stop":
                    command.future.set_result(None)
                    return
                result = await self._handle(command)
            except Exception as e:
                logger.exception("Ranking engine command failed", command=command.kind)
                self._remember_error(f"{command.kind}: {e}")
                if not command.future.done():
                    command.future.set_exception(e)
            else:
                if not command.future.done():
                    command.future.set_result(result)
            finally:
                self._queue.task_done()

    async def _handle(self, command: _Command) -> Any:
        if command.kind == "batch":
            return await self._process_batch(command.payload)
        if command.kind == "refresh":
            return await self._refresh()
        if command.kind == "query":
            return self._rankings
        if command.kind == "reset":
            self._log.clear()
            self._rankings = ()
            logger.info("Ranking engine state reset")
            return None
        raise RankingEngineError(f"Unknown command: {command.kind}")

    async def _process_batch(self, batch: EventBatch) -> BatchResult:
        records = extract_interactions(batch, self.registry)
        inserted = self._log.insert(records)
        evicted = self._evict()

        self.stats.batches_processed += 1
        self.stats.records_inserted += inserted
        self.stats.last_batch = batch.sequence_number

        if records:
            logger.info(
                "Checkpoint processed",
                checkpoint=batch.sequence_number,
                interactions=len(records),
                inserted=inserted,
                window_size=len(self._log),
            )

        recompute = (
            batch.sequence_number % self.recompute_every_batches == 0
            or inserted > self.min_new_records
        )
        published = False
        if recompute:
            self._recompute()
            published = await self._publish()

        return BatchResult(
            sequence_number=batch.sequence_number,
            extracted=len(records),
            inserted=inserted,
            evicted=evicted,
            recomputed=recompute,
            published=published,
        )

    async def _refresh(self) -> tuple[RankingEntry, ...]:
        self._evict()
        self._recompute()
        await self._publish()
        return self._rankings

    def _evict(self) -> int:
        removed = self._log.evict(self.window, self._clock(), self.registry)
        if removed:
            self.stats.records_evicted += removed
            logger.info("Pruned old interactions", removed=removed, remaining=len(self._log))
        return removed

    def _recompute(self) -> None:
        now = self._clock()
        self._rankings = tuple(
            calculate_rankings(self._log.snapshot(), now, self.window, self.registry)
        )
        self.stats.recomputes += 1
        self.stats.last_recompute_at = now
        log_leaderboard(self._rankings)

    async def _publish(self) -> bool:
        if self.publisher is None:
            return False
        published = await self.publisher.publish(self._rankings)
        if published:
            self.stats.publishes += 1
        else:
            self.stats.publish_failures += 1
        return published

    def _remember_error(self, message: str) -> None:
        self.stats.recent_errors.append(message)
        del self.stats.recent_errors[:-10]

    def _fail_pending(self, error: Exception) -> None:
        while not self._queue.empty():
            command = self._queue.get_nowait()
            if not command.future.done():
                command.future.set_exception(error)
            self._queue.task_done()
