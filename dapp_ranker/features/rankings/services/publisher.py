"""
Ranking publisher - pushes in-memory ranking snapshots to PostgreSQL.

The in-memory engine is the source of truth; the dapp_rankings table is a
downstream replica. Persistence failures are logged and swallowed here so a
failed cycle leaves the previous snapshot in place and the next cycle retries.
"""

from __future__ import annotations

from collections.abc import Sequence

from dapp_ranker.db.helpers import DatabaseError
from dapp_ranker.features.rankings.registry import ApplicationRegistry
from dapp_ranker.features.rankings.repository.ranking_repository import (
    RankingRepository,
    row_to_entry,
)
from dapp_ranker.infrastructure.observability.logging import get_logger
from dapp_ranker.models.domain.ranking_domain import RankingEntry

logger = get_logger(__name__)


class RankingPublisher:
    def __init__(self, repository: RankingRepository, registry: ApplicationRegistry):
        self.repository = repository
        self.registry = registry

    async def publish(self, rankings: Sequence[RankingEntry]) -> bool:
        """
        Replace the persisted snapshot with `rankings` in one transaction.

        Returns:
            bool: True if the new snapshot was committed
        """
        try:
            written = await self.repository.replace_rankings(rankings)
        except DatabaseError as e:
            logger.error(
                "Failed to publish rankings, previous snapshot kept",
                error=str(e),
                operation=e.operation,
                entries=len(rankings),
            )
            return False

        logger.info("Published ranking snapshot", entries=written)
        return True

    async def cleanup(self) -> int | None:
        """
        Remove persisted rows for packages no longer in the registry.

        Returns:
            Number of rows deleted, or None if the cleanup failed
        """
        try:
            deleted = await self.repository.delete_untracked(self.registry.origin_ids)
        except DatabaseError as e:
            logger.error("Failed to clean up untracked rankings", error=str(e))
            return None

        if deleted:
            logger.info("Cleaned up untracked rankings", deleted=deleted)
        return deleted

    async def load(self) -> list[RankingEntry]:
        """Rebuild ranking entries from the persisted snapshot (startup only)."""
        try:
            rows = await self.repository.fetch_rankings()
        except DatabaseError as e:
            logger.error("Failed to load persisted rankings", error=str(e))
            return []

        rankings = [row_to_entry(row) for row in rows if row["package_id"] in self.registry]
        logger.info("Loaded dApp rankings from database", entries=len(rankings))
        return rankings

    async def reset(self) -> int:
        """Delete every persisted ranking. Errors propagate to the caller."""
        deleted = await self.repository.delete_all()
        logger.info("Database reset complete", deleted_rankings=deleted)
        return deleted
