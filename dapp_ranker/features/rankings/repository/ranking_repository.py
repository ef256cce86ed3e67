"""
Repository for the persisted dApp ranking snapshot (dapp_rankings table).
"""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from dapp_ranker.db.helpers import (
    execute_query,
    execute_transaction,
    fetch_all,
    fetch_one,
    with_db_retry,
)
from dapp_ranker.db.pool import DatabasePoolManager
from dapp_ranker.infrastructure.observability.logging import get_logger
from dapp_ranker.models.domain.ranking_domain import RankingEntry

logger = get_logger(__name__)

# Legacy placeholder name written by older indexer builds
UNKNOWN_DAPP_NAME = "Unknown DApp"

CREATE_RANKINGS_TABLE = """
    CREATE TABLE IF NOT EXISTS dapp_rankings (
        package_id VARCHAR PRIMARY KEY,
        rank_position INTEGER NOT NULL,
        dapp_name VARCHAR NOT NULL,
        active_account_count INTEGER NOT NULL DEFAULT 0,
        dapp_type VARCHAR NOT NULL DEFAULT 'Unknown',
        last_update TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""

SELECT_COLUMNS = """
    SELECT rank_position, package_id, dapp_name, active_account_count, dapp_type, last_update
    FROM dapp_rankings
"""


def row_to_entry(row: dict) -> RankingEntry:
    last_update = row.get("last_update") or datetime.now(UTC)
    return RankingEntry(
        rank=int(row["rank_position"]),
        origin_id=row["package_id"],
        display_name=row["dapp_name"],
        active_account_count=int(row["active_account_count"]),
        category=row["dapp_type"],
        computed_at=last_update,
    )


class RankingRepository:
    """Thin wrappers for reading and replacing the ranking snapshot."""

    def __init__(self, pool: DatabasePoolManager):
        self.pool = pool

    async def ensure_schema(self) -> None:
        await execute_query(self.pool, CREATE_RANKINGS_TABLE)
        logger.debug("dapp_rankings table ensured")

    @with_db_retry()
    async def fetch_rankings(self, limit: int | None = None) -> list[dict]:
        query = SELECT_COLUMNS + " ORDER BY rank_position ASC"
        if limit is None:
            return await fetch_all(self.pool, query)
        return await fetch_all(self.pool, query + " LIMIT %s", (limit,))

    @with_db_retry()
    async def fetch_ranking(self, package_id: str) -> dict | None:
        return await fetch_one(self.pool, SELECT_COLUMNS + " WHERE package_id = %s", (package_id,))

    async def replace_rankings(self, rankings: Iterable[RankingEntry]) -> int:
        """Atomically replace the whole snapshot: DELETE all + INSERT new rows."""
        rows = [
            (
                entry.rank,
                entry.origin_id,
                entry.display_name,
                entry.active_account_count,
                entry.category,
                entry.computed_at,
            )
            for entry in rankings
        ]

        queries: list[tuple] = [("DELETE FROM dapp_rankings", ())]
        if rows:
            queries.append(
                (
                    """
                    INSERT INTO dapp_rankings (
                        rank_position, package_id, dapp_name,
                        active_account_count, dapp_type, last_update
                    ) VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    rows,
                )
            )

        await execute_transaction(self.pool, queries)

        logger.debug("Ranking snapshot replaced atomically", row_count=len(rows))
        return len(rows)

    async def delete_untracked(self, tracked_package_ids: Sequence[str]) -> int:
        """Delete rows for packages outside the registry and legacy unknown rows."""
        return await execute_query(
            self.pool,
            """
            DELETE FROM dapp_rankings
            WHERE dapp_name = %s
               OR NOT (package_id = ANY(%s))
            """,
            (UNKNOWN_DAPP_NAME, list(tracked_package_ids)),
        )

    async def delete_all(self) -> int:
        return await execute_query(self.pool, "DELETE FROM dapp_rankings")
