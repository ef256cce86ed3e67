"""
Leaderboard endpoints. Read-only over the persisted dapp_rankings replica.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from dapp_ranker.db.helpers import DatabaseError
from dapp_ranker.features.rankings.repository.ranking_repository import (
    RankingRepository,
    row_to_entry,
)
from dapp_ranker.infrastructure.observability.logging import get_logger
from dapp_ranker.models.api.ranking_response import RankingEntryResponse, RankingListResponse
from dapp_ranker.models.domain.ranking_domain import RankingEntry
from dapp_ranker.routes.dependencies import get_ranking_repository

logger = get_logger(__name__)

router = APIRouter(prefix="/rankings", tags=["rankings"])

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _to_response(entry: RankingEntry) -> RankingEntryResponse:
    return RankingEntryResponse(
        rank=entry.rank,
        origin_id=entry.origin_id,
        display_name=entry.display_name,
        active_account_count=entry.active_account_count,
        category=entry.category,
        computed_at=entry.computed_at,
    )


@router.get("", response_model=RankingListResponse)
async def list_rankings(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    repository: RankingRepository = Depends(get_ranking_repository),
):
    """Top dApps by unique active accounts in the current window."""
    try:
        rows = await repository.fetch_rankings(limit)
    except DatabaseError as e:
        logger.error("Failed to read rankings", error=str(e))
        raise HTTPException(status_code=503, detail="Rankings temporarily unavailable") from e

    entries = [_to_response(row_to_entry(row)) for row in rows]
    return RankingListResponse(rankings=entries, count=len(entries), limit=limit)


@router.get("/{origin_id}", response_model=RankingEntryResponse)
async def get_ranking(
    origin_id: str,
    repository: RankingRepository = Depends(get_ranking_repository),
):
    try:
        row = await repository.fetch_ranking(origin_id)
    except DatabaseError as e:
        logger.error("Failed to read ranking", origin_id=origin_id, error=str(e))
        raise HTTPException(status_code=503, detail="Rankings temporarily unavailable") from e

    if row is None:
        raise HTTPException(status_code=404, detail="dApp not ranked in current window")
    return _to_response(row_to_entry(row))
