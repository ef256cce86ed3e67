from fastapi import HTTPException, Request

from dapp_ranker.db.pool import DatabasePoolManager
from dapp_ranker.features.rankings.repository.ranking_repository import RankingRepository


def get_db_pool(request: Request) -> DatabasePoolManager | None:
    return getattr(request.app.state, "db_pool", None)


def get_ranking_repository(request: Request) -> RankingRepository:
    pool = get_db_pool(request)
    if pool is None or not pool.is_ready:
        raise HTTPException(status_code=503, detail="Database not available")
    return RankingRepository(pool)
