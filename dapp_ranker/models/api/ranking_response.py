from datetime import datetime

from pydantic import BaseModel, Field


class RankingEntryResponse(BaseModel):
    """A single leaderboard row as served by the API."""

    rank: int = Field(..., ge=1)
    origin_id: str
    display_name: str
    active_account_count: int = Field(..., ge=0)
    category: str
    computed_at: datetime | None = None


class RankingListResponse(BaseModel):
    """Ordered leaderboard snapshot."""

    rankings: list[RankingEntryResponse]
    count: int
    limit: int
