from .ranking_repository import RankingRepository, row_to_entry

__all__ = ["RankingRepository", "row_to_entry"]
