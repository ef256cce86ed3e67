"""
Service layer for dApp ranking.
"""

from .publisher import RankingPublisher
from .ranking_engine import RankingEngine, RankingEngineError

__all__ = ["RankingEngine", "RankingEngineError", "RankingPublisher"]
