"""
Pipeline components for dApp ranking.

Pure, in-memory stages: extraction of interaction records from checkpoint
batches, the time-bounded interaction window, and rank scoring.
"""

__all__ = ["extraction", "window", "scoring"]
