"""
dApp activity ranking feature.

Contains the registry, the windowed ranking pipeline (extraction, window,
scoring), the persistence repository and the engine that sequences them.
"""

from dapp_ranker.features.rankings.registry import ApplicationRegistry

__all__ = ["ApplicationRegistry"]
