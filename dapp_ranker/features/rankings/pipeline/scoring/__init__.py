"""
Scoring package - unique-active-account counts and rank ordering.
"""

from .service import calculate_rankings, top_rankings

__all__ = ["calculate_rankings", "top_rankings"]
