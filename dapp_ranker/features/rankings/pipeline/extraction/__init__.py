"""
Extraction package - turns checkpoint batches into interaction records.
"""

from .service import extract_interactions

__all__ = ["extract_interactions"]
