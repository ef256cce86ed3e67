"""
Window package - the age-bounded interaction log owned by the ranking engine.
"""

from .interaction_log import InteractionLog

__all__ = ["InteractionLog"]
