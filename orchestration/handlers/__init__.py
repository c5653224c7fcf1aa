"""
State handlers for pipeline execution.

Each handler implements logic for a specific pipeline state.
"""

from .base import StateHandler
from .event_plane_handler import EventPlaneHandler
from .matching_handler import MatchingHandler

__all__ = [
    "StateHandler",
    "EventPlaneHandler",
    "MatchingHandler",
]
