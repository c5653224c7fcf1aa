"""
Matching services.

Services responsible for joining Lambda candidates with event-plane records.
"""

from .index import EventPlaneIndex, DuplicateKeyError, composite_key
from .candidate_cuts import CandidateCuts, CutResult, CUT_NAMES
from .matcher import CandidateMatcher

__all__ = [
    "EventPlaneIndex",
    "DuplicateKeyError",
    "composite_key",
    "CandidateCuts",
    "CutResult",
    "CUT_NAMES",
    "CandidateMatcher",
]
