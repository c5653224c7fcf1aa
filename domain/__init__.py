"""
Domain models for the event-plane pipeline.

Pure data structures with validation, no business logic.
"""

from .events import EventBatch, JaggedColumn, TrackArrays
from .records import (
    EventPlaneRecord,
    CandidateRecord,
    CandidateEvent,
    LambdaCandidate,
    Daughter,
    MatchedRecord,
)
from .statistics import EventCounts, EventPlaneStatistics, MatchingStatistics
from .config import (
    PipelineConfig,
    TaskConfig,
    EventPlaneConfig,
    MatchingConfig,
    EventCutsConfig,
    TrackCutsConfig,
    CandidateCutsConfig,
)

__all__ = [
    "EventBatch",
    "JaggedColumn",
    "TrackArrays",
    "EventPlaneRecord",
    "CandidateRecord",
    "CandidateEvent",
    "LambdaCandidate",
    "Daughter",
    "MatchedRecord",
    "EventCounts",
    "EventPlaneStatistics",
    "MatchingStatistics",
    "PipelineConfig",
    "TaskConfig",
    "EventPlaneConfig",
    "MatchingConfig",
    "EventCutsConfig",
    "TrackCutsConfig",
    "CandidateCutsConfig",
]
