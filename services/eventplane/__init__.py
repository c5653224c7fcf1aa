"""
Event-plane services.

Services responsible for turning VELO tracks into per-event Q-vectors.
"""

from .event_gate import EventGate
from .regions import Region, RegionClassifier, apply_sign_convention
from .harmonics import HarmonicAccumulator
from .builder import EventPlaneBuilder, EventOutcome, FileResult
from .threaded_processor import ThreadedFileProcessor, EventPlaneStatisticsCollector

__all__ = [
    "EventGate",
    "Region",
    "RegionClassifier",
    "apply_sign_convention",
    "HarmonicAccumulator",
    "EventPlaneBuilder",
    "EventOutcome",
    "FileResult",
    "ThreadedFileProcessor",
    "EventPlaneStatisticsCollector",
]
