"""
Statistics-related domain models.

Immutable data structures for tracking event-plane and matching statistics.
"""

from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime


@dataclass(frozen=True)
class EventCounts:
    """Outcome counts of the event-plane builder over some set of events."""

    total_events: int = 0
    failed_event_gate: int = 0
    failed_multiplicity: int = 0
    emitted: int = 0

    def __post_init__(self):
        """Validate event counts."""
        for name in ("total_events", "failed_event_gate", "failed_multiplicity", "emitted"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.failed_event_gate + self.failed_multiplicity + self.emitted != self.total_events:
            raise ValueError(
                f"failed_event_gate ({self.failed_event_gate}) + failed_multiplicity "
                f"({self.failed_multiplicity}) + emitted ({self.emitted}) "
                f"must equal total_events ({self.total_events})"
            )

    def __add__(self, other: 'EventCounts') -> 'EventCounts':
        return EventCounts(
            total_events=self.total_events + other.total_events,
            failed_event_gate=self.failed_event_gate + other.failed_event_gate,
            failed_multiplicity=self.failed_multiplicity + other.failed_multiplicity,
            emitted=self.emitted + other.emitted,
        )

    @property
    def acceptance(self) -> float:
        """Emitted events as percentage of all events."""
        if self.total_events == 0:
            return 0.0
        return (self.emitted / self.total_events) * 100


@dataclass(frozen=True)
class EventPlaneStatistics:
    """
    Statistics for one event-plane run over a set of input files.

    Immutable snapshot of file and event outcomes.
    """

    total_files: int
    successful_files: int
    failed_files: int
    events: EventCounts
    total_time_sec: float
    start_time: datetime
    end_time: datetime
    failed_file_list: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate event-plane statistics."""
        if self.total_files < 0:
            raise ValueError(f"total_files must be non-negative, got {self.total_files}")
        if self.successful_files + self.failed_files != self.total_files:
            raise ValueError(
                f"successful_files ({self.successful_files}) + failed_files ({self.failed_files}) "
                f"must equal total_files ({self.total_files})"
            )
        if self.end_time < self.start_time:
            raise ValueError("end_time must be after start_time")

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage."""
        if self.total_files == 0:
            return 0.0
        return (self.successful_files / self.total_files) * 100

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "total_files": self.total_files,
            "successful_files": self.successful_files,
            "failed_files": self.failed_files,
            "success_rate": f"{self.success_rate:.1f}%",
            "total_events": self.events.total_events,
            "failed_event_gate": self.events.failed_event_gate,
            "failed_multiplicity": self.events.failed_multiplicity,
            "emitted_events": self.events.emitted,
            "acceptance": f"{self.events.acceptance:.2f}%",
            "total_time_sec": self.total_time_sec,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "failed_file_list": [list(item) for item in self.failed_file_list],
        }


@dataclass(frozen=True)
class MatchingStatistics:
    """
    Cut-flow and matching totals for one candidate file.

    ``total == failed_cuts + unmatched + saved`` always holds; ``unmatched``
    only counts candidates that passed every cut.
    """

    total: int
    failed_cuts: int
    unmatched: int
    saved: int
    cut_failures: tuple[tuple[str, int], ...] = field(default_factory=tuple)
    run_numbers: tuple[int, ...] = field(default_factory=tuple)
    indexed_events: int = 0
    duplicate_keys: int = 0
    file_index: Optional[int] = None

    def __post_init__(self):
        """Validate matching statistics."""
        for name in ("total", "failed_cuts", "unmatched", "saved", "indexed_events", "duplicate_keys"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.failed_cuts + self.unmatched + self.saved != self.total:
            raise ValueError(
                f"failed_cuts ({self.failed_cuts}) + unmatched ({self.unmatched}) + "
                f"saved ({self.saved}) must equal total ({self.total})"
            )
        for name, count in self.cut_failures:
            if count > self.failed_cuts:
                raise ValueError(
                    f"cut '{name}' failures ({count}) exceed failed_cuts ({self.failed_cuts})"
                )

    @property
    def passed_cuts(self) -> int:
        return self.total - self.failed_cuts

    @property
    def match_rate(self) -> float:
        """Saved candidates as percentage of those that passed all cuts."""
        if self.passed_cuts == 0:
            return 0.0
        return (self.saved / self.passed_cuts) * 100

    def cut_flow_lines(self) -> list[str]:
        """Human-readable cut breakdown, one line per cut."""
        width = max((len(name) for name, _ in self.cut_failures), default=0)
        return [f"{name:<{width}} : {count}" for name, count in self.cut_failures]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "file_index": self.file_index,
            "total_candidates": self.total,
            "failed_cuts": self.failed_cuts,
            "no_event_plane_match": self.unmatched,
            "saved": self.saved,
            "match_rate": f"{self.match_rate:.1f}%",
            "cut_breakdown": dict(self.cut_failures),
            "run_numbers": list(self.run_numbers),
            "indexed_events": self.indexed_events,
            "duplicate_keys": self.duplicate_keys,
        }
