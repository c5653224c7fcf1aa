"""
Pipeline context.

Immutable context object passed between state handlers.
"""

from dataclasses import dataclass, field, replace
from typing import Optional
from datetime import datetime

from domain.config import PipelineConfig
from domain.statistics import EventPlaneStatistics, MatchingStatistics
from .states import PipelineState


@dataclass(frozen=True)
class PipelineContext:
    """
    Immutable context for pipeline execution.

    Each state handler returns a new context with updated fields.
    """

    # Configuration
    config: PipelineConfig

    # Current state
    current_state: PipelineState

    # Execution metadata
    start_time: datetime = field(default_factory=datetime.now)

    # Data accumulated during pipeline
    input_files: tuple[str, ...] = field(default_factory=tuple)
    event_plane_file: Optional[str] = None
    matched_file: Optional[str] = None

    # Statistics
    event_plane_stats: Optional[EventPlaneStatistics] = None
    matching_stats: Optional[MatchingStatistics] = None

    # Error tracking
    error_message: Optional[str] = None
    error_details: Optional[dict] = None

    def with_state(self, new_state: PipelineState) -> 'PipelineContext':
        return replace(self, current_state=new_state)

    def with_event_plane_output(
        self,
        input_files: list[str],
        output_file: str,
        stats: EventPlaneStatistics
    ) -> 'PipelineContext':
        """
        Return new context with the event-plane stage results.

        Args:
            input_files: Input files the stage selected
            output_file: Event-plane file written
            stats: Event-plane statistics

        Returns:
            New PipelineContext with event-plane results
        """
        return replace(
            self,
            input_files=tuple(input_files),
            event_plane_file=output_file,
            event_plane_stats=stats
        )

    def with_matching_output(self, output_file: str, stats: MatchingStatistics) -> 'PipelineContext':
        """
        Return new context with the matching stage results.

        Args:
            output_file: Matched candidate file written
            stats: Matching statistics

        Returns:
            New PipelineContext with matching results
        """
        return replace(self, matched_file=output_file, matching_stats=stats)

    def with_error(self, message: str, details: Optional[dict] = None) -> 'PipelineContext':
        """
        Return new context with error information.

        Args:
            message: Error message
            details: Optional error details dict

        Returns:
            New PipelineContext in FAILED state
        """
        return replace(
            self,
            current_state=PipelineState.FAILED,
            error_message=message,
            error_details=details or {}
        )

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time in seconds."""
        return (datetime.now() - self.start_time).total_seconds()

    @property
    def is_terminal(self) -> bool:
        return self.current_state.is_terminal()

    @property
    def is_successful(self) -> bool:
        return self.current_state == PipelineState.COMPLETED

    @property
    def has_error(self) -> bool:
        return self.current_state == PipelineState.FAILED

    def get_summary(self) -> dict:
        """
        Get summary of pipeline execution.

        Returns:
            Dict with execution summary
        """
        return {
            "state": str(self.current_state),
            "elapsed_time_sec": self.elapsed_time,
            "start_time": self.start_time.isoformat(),
            "input_files_count": len(self.input_files),
            "event_plane_file": self.event_plane_file,
            "matched_file": self.matched_file,
            "has_error": self.has_error,
            "error_message": self.error_message,
            "is_successful": self.is_successful,
        }
