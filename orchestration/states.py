"""
Pipeline states.

Explicit state enumeration for the pipeline state machine.
"""

from enum import Enum, auto


class PipelineState(Enum):
    """
    All possible states in the pipeline execution.

    The event-plane stage produces the file the matching stage indexes,
    so EVENT_PLANE always precedes MATCHING when both run.
    """

    # Initial state
    IDLE = auto()

    # Q-vector computation over the EventTuplePV files
    EVENT_PLANE = auto()

    # Candidate cuts and event-plane matching
    MATCHING = auto()

    # Terminal states
    COMPLETED = auto()
    FAILED = auto()

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in (PipelineState.COMPLETED, PipelineState.FAILED)

    def __str__(self) -> str:
        return self.name


VALID_TRANSITIONS = {
    PipelineState.IDLE: {
        PipelineState.EVENT_PLANE,
        PipelineState.MATCHING,
        PipelineState.FAILED,
    },
    PipelineState.EVENT_PLANE: {
        PipelineState.MATCHING,
        PipelineState.COMPLETED,
        PipelineState.FAILED,
    },
    PipelineState.MATCHING: {
        PipelineState.COMPLETED,
        PipelineState.FAILED,
    },
    PipelineState.COMPLETED: set(),
    PipelineState.FAILED: set(),
}


def is_valid_transition(from_state: PipelineState, to_state: PipelineState) -> bool:
    """
    Check if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is valid
    """
    return to_state in VALID_TRANSITIONS.get(from_state, set())
