"""
Base state handler.

Abstract base class for all state handlers.
"""

from abc import ABC, abstractmethod
import logging

from domain.config import TaskConfig
from orchestration.context import PipelineContext
from orchestration.states import PipelineState


def next_enabled_state(tasks: TaskConfig, current: PipelineState) -> PipelineState:
    """
    Next state in task order (event plane -> matching) among the enabled tasks.

    Args:
        tasks: Enabled tasks
        current: State being left

    Returns:
        Next pipeline state
    """
    if current == PipelineState.IDLE and tasks.do_event_plane:
        return PipelineState.EVENT_PLANE
    if current in (PipelineState.IDLE, PipelineState.EVENT_PLANE) and tasks.do_matching:
        return PipelineState.MATCHING
    return PipelineState.COMPLETED


class StateHandler(ABC):
    """
    Base class for state handlers.

    Each state handler does the work of one state and names the next one.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def handle(self, context: PipelineContext) -> tuple[PipelineContext, PipelineState]:
        """
        Handle the current state and determine next state.

        Args:
            context: Current pipeline context

        Returns:
            Tuple of (updated_context, next_state)

        Raises:
            Exception: If state handling fails
        """

    def _determine_next_state(self, context: PipelineContext) -> PipelineState:
        return next_enabled_state(context.config.tasks, context.current_state)

    def _log_state_entry(self, context: PipelineContext):
        self.logger.info(f"Entering state: {context.current_state}")

    def _log_state_exit(self, context: PipelineContext, next_state: PipelineState):
        self.logger.info(f"Exiting state: {context.current_state} -> {next_state}")
