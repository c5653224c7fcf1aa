"""
PipelineExecutor - High-level pipeline orchestrator.

Wires together all services and executes the state machine.

Batch mode:
  Each batch job runs the event-plane stage on its own slice of the input
  files and writes its own output segment (<output>_batchN.root) and stats
  JSON (<run_name>_batchN_stats.json).
"""

import json
import logging
import os
from typing import Optional

from domain.config import PipelineConfig
from orchestration import PipelineState, PipelineContext, StateMachine
from orchestration.handlers import EventPlaneHandler, MatchingHandler
from orchestration.handlers.base import next_enabled_state
from services.eventplane.builder import EventPlaneBuilder
from services.eventplane.threaded_processor import ThreadedFileProcessor
from services.reading.file_selector import FileSelector


class PipelineExecutor:
    """
    High-level pipeline executor.

    Responsible for:
    1. Creating all services with dependency injection
    2. Building the state machine with handlers
    3. Running the pipeline
    4. Saving run statistics
    """

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)
        self.state_machine = self._build_state_machine()

    def run(self) -> PipelineContext:
        """Execute the pipeline and return final context."""
        self.logger.info("Initializing pipeline execution")
        initial_context = self._create_initial_context()
        final_context = self.state_machine.run(initial_context)
        self._log_results(final_context)
        return final_context

    def save_stats(self, context: PipelineContext, stats_dir: Optional[str] = None) -> Optional[str]:
        """
        Save the run's statistics as JSON.

        Saved to: <stats_dir>/<run_name>[_batch<N>]_stats.json

        Args:
            context: Final pipeline context after execution
            stats_dir: Output directory (config stats_dir if None)

        Returns:
            Path of the written file, or None when no stats directory is set
        """
        stats_dir = stats_dir or self.config.stats_dir
        if not stats_dir:
            self.logger.debug("No stats_dir configured, not saving stats")
            return None

        stats = {
            "run_name": self.config.run_name,
            "batch_index": self.config.batch_job_index,
            "summary": context.get_summary(),
            "input_files": list(context.input_files),
        }
        if context.event_plane_stats:
            stats["event_plane"] = context.event_plane_stats.to_dict()
        if context.matching_stats:
            stats["matching"] = context.matching_stats.to_dict()

        batch_suffix = (
            f"_batch{self.config.batch_job_index}"
            if self.config.batch_job_index is not None else ""
        )
        os.makedirs(stats_dir, exist_ok=True)
        stats_path = os.path.join(stats_dir, f"{self.config.run_name}{batch_suffix}_stats.json")

        with open(stats_path, "w") as f:
            json.dump(stats, f, indent=2, default=str)

        self.logger.info(f"Saved stats to: {stats_path}")
        return stats_path

    def _create_initial_context(self) -> PipelineContext:
        initial_state = next_enabled_state(self.config.tasks, PipelineState.IDLE)
        self.logger.info(f"Starting state: {initial_state}")
        return PipelineContext(config=self.config, current_state=initial_state)

    def _build_state_machine(self) -> StateMachine:
        self.logger.info("Building state machine with services")
        services = self._create_services()
        handlers = self._create_handlers(services)
        return StateMachine(handlers)

    def _create_services(self) -> dict:
        services = {}

        if self.config.tasks.do_event_plane and self.config.event_plane_config:
            ep = self.config.event_plane_config
            services['file_selector'] = FileSelector(pattern=ep.file_pattern)
            services['builder'] = EventPlaneBuilder(
                event_cuts=ep.event_cuts,
                track_cuts=ep.track_cuts
            )
            services['threaded_processor'] = ThreadedFileProcessor(
                builder=services['builder'],
                max_threads=ep.threads,
                show_progress=ep.show_progress_bar
            )

        return services

    def _create_handlers(self, services: dict) -> dict:
        handlers = {}

        if 'builder' in services:
            handlers[PipelineState.EVENT_PLANE] = EventPlaneHandler(
                file_selector=services['file_selector'],
                threaded_processor=services['threaded_processor']
            )

        # The matcher depends on the index built at run time, inside the handler.
        if self.config.tasks.do_matching:
            handlers[PipelineState.MATCHING] = MatchingHandler()

        return handlers

    def _log_results(self, context: PipelineContext):
        self.logger.info("=" * 60)
        self.logger.info("Pipeline Execution Summary")
        self.logger.info("=" * 60)

        for key, value in context.get_summary().items():
            self.logger.info(f"{key:30s}: {value}")

        if context.event_plane_stats:
            self.logger.info("Event-plane statistics:")
            for key, value in context.event_plane_stats.to_dict().items():
                self.logger.info(f"{key:30s}: {value}")

        if context.matching_stats:
            self.logger.info("Matching statistics:")
            for key, value in context.matching_stats.to_dict().items():
                self.logger.info(f"{key:30s}: {value}")

        self.logger.info("=" * 60)
