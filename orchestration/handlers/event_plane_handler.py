"""
EventPlaneHandler - Handles the EVENT_PLANE state.

Selects the input files, runs the builder over them and writes the
event-plane tree. Supports batch job splitting via batch_job_index /
total_batch_jobs.
"""

from orchestration.context import PipelineContext
from orchestration.states import PipelineState
from .base import StateHandler
from domain.records import EventPlaneRecord
from services.eventplane.threaded_processor import ThreadedFileProcessor, EventPlaneStatisticsCollector
from services.reading.file_selector import FileSelector
from services.reading.record_writer import RecordWriter
from utils.batching import get_batch_slice, batch_output_path


class EventPlaneHandler(StateHandler):
    """Handler for EVENT_PLANE state."""

    def __init__(self, file_selector: FileSelector, threaded_processor: ThreadedFileProcessor):
        """
        Initialize handler.

        Args:
            file_selector: Selects the run's input files
            threaded_processor: Runs the event-plane builder per file
        """
        super().__init__()
        self.file_selector = file_selector
        self.processor = threaded_processor

    def handle(self, context: PipelineContext) -> tuple[PipelineContext, PipelineState]:
        """
        Build the event-plane file and determine next state.

        Raises:
            FileNotFoundError: If the input directory does not exist
        """
        self._log_state_entry(context)
        config = context.config.event_plane_config

        files = self.file_selector.select(config.input_dir)
        output_path = config.output_path

        batch_idx = context.config.batch_job_index
        total_batches = context.config.total_batch_jobs
        if batch_idx is not None and total_batches is not None:
            self.logger.info(f"Batch mode: job {batch_idx}/{total_batches}")
            files = get_batch_slice(files, batch_idx, total_batches)
            output_path = batch_output_path(output_path, batch_idx)

        if not files:
            self.logger.warning(f"No input files matched in {config.input_dir}")

        collector = EventPlaneStatisticsCollector()

        with RecordWriter(
            output_path,
            tree_name=config.output_tree_name,
            flush_threshold=config.flush_threshold,
            branch_types=EventPlaneRecord.branch_types()
        ) as writer:
            for result in self.processor.process_files(
                file_paths=files,
                tree_name=config.input_tree_name,
                directory_name=config.input_directory_name,
                step_size=config.step_size,
                on_success=collector.record_success,
                on_error=collector.record_failure
            ):
                writer.extend(record.to_branches() for record in result.records)
                self.logger.info(
                    f"{result.file_path}: {result.counts.emitted}/{result.counts.total_events} "
                    f"events kept ({result.processing_time_sec:.1f}s)"
                )

        stats = collector.snapshot()
        self.logger.info(
            f"Event plane complete: {stats.successful_files}/{stats.total_files} files, "
            f"{stats.events.emitted}/{stats.events.total_events} events written "
            f"({stats.events.failed_event_gate} failed event cuts, "
            f"{stats.events.failed_multiplicity} failed multiplicity) -> {output_path}"
        )

        updated_context = context.with_event_plane_output(files, output_path, stats)
        next_state = self._determine_next_state(updated_context)

        self._log_state_exit(context, next_state)
        return updated_context, next_state
