"""
MatchingHandler - Handles the MATCHING state.

Indexes the event-plane file, runs every Lambda candidate through the cut
flow and writes the matched candidates.
"""

from orchestration.context import PipelineContext
from orchestration.states import PipelineState
from .base import StateHandler
from domain.records import CandidateRecord, KEY_BRANCHES
from services import consts
from services.matching.index import EventPlaneIndex
from services.matching.matcher import CandidateMatcher
from services.reading.record_stream import RecordStream
from services.reading.record_writer import RecordWriter


class MatchingHandler(StateHandler):
    """Handler for MATCHING state."""

    def handle(self, context: PipelineContext) -> tuple[PipelineContext, PipelineState]:
        """
        Match one candidate file against the event-plane file.

        Raises:
            RecordStreamError: If either input file or its tree cannot be read
            DuplicateKeyError: On a repeated key under the 'error' policy
        """
        self._log_state_entry(context)
        config = context.config.matching_config

        event_plane_branches = None
        if config.merge_fields is not None:
            event_plane_branches = list(KEY_BRANCHES) + [
                name for name in config.merge_fields if name not in KEY_BRANCHES
            ]

        with RecordStream(
            config.event_plane_file,
            tree_name=config.event_plane_tree_name,
            directory_name=config.event_plane_directory_name,
            branches=event_plane_branches,
            step_size=config.step_size
        ) as stream:
            event_plane = stream.read_all()

        index = EventPlaneIndex.from_batch(event_plane, duplicate_policy=config.duplicate_policy)

        matcher = CandidateMatcher(
            index=index,
            event_plane=event_plane,
            event_cuts=config.event_cuts,
            candidate_cuts=config.candidate_cuts,
            merge_fields=config.merge_fields,
            log_unmatched=config.log_unmatched,
            progress_interval=config.progress_interval,
            file_index=config.file_index
        )

        optional_branches = [
            name for name in CandidateRecord.branch_names()
            if name not in consts.CANDIDATE_REQUIRED_BRANCHES
        ]

        with RecordStream(
            config.candidate_file,
            tree_name=config.candidate_tree_name,
            directory_name=config.candidate_directory_name,
            branches=consts.CANDIDATE_REQUIRED_BRANCHES,
            optional_branches=optional_branches,
            step_size=config.step_size
        ) as candidates, RecordWriter(
            config.output_path,
            tree_name=config.output_tree_name,
            flush_threshold=config.flush_threshold
        ) as writer:
            for record in matcher.match_stream(candidates):
                writer.append(record.to_branches())

        stats = matcher.statistics
        self._log_summary(stats)

        updated_context = context.with_matching_output(config.output_path, stats)
        next_state = self._determine_next_state(updated_context)

        self._log_state_exit(context, next_state)
        return updated_context, next_state

    def _log_summary(self, stats):
        self.logger.info(f"Summary for file {stats.file_index}:")
        self.logger.info(f"  Total Lambdas:      {stats.total}")
        self.logger.info(f"  Failed cuts:        {stats.failed_cuts}")
        self.logger.info(f"  No EP match:        {stats.unmatched}")
        self.logger.info(f"  Successfully saved: {stats.saved}")
        self.logger.info("  Cut breakdown:")
        for line in stats.cut_flow_lines():
            self.logger.info(f"    {line}")
        self.logger.info(f"  Runs present: {list(stats.run_numbers)}")
