"""
CandidateMatcher - Cut-flow, index lookup and merge for Lambda candidates.

Single responsibility: turn a candidate stream into matched records while
keeping the cut-by-cut and matching totals.
"""

import logging
import threading
from typing import Iterator, Optional, Sequence

from domain.config import CandidateCutsConfig, EventCutsConfig
from domain.events import EventBatch
from domain.records import CandidateRecord, MatchedRecord, KEY_BRANCHES
from domain.statistics import MatchingStatistics
from services import consts
from services.reading.record_stream import RecordStream, read_key_columns
from .candidate_cuts import CandidateCuts, CUT_NAMES
from .index import EventPlaneIndex


class CandidateMatcher:
    """
    Applies the candidate cuts and joins survivors with their event-plane record.

    Counters are lock-protected so batches may be matched from several
    threads against the same (read-only) index.
    """

    def __init__(
        self,
        index: EventPlaneIndex,
        event_plane: EventBatch,
        event_cuts: EventCutsConfig = EventCutsConfig(),
        candidate_cuts: CandidateCutsConfig = CandidateCutsConfig(),
        merge_fields: Optional[Sequence[str]] = None,
        log_unmatched: bool = True,
        progress_interval: int = consts.DEFAULT_PROGRESS_INTERVAL,
        file_index: Optional[int] = None
    ):
        """
        Initialize the matcher.

        Args:
            index: Index over the event-plane stream
            event_plane: The indexed event-plane entries, in index order
            event_cuts: Event-level thresholds
            candidate_cuts: Lambda and daughter thresholds
            merge_fields: Event-plane fields to merge (all non-key fields if None)
            log_unmatched: Warn about every surviving candidate without a match
            progress_interval: Log progress every N candidates
            file_index: Candidate file number, reported in statistics
        """
        if progress_interval <= 0:
            raise ValueError(f"progress_interval must be positive, got {progress_interval}")

        self.index = index
        self.event_plane = event_plane
        self.cuts = CandidateCuts(event_cuts, candidate_cuts)
        self.merge_fields = self._resolve_merge_fields(event_plane, merge_fields)
        self.log_unmatched = log_unmatched
        self.progress_interval = progress_interval
        self.file_index = file_index
        self.logger = logging.getLogger(self.__class__.__name__)

        self.lock = threading.Lock()
        self.total = 0
        self.failed_cuts = 0
        self.unmatched = 0
        self.saved = 0
        self.cut_failures = {name: 0 for name in CUT_NAMES}
        self.run_numbers: set[int] = set()

    @staticmethod
    def _resolve_merge_fields(event_plane: EventBatch, merge_fields: Optional[Sequence[str]]) -> tuple[str, ...]:
        if merge_fields is None:
            return tuple(name for name in event_plane.fields if name not in KEY_BRANCHES)
        missing = [name for name in merge_fields if name not in event_plane.fields]
        if missing:
            raise ValueError(f"merge_fields {missing} not present in event-plane stream")
        return tuple(merge_fields)

    def match_batch(self, batch: EventBatch) -> list[MatchedRecord]:
        """
        Run one batch of candidates through cuts and matching.

        Args:
            batch: Candidate entries

        Returns:
            MatchedRecords of candidates that passed every cut and were found
        """
        result = self.cuts.evaluate(batch)
        runs, events = read_key_columns(batch, consts.RUN_NUMBER_BRANCH, consts.EVENT_NUMBER_BRANCH)

        matched = []
        unmatched = 0
        for position in result.passed.nonzero()[0]:
            run_number, event_number = int(runs[position]), int(events[position])
            entry = self.index.lookup(run_number, event_number)
            if entry is None:
                unmatched += 1
                if self.log_unmatched:
                    row = batch.row(position)
                    self.logger.warning(
                        f"No event-plane match for RUN {run_number} EVENT {event_number} "
                        f"nBackTracks {row.get(consts.BACK_TRACKS_BRANCH)} "
                        f"nVeloTracks {row.get(consts.VELO_TRACKS_BRANCH)}"
                    )
                continue

            matched.append(MatchedRecord(
                candidate=CandidateRecord.from_row(batch.row(position)),
                event_plane=self._event_plane_fields(entry),
                event_plane_entry=entry,
            ))

        self._update_totals(batch, result, unmatched, len(matched), runs)
        return matched

    def match_stream(self, stream: RecordStream) -> Iterator[MatchedRecord]:
        """Match every candidate of an open stream, batch by batch."""
        self.logger.info(f"Matching {stream.num_entries} candidates from {stream.file_path}")
        for batch in stream.iter_batches():
            yield from self.match_batch(batch)

    def _event_plane_fields(self, entry: int) -> dict:
        row = self.event_plane.row(entry)
        return {name: row[name] for name in self.merge_fields}

    def _update_totals(self, batch: EventBatch, result, unmatched: int, saved: int, runs):
        n = len(batch)
        failed = int(result.failed_any.sum())
        with self.lock:
            before = self.total
            self.total += n
            self.failed_cuts += failed
            self.unmatched += unmatched
            self.saved += saved
            for name, mask in result.failures.items():
                self.cut_failures[name] += int(mask.sum())
            self.run_numbers.update(int(run) for run in set(runs.tolist()))
            after = self.total
            saved_so_far = self.saved

        if after // self.progress_interval > before // self.progress_interval:
            self.logger.info(f"Processed {after} candidates ({saved_so_far} saved)")

    @property
    def statistics(self) -> MatchingStatistics:
        """Immutable snapshot of the running totals."""
        with self.lock:
            return MatchingStatistics(
                total=self.total,
                failed_cuts=self.failed_cuts,
                unmatched=self.unmatched,
                saved=self.saved,
                cut_failures=tuple(self.cut_failures.items()),
                run_numbers=tuple(sorted(self.run_numbers)),
                indexed_events=len(self.index),
                duplicate_keys=self.index.duplicate_count,
                file_index=self.file_index,
            )
