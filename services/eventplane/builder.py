"""
EventPlaneBuilder - Turns VELO track lists into per-event Q-vector records.

Per event: event gate -> track loop (quality cut, sign convention,
region classification, accumulation) -> multiplicity gate -> emit or discard.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterable, Iterator, Mapping, Optional
import numpy as np

from domain.config import EventCutsConfig, TrackCutsConfig
from domain.events import EventBatch, TrackArrays
from domain.records import EventPlaneRecord, EVENT_MULTIPLICITY_BRANCHES
from domain.statistics import EventCounts
from services import consts
from services.reading.record_stream import RecordStream
from .event_gate import EventGate
from .harmonics import HarmonicAccumulator
from .regions import Region, RegionClassifier, FORWARD_BINS, apply_sign_convention


class EventOutcome(Enum):
    """How an event left the builder."""

    EMITTED = auto()
    FAILED_EVENT_GATE = auto()
    FAILED_MULTIPLICITY = auto()


# Forward regions that must each reach the minimum multiplicity
GATED_REGIONS = (Region.FORWARD_ALL,) + FORWARD_BINS


@dataclass(frozen=True)
class FileResult:
    """Records and outcome counts of one input file."""

    file_path: str
    records: tuple[EventPlaneRecord, ...]
    counts: EventCounts
    processing_time_sec: float


def _leading(value, fill: float = np.nan) -> float:
    """Scalar branch value, or the first entry of an array branch."""
    array = np.asarray(value)
    if array.ndim == 0:
        return float(array)
    return float(array.flat[0]) if array.size else fill


def tracks_from_event(event: Mapping[str, Any]) -> TrackArrays:
    """Build the track arrays of one event from its VELOTRACK branches."""
    return TrackArrays(
        eta=np.asarray(event[consts.TRACK_ETA_BRANCH], dtype=np.float64),
        phi=np.asarray(event[consts.TRACK_PHI_BRANCH], dtype=np.float64),
        ip_chi2=np.asarray(event[consts.TRACK_IP_CHI2_BRANCH], dtype=np.float64),
        is_backward=np.asarray(event[consts.TRACK_IS_BACKWARD_BRANCH]) == consts.BACKWARD_FLAG,
    )


class EventPlaneBuilder:
    """
    Computes Q-vectors per event.

    Holds only configuration; every event gets a fresh accumulator, so one
    builder can serve several files (and threads) at once.
    """

    def __init__(
        self,
        event_cuts: EventCutsConfig = EventCutsConfig(),
        track_cuts: TrackCutsConfig = TrackCutsConfig()
    ):
        self.gate = EventGate(event_cuts)
        self.classifier = RegionClassifier(track_cuts)
        self.min_multiplicity = track_cuts.min_region_multiplicity
        self.logger = logging.getLogger(self.__class__.__name__)

    def process_event(self, event: Mapping[str, Any]) -> tuple[EventOutcome, Optional[EventPlaneRecord]]:
        """
        Run one event through the gates.

        Args:
            event: Field set of one input event

        Returns:
            Tuple of (outcome, record); record is None unless EMITTED
        """
        if not self.gate.passes(
            n_pvs=event[consts.PV_COUNT_BRANCH],
            n_back_tracks=event[consts.BACK_TRACKS_BRANCH],
            pv_z=_leading(event["PVZ"]),
            n_velo_tracks=event[consts.VELO_TRACKS_BRANCH],
        ):
            return EventOutcome.FAILED_EVENT_GATE, None

        accumulator = self.accumulate(tracks_from_event(event))

        if not self.passes_multiplicity(accumulator):
            return EventOutcome.FAILED_MULTIPLICITY, None

        return EventOutcome.EMITTED, self._make_record(event, accumulator)

    def accumulate(self, tracks: TrackArrays) -> HarmonicAccumulator:
        """Quality cut, sign convention and region sums for one event's tracks."""
        good = tracks.select(self.classifier.passes_quality(tracks))
        flipped = apply_sign_convention(good)

        accumulator = HarmonicAccumulator()
        accumulator.add_tracks(flipped, self.classifier.masks(flipped.eta))
        return accumulator

    def passes_multiplicity(self, accumulator: HarmonicAccumulator) -> bool:
        """Every forward region and the backward-flagged tally reach the minimum."""
        if accumulator.backward_tracks < self.min_multiplicity:
            return False
        return all(
            accumulator.count(region) >= self.min_multiplicity
            for region in GATED_REGIONS
        )

    def process(self, events: Iterable[Mapping[str, Any]]) -> Iterator[tuple[EventOutcome, Optional[EventPlaneRecord]]]:
        for event in events:
            yield self.process_event(event)

    def process_batch(self, batch: EventBatch) -> tuple[list[EventPlaneRecord], EventCounts]:
        """Run every event of a batch; returns emitted records and outcome counts."""
        records = []
        outcomes = {outcome: 0 for outcome in EventOutcome}

        for outcome, record in self.process(batch.iter_rows()):
            outcomes[outcome] += 1
            if record is not None:
                records.append(record)

        counts = EventCounts(
            total_events=len(batch),
            failed_event_gate=outcomes[EventOutcome.FAILED_EVENT_GATE],
            failed_multiplicity=outcomes[EventOutcome.FAILED_MULTIPLICITY],
            emitted=outcomes[EventOutcome.EMITTED],
        )
        return records, counts

    def build_file(
        self,
        file_path: str,
        tree_name: str = "EventTuplePV",
        directory_name: Optional[str] = "EventTuplePV",
        step_size: int = 50_000
    ) -> FileResult:
        """
        Process every event of one input file.

        Raises:
            RecordStreamError: If the file, directory or tree cannot be read
        """
        start_time = time.time()
        records: list[EventPlaneRecord] = []
        counts = EventCounts()

        with RecordStream(
            file_path,
            tree_name=tree_name,
            directory_name=directory_name,
            branches=consts.EVENT_PLANE_REQUIRED_BRANCHES,
            optional_branches=consts.EVENT_PLANE_OPTIONAL_BRANCHES,
            step_size=step_size,
        ) as stream:
            self.logger.debug(f"file: {file_path} opened ({stream.num_entries} entries)")
            for batch in stream.iter_batches():
                batch_records, batch_counts = self.process_batch(batch)
                records.extend(batch_records)
                counts = counts + batch_counts

        elapsed = time.time() - start_time
        self.logger.debug(
            f"{file_path}: {counts.emitted}/{counts.total_events} events emitted in {elapsed:.1f}s"
        )
        return FileResult(
            file_path=file_path,
            records=tuple(records),
            counts=counts,
            processing_time_sec=elapsed,
        )

    def _make_record(self, event: Mapping[str, Any], accumulator: HarmonicAccumulator) -> EventPlaneRecord:
        return EventPlaneRecord(
            run_number=int(event[consts.RUN_NUMBER_BRANCH]),
            event_number=int(event[consts.EVENT_NUMBER_BRANCH]),
            gps_time=int(event.get(consts.GPS_TIME_BRANCH, 0)),
            pv_x=_leading(event.get("PVX", np.nan)),
            pv_y=_leading(event.get("PVY", np.nan)),
            pv_z=_leading(event["PVZ"]),
            multiplicities={name: int(event.get(name, 0)) for name in EVENT_MULTIPLICITY_BRANCHES},
            qx_back=accumulator.qx_back.copy(),
            qy_back=accumulator.qy_back.copy(),
            qx_for=accumulator.qx_for.copy(),
            qy_for=accumulator.qy_for.copy(),
            qx_back_weta=accumulator.qx_back_weta.copy(),
            qy_back_weta=accumulator.qy_back_weta.copy(),
            qx_for_weta=accumulator.qx_for_weta.copy(),
            qy_for_weta=accumulator.qy_for_weta.copy(),
            q_multiplicity=(
                accumulator.count(Region.FORWARD_1),
                accumulator.count(Region.FORWARD_2),
                accumulator.count(Region.FORWARD_3),
                accumulator.backward_tracks,
            ),
        )
