"""
Tests for EventPlaneBuilder and ThreadedFileProcessor.
"""

import numpy as np
import pytest
from unittest.mock import patch

from domain.config import TrackCutsConfig
from services.eventplane.builder import EventPlaneBuilder, EventOutcome, tracks_from_event
from services.eventplane.threaded_processor import ThreadedFileProcessor, EventPlaneStatisticsCollector
from services.reading.record_stream import RecordStreamError

from conftest import make_event, region_tracks, write_event_tuple


def build_event(bin1=5, bin2=5, bin3=5, backward=5, **overrides):
    eta, phi, is_backward = region_tracks(bin1, bin2, bin3, backward)
    return make_event(eta, phi, is_backward=is_backward, **overrides)


class TestEventPlaneBuilder:
    """Tests for the per-event gate -> accumulate -> gate flow."""

    def test_event_with_enough_tracks_is_emitted(self):
        """Test that five tracks in every region emit a record."""
        outcome, record = EventPlaneBuilder().process_event(build_event())

        assert outcome is EventOutcome.EMITTED
        assert record.q_multiplicity == (5, 5, 5, 5)
        assert record.run_number == 274156
        assert record.pv_z == 5.0

    def test_bin_with_four_tracks_is_discarded(self):
        """Test that four tracks in forward bin 2 fail the multiplicity gate."""
        outcome, record = EventPlaneBuilder().process_event(build_event(bin2=4))

        assert outcome is EventOutcome.FAILED_MULTIPLICITY
        assert record is None

    def test_few_backward_tracks_discarded(self):
        """Test that the backward region is gated too."""
        outcome, _ = EventPlaneBuilder().process_event(build_event(backward=4))
        assert outcome is EventOutcome.FAILED_MULTIPLICITY

    def test_backward_flag_counts_outside_backward_region(self):
        """Test that flagged tracks flipped to eta -0.3 still count as backward."""
        eta, phi, is_backward = region_tracks(backward=0)
        eta = eta + [0.3] * 5
        phi = phi + [0.2] * 5
        is_backward = is_backward + [1] * 5

        outcome, record = EventPlaneBuilder().process_event(make_event(eta, phi, is_backward=is_backward))

        assert outcome is EventOutcome.EMITTED
        assert record.q_multiplicity == (5, 5, 5, 5)
        assert record.qx_back[0] == 0.0

    def test_unflagged_backward_eta_tracks_do_not_count(self):
        """Test that unflagged tracks at eta -1.0 feed the backward sums but not the backward tally."""
        eta, phi, is_backward = region_tracks(backward=0)
        eta = eta + [-1.0] * 5
        phi = phi + [0.0] * 5
        is_backward = is_backward + [0] * 5
        builder = EventPlaneBuilder()

        outcome, record = builder.process_event(make_event(eta, phi, is_backward=is_backward))
        accumulator = builder.accumulate(
            tracks_from_event(make_event(eta, phi, is_backward=is_backward))
        )

        assert outcome is EventOutcome.FAILED_MULTIPLICITY
        assert record is None
        assert accumulator.backward_tracks == 0
        assert accumulator.qx_back[0] == pytest.approx(5.0)

    def test_event_gate_failure(self):
        """Test that an event with two PVs never reaches the track loop."""
        builder = EventPlaneBuilder()
        with patch.object(builder, "accumulate") as accumulate:
            outcome, record = builder.process_event(build_event(nPVs=2))

        assert outcome is EventOutcome.FAILED_EVENT_GATE
        assert record is None
        accumulate.assert_not_called()

    def test_missing_pv_fails_gate(self):
        """Test that an empty PV list fails the vertex-position cut."""
        outcome, _ = EventPlaneBuilder().process_event(build_event(PVZ=np.array([])))
        assert outcome is EventOutcome.FAILED_EVENT_GATE

    def test_poor_quality_tracks_excluded_everywhere(self):
        """Test that tracks failing the IP cut feed no sum and no counter."""
        eta, phi, is_backward = region_tracks()
        eta = eta + [1.0, -1.0]
        phi = phi + [0.3, 0.3]
        is_backward = is_backward + [0, 0]
        ip_chi2 = [0.0] * 20 + [2.0, 2.0]

        _, record = EventPlaneBuilder().process_event(
            make_event(eta, phi, ip_chi2=ip_chi2, is_backward=is_backward)
        )
        _, reference = EventPlaneBuilder().process_event(build_event())

        assert record.q_multiplicity == reference.q_multiplicity
        np.testing.assert_allclose(record.qx_for, reference.qx_for)
        np.testing.assert_allclose(record.qy_back, reference.qy_back)

    def test_backward_tracks_are_flipped(self):
        """Test that a backward-flagged track with raw eta 1.0 feeds the backward sums at phi + pi."""
        eta, phi, is_backward = region_tracks(backward=0)
        eta = eta + [1.0] * 5
        phi = phi + [0.0] * 5
        is_backward = is_backward + [1] * 5

        _, record = EventPlaneBuilder().process_event(make_event(eta, phi, is_backward=is_backward))

        assert record.qx_back[0] == pytest.approx(-5.0)  # cos(pi)
        assert record.qx_back_weta[0] == pytest.approx(5.0)  # eta -1 times cos(pi)
        assert record.qx_back_weta[1] == 0.0

    def test_forward_union_slot(self):
        """Test that the inclusive slot holds the sum of the three bins."""
        _, record = EventPlaneBuilder().process_event(build_event())

        np.testing.assert_allclose(record.qx_for[:, 3], record.qx_for[:, :3].sum(axis=1))
        np.testing.assert_allclose(record.qy_for_weta[:, 3], record.qy_for_weta[:, :3].sum(axis=1))

    def test_configured_multiplicity(self):
        """Test that the minimum multiplicity comes from the configuration."""
        builder = EventPlaneBuilder(track_cuts=TrackCutsConfig(min_region_multiplicity=4))
        outcome, _ = builder.process_event(build_event(bin2=4))
        assert outcome is EventOutcome.EMITTED

    def test_state_not_carried_across_events(self):
        """Test that the same event gives the same record after other events."""
        builder = EventPlaneBuilder()
        _, first = builder.process_event(build_event())
        builder.process_event(build_event(bin1=30))
        _, again = builder.process_event(build_event())

        np.testing.assert_allclose(first.qx_for, again.qx_for)
        assert first.q_multiplicity == again.q_multiplicity

    def test_build_file(self, tmp_path):
        """Test processing a ROOT file with one event of each outcome."""
        path = tmp_path / "input.root"
        write_event_tuple(path, [
            build_event(EVENTNUMBER=1),
            build_event(EVENTNUMBER=2, nPVs=2),
            build_event(EVENTNUMBER=3, bin3=2),
        ])

        result = EventPlaneBuilder().build_file(str(path), step_size=2)

        assert result.counts.total_events == 3
        assert result.counts.emitted == 1
        assert result.counts.failed_event_gate == 1
        assert result.counts.failed_multiplicity == 1
        assert [r.event_number for r in result.records] == [1]

    def test_build_file_missing_tree(self, tmp_path):
        """Test that a file without the EventTuplePV directory raises RecordStreamError."""
        path = tmp_path / "input.root"
        write_event_tuple(path, [build_event()])

        with pytest.raises(RecordStreamError, match="Directory 'Other' not found"):
            EventPlaneBuilder().build_file(str(path), directory_name="Other")


class TestThreadedFileProcessor:
    """Tests for ThreadedFileProcessor."""

    def test_invalid_threads(self):
        """Test that non-positive thread counts raise ValueError."""
        with pytest.raises(ValueError, match="max_threads must be positive"):
            ThreadedFileProcessor(EventPlaneBuilder(), max_threads=0)

    def test_unreadable_file_is_skipped(self, tmp_path):
        """Test that a bad file is reported and the rest still run."""
        good = tmp_path / "good.root"
        write_event_tuple(good, [build_event()])
        bad = tmp_path / "bad.root"
        bad.write_text("not a ROOT file")

        collector = EventPlaneStatisticsCollector()
        processor = ThreadedFileProcessor(EventPlaneBuilder(), max_threads=2, show_progress=False)
        results = list(processor.process_files(
            file_paths=[str(good), str(bad)],
            tree_name="EventTuplePV",
            directory_name="EventTuplePV",
            on_success=collector.record_success,
            on_error=collector.record_failure,
        ))

        assert [r.file_path for r in results] == [str(good)]
        stats = collector.snapshot()
        assert stats.total_files == 2
        assert stats.successful_files == 1
        assert stats.failed_file_list[0][0] == str(bad)
        assert stats.events.emitted == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
