"""
Tests for EventGate.
"""

import numpy as np
import pytest

from domain.config import EventCutsConfig
from services.eventplane.event_gate import EventGate, EVENT_CUT_NAMES


GOOD = dict(n_pvs=1, n_back_tracks=20, pv_z=0.0, n_velo_tracks=100)


class TestEventGate:
    """Tests for the event-level cuts."""

    def test_good_event_passes(self):
        """Test that an event inside every window passes."""
        assert EventGate().passes(**GOOD) is True

    @pytest.mark.parametrize("field,value", [
        ("n_pvs", 0),
        ("n_pvs", 2),
        ("n_back_tracks", 9),
        ("n_velo_tracks", 14),
        ("pv_z", -100.5),
        ("pv_z", 100.5),
        ("pv_z", np.nan),
    ])
    def test_single_cut_rejects(self, field, value):
        """Test that each cut alone rejects the event."""
        event = dict(GOOD, **{field: value})
        assert EventGate().passes(**event) is False

    def test_thresholds_are_inclusive(self):
        """Test events sitting exactly on the thresholds."""
        gate = EventGate()
        assert gate.passes(n_pvs=1, n_back_tracks=10, pv_z=100.0, n_velo_tracks=15) is True
        assert gate.passes(n_pvs=1, n_back_tracks=10, pv_z=-100.0, n_velo_tracks=15) is True

    def test_failures_reports_every_failing_cut(self):
        """Test that an event failing several cuts reports all of them."""
        failures = EventGate().failures(n_pvs=2, n_back_tracks=1, pv_z=0.0, n_velo_tracks=100)

        assert list(failures) == list(EVENT_CUT_NAMES)
        assert failures == {"nBackTracks": True, "nVeloTracks": False, "nPVs": True, "PVZ": False}

    def test_columns_evaluated_element_wise(self):
        """Test evaluating whole numpy columns at once."""
        passed = EventGate().passes(
            n_pvs=np.array([1, 1, 2]),
            n_back_tracks=np.array([20, 5, 20]),
            pv_z=np.array([0.0, 0.0, 0.0]),
            n_velo_tracks=np.array([100, 100, 100]),
        )

        assert list(passed) == [True, False, False]

    def test_custom_thresholds(self):
        """Test that thresholds come from the configuration."""
        gate = EventGate(EventCutsConfig(min_velo_tracks=200))
        assert gate.passes(**GOOD) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
