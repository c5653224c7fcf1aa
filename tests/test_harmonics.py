"""
Tests for HarmonicAccumulator.
"""

import numpy as np
import pytest

from domain.events import TrackArrays
from services.eventplane.harmonics import HarmonicAccumulator
from services.eventplane.regions import Region, RegionClassifier


class TestHarmonicAccumulator:
    """Tests for per-region Q-vector sums."""

    def test_new_accumulator_is_zero(self):
        """Test that every sum and counter starts at zero."""
        acc = HarmonicAccumulator()

        assert not acc.qx_for.any() and not acc.qy_back_weta.any()
        assert all(acc.count(region) == 0 for region in Region)

    def test_backward_first_harmonic(self):
        """Test phi = 0, pi/2, pi in the backward region: Qx = 0, Qy = 1."""
        acc = HarmonicAccumulator()
        acc.add(Region.BACKWARD, [0.0, np.pi / 2, np.pi], [-1.0, -1.0, -1.0])

        qx, qy = acc.q_vector(Region.BACKWARD, 1)
        assert qx == pytest.approx(0.0, abs=1e-12)
        assert qy == pytest.approx(1.0)
        assert acc.count(Region.BACKWARD) == 3

    def test_second_harmonic(self):
        """Test the n = 2 sums use cos(2 phi) and sin(2 phi)."""
        acc = HarmonicAccumulator()
        acc.add(Region.FORWARD_1, [0.0, np.pi / 2, np.pi], [1.0, 1.0, 1.0])

        qx, qy = acc.q_vector(Region.FORWARD_1, 2)
        assert qx == pytest.approx(1.0)  # 1 - 1 + 1
        assert qy == pytest.approx(0.0, abs=1e-12)

    def test_eta_weighted_first_harmonic_only(self):
        """Test that eta weights apply to n = 1 and the n = 2 slot stays zero."""
        acc = HarmonicAccumulator()
        acc.add(Region.FORWARD_2, [0.0, np.pi / 2], [3.0, 2.0])

        assert acc.q_vector(Region.FORWARD_2, 1, weighted=True) == pytest.approx((3.0, 2.0))
        assert acc.q_vector(Region.FORWARD_2, 2, weighted=True) == (0.0, 0.0)

    def test_regions_use_separate_slots(self):
        """Test that a forward bin does not leak into other slots."""
        acc = HarmonicAccumulator()
        acc.add(Region.FORWARD_3, [0.0], [5.0])

        assert acc.qx_for[0, Region.FORWARD_3.value] == 1.0
        assert acc.qx_for[0].sum() == 1.0
        assert acc.qx_back[0] == 0.0

    def test_add_tracks_counts_union_once(self):
        """Test that a track in a bin also feeds the inclusive region, counted once there."""
        tracks = TrackArrays.from_values([1.0, 3.0, 5.0, -2.0], [0.0, 0.0, 0.0, 0.0])
        acc = HarmonicAccumulator()
        acc.add_tracks(tracks, RegionClassifier().masks(tracks.eta))

        assert acc.count(Region.FORWARD_1) == 1
        assert acc.count(Region.FORWARD_2) == 1
        assert acc.count(Region.FORWARD_3) == 1
        assert acc.count(Region.FORWARD_ALL) == 3
        assert acc.count(Region.BACKWARD) == 1
        assert acc.q_vector(Region.FORWARD_ALL, 1) == pytest.approx((3.0, 0.0))
        assert acc.backward_tracks == 0

    def test_add_tracks_tallies_backward_flag(self):
        """Test that the backward tally follows the flag, not the eta region."""
        tracks = TrackArrays.from_values(
            [-0.3, -2.0, 1.0], [0.0, 0.0, 0.0], is_backward=[True, False, True]
        )
        acc = HarmonicAccumulator()
        acc.add_tracks(tracks, RegionClassifier().masks(tracks.eta))

        assert acc.backward_tracks == 2
        assert acc.count(Region.BACKWARD) == 1

    def test_shape_mismatch_fails(self):
        """Test that phi and eta must have the same shape."""
        with pytest.raises(ValueError, match="same shape"):
            HarmonicAccumulator().add(Region.BACKWARD, [0.0, 1.0], [1.0])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
