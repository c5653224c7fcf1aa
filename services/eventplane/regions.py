"""
Pseudorapidity regions and the backward-track sign convention.
"""

from enum import Enum
import numpy as np

from domain.config import TrackCutsConfig
from domain.events import TrackArrays


class Region(Enum):
    """
    Eta regions a track can contribute to.

    ``FORWARD_ALL`` is the inclusive union of the three forward bins, not a
    fourth disjoint bin. The value is the slot index in forward arrays.
    """

    FORWARD_1 = 0
    FORWARD_2 = 1
    FORWARD_3 = 2
    FORWARD_ALL = 3
    BACKWARD = 4

    @property
    def is_forward(self) -> bool:
        return self is not Region.BACKWARD

    def __str__(self) -> str:
        return self.name


FORWARD_BINS = (Region.FORWARD_1, Region.FORWARD_2, Region.FORWARD_3)


def apply_sign_convention(tracks: TrackArrays) -> TrackArrays:
    """
    Flip backward tracks into the common frame: eta -> -eta, phi -> phi + pi.

    The angle is not wrapped. Returns new arrays; apply exactly once.
    """
    backward = tracks.is_backward
    return TrackArrays(
        eta=np.where(backward, -tracks.eta, tracks.eta),
        phi=np.where(backward, tracks.phi + np.pi, tracks.phi),
        ip_chi2=tracks.ip_chi2,
        is_backward=backward,
    )


class RegionClassifier:
    """Maps (sign-corrected) pseudorapidity to region membership."""

    def __init__(self, track_cuts: TrackCutsConfig = TrackCutsConfig()):
        self.track_cuts = track_cuts
        edges = track_cuts.forward_eta_edges
        # Half-open (low, high] intervals
        self._intervals = {
            Region.FORWARD_1: (edges[0], edges[1]),
            Region.FORWARD_2: (edges[1], edges[2]),
            Region.FORWARD_3: (edges[2], edges[3]),
            Region.FORWARD_ALL: (edges[0], edges[3]),
        }

    def passes_quality(self, tracks: TrackArrays) -> np.ndarray:
        """Tracks with impact-parameter chi2 within the quality cut."""
        return tracks.ip_chi2 <= self.track_cuts.max_ip_chi2

    def masks(self, eta: np.ndarray) -> dict[Region, np.ndarray]:
        """
        Region membership of every track.

        Returns:
            Dict of Region -> boolean mask; bins and the union overlap
        """
        eta = np.asarray(eta, dtype=np.float64)
        result = {Region.BACKWARD: eta < self.track_cuts.backward_eta_max}
        for region, (low, high) in self._intervals.items():
            result[region] = (eta > low) & (eta <= high)
        return result

    def classify(self, eta: float) -> tuple[Region, ...]:
        """Regions a single eta value belongs to, in Region order."""
        masks = self.masks(np.array([eta]))
        return tuple(region for region in Region if masks[region][0])
