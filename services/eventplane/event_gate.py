"""
EventGate - Event-level admissibility cuts.

Pure and stateless. Works on single events and, element-wise, on whole
numpy columns so the candidate cut-flow can reuse it per batch.
"""

from typing import Union
import numpy as np

from domain.config import EventCutsConfig


ArrayLike = Union[float, int, np.ndarray]

# Cut names, in cut-flow order
CUT_BACK_TRACKS = "nBackTracks"
CUT_VELO_TRACKS = "nVeloTracks"
CUT_PV_COUNT = "nPVs"
CUT_PV_Z = "PVZ"

EVENT_CUT_NAMES = (CUT_BACK_TRACKS, CUT_VELO_TRACKS, CUT_PV_COUNT, CUT_PV_Z)


class EventGate:
    """Applies the single-PV, background, vertex-position and multiplicity cuts."""

    def __init__(self, cuts: EventCutsConfig = EventCutsConfig()):
        self.cuts = cuts

    def failures(
        self,
        n_pvs: ArrayLike,
        n_back_tracks: ArrayLike,
        pv_z: ArrayLike,
        n_velo_tracks: ArrayLike
    ) -> dict[str, Union[bool, np.ndarray]]:
        """
        Evaluate every event cut independently.

        A missing primary vertex (NaN z) fails the vertex-position cut.

        Returns:
            Dict of cut name -> True (or boolean mask) where the cut fails
        """
        pv_z = np.asarray(pv_z, dtype=np.float64)
        in_window = (pv_z >= self.cuts.pv_z_min) & (pv_z <= self.cuts.pv_z_max)
        results = {
            CUT_BACK_TRACKS: np.asarray(n_back_tracks) < self.cuts.min_back_tracks,
            CUT_VELO_TRACKS: np.asarray(n_velo_tracks) < self.cuts.min_velo_tracks,
            CUT_PV_COUNT: np.asarray(n_pvs) != self.cuts.required_pv_count,
            CUT_PV_Z: ~in_window,
        }
        return {
            name: bool(mask) if np.ndim(mask) == 0 else mask
            for name, mask in results.items()
        }

    def passes(
        self,
        n_pvs: ArrayLike,
        n_back_tracks: ArrayLike,
        pv_z: ArrayLike,
        n_velo_tracks: ArrayLike
    ) -> Union[bool, np.ndarray]:
        failed = self.failures(n_pvs, n_back_tracks, pv_z, n_velo_tracks)
        any_failed = np.logical_or.reduce([np.asarray(mask) for mask in failed.values()])
        passed = ~any_failed
        return bool(passed) if np.ndim(passed) == 0 else passed
