"""
HarmonicAccumulator - per-region Q-vector sums for one event.

Stateful for exactly one event: a new accumulator starts at zero.
"""

from typing import Mapping
import numpy as np

from domain.events import TrackArrays
from .regions import Region


HARMONICS = (1, 2)
# Eta-weighted sums are filled for these harmonics only
WEIGHTED_HARMONICS = (1,)


class HarmonicAccumulator:
    """
    Accumulates unweighted and eta-weighted cos/sin sums per region.

    For harmonic n and a track at angle phi in region R:
    ``Qx[R][n] += w * cos(n * phi)`` and ``Qy[R][n] += w * sin(n * phi)``,
    with w = 1 for the plain sums and w = eta for the weighted ones.
    """

    def __init__(self):
        n = len(HARMONICS)
        self.qx_back = np.zeros(n)
        self.qy_back = np.zeros(n)
        self.qx_for = np.zeros((n, len(Region) - 1))
        self.qy_for = np.zeros((n, len(Region) - 1))
        self.qx_back_weta = np.zeros(n)
        self.qy_back_weta = np.zeros(n)
        self.qx_for_weta = np.zeros((n, len(Region) - 1))
        self.qy_for_weta = np.zeros((n, len(Region) - 1))
        self._counts = {region: 0 for region in Region}
        # Backward-flagged tracks, whatever their flipped eta
        self.backward_tracks = 0

    def add(self, region: Region, phi, eta):
        """
        Add tracks to one region.

        Args:
            region: Region the tracks contribute to
            phi: Final azimuthal angle(s), radians
            eta: Sign-corrected pseudorapidity, used as the weight
        """
        phi = np.atleast_1d(np.asarray(phi, dtype=np.float64))
        eta = np.atleast_1d(np.asarray(eta, dtype=np.float64))
        if phi.shape != eta.shape:
            raise ValueError(f"phi and eta must have the same shape, got {phi.shape} and {eta.shape}")

        for index, n in enumerate(HARMONICS):
            cos_n = np.cos(n * phi)
            sin_n = np.sin(n * phi)
            self._q(region, weighted=False)[0][index] += cos_n.sum()
            self._q(region, weighted=False)[1][index] += sin_n.sum()
            if n in WEIGHTED_HARMONICS:
                self._q(region, weighted=True)[0][index] += (eta * cos_n).sum()
                self._q(region, weighted=True)[1][index] += (eta * sin_n).sum()

        self._counts[region] += len(phi)

    def add_tracks(self, tracks: TrackArrays, masks: Mapping[Region, np.ndarray]):
        """
        Add every region's selected tracks; a track may feed several regions.

        Also tallies the backward-flagged tracks, which gate the event
        independently of the backward eta region.
        """
        for region, mask in masks.items():
            if np.any(mask):
                self.add(region, tracks.phi[mask], tracks.eta[mask])
        self.backward_tracks += int(np.count_nonzero(tracks.is_backward))

    def count(self, region: Region) -> int:
        """Number of tracks that contributed to a region."""
        return self._counts[region]

    def q_vector(self, region: Region, harmonic: int, weighted: bool = False) -> tuple[float, float]:
        """(Qx, Qy) of one region and harmonic order."""
        index = HARMONICS.index(harmonic)
        qx, qy = self._q(region, weighted)
        return float(qx[index]), float(qy[index])

    def _q(self, region: Region, weighted: bool) -> tuple[np.ndarray, np.ndarray]:
        """Views of the (Qx, Qy) slots of a region, indexed by harmonic."""
        if region is Region.BACKWARD:
            if weighted:
                return self.qx_back_weta, self.qy_back_weta
            return self.qx_back, self.qy_back
        slot = region.value
        if weighted:
            return self.qx_for_weta[:, slot], self.qy_for_weta[:, slot]
        return self.qx_for[:, slot], self.qy_for[:, slot]
