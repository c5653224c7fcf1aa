"""
CandidateCuts - The twelve ordered Lambda candidate cuts, evaluated per batch.

The first four are the event-level cuts of EventGate.
"""

from dataclasses import dataclass
import numpy as np

from domain.config import CandidateCutsConfig, EventCutsConfig
from domain.events import EventBatch
from services import consts
from services.eventplane.event_gate import EventGate, EVENT_CUT_NAMES


# Candidate-level cuts: (name, branch, config attribute, kind)
# kind "min" fails below the threshold, "max" fails above it
_CANDIDATE_CUTS = (
    ("L0_BPVFDCHI2", "L0_BPVFDCHI2", "min_l0_fd_chi2", "min"),
    ("L0_BPVDIRA", "L0_BPVDIRA", "min_l0_dira", "min"),
    ("p_BPVIPCHI2", "p_BPVIPCHI2", "min_proton_ip_chi2", "min"),
    ("pi_BPVIPCHI2", "pi_BPVIPCHI2", "min_pion_ip_chi2", "min"),
    ("p_PT", "p_PT", "min_proton_pt", "min"),
    ("pi_PT", "pi_PT", "min_pion_pt", "min"),
    ("p_GHOSTPROB", "p_GHOSTPROB", "max_proton_ghost_prob", "max"),
    ("pi_GHOSTPROB", "pi_GHOSTPROB", "max_pion_ghost_prob", "max"),
)

CUT_NAMES = EVENT_CUT_NAMES + tuple(name for name, _, _, _ in _CANDIDATE_CUTS)


@dataclass(frozen=True)
class CutResult:
    """Per-cut failure masks of one batch and their OR."""

    failures: dict[str, np.ndarray]
    failed_any: np.ndarray

    @property
    def passed(self) -> np.ndarray:
        return ~self.failed_any


class CandidateCuts:
    """Evaluates every cut independently so each can be tallied on its own."""

    def __init__(
        self,
        event_cuts: EventCutsConfig = EventCutsConfig(),
        candidate_cuts: CandidateCutsConfig = CandidateCutsConfig()
    ):
        self.gate = EventGate(event_cuts)
        self.candidate_cuts = candidate_cuts

    def evaluate(self, batch: EventBatch) -> CutResult:
        """
        Evaluate all twelve cuts on a batch of candidates.

        NaN values fail the cut they are tested against.

        Returns:
            CutResult with one boolean mask per cut, in CUT_NAMES order
        """
        n = len(batch)
        event_failures = self.gate.failures(
            n_pvs=batch.first(consts.PV_COUNT_BRANCH),
            n_back_tracks=batch.first(consts.BACK_TRACKS_BRANCH),
            pv_z=batch.first("PVZ"),
            n_velo_tracks=batch.first(consts.VELO_TRACKS_BRANCH),
        )

        failures = {
            name: np.broadcast_to(np.asarray(mask, dtype=bool), (n,))
            for name, mask in event_failures.items()
        }
        for name, branch, attribute, kind in _CANDIDATE_CUTS:
            values = batch.first(branch)
            threshold = getattr(self.candidate_cuts, attribute)
            if kind == "min":
                failures[name] = ~(values >= threshold)
            else:
                failures[name] = ~(values <= threshold)

        failed_any = np.zeros(n, dtype=bool)
        for mask in failures.values():
            failed_any |= mask

        return CutResult(failures={name: failures[name] for name in CUT_NAMES}, failed_any=failed_any)
