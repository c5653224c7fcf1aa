"""
Record domain models.

Immutable records written to (or read back from) output trees: the
per-event Q-vector record, Lambda candidates with their daughters, and
the merged candidate / event-plane record.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping
import numpy as np


N_HARMONICS = 2
N_FORWARD_SLOTS = 4  # three eta bins plus the inclusive union

# Output multiplicities copied from the input event, in output order
EVENT_MULTIPLICITY_BRANCHES = (
    "nBackTracks",
    "nVeloClusters",
    "nVeloTracks",
    "nEcalClusters",
    "ECalETot",
    "nLongTracks",
    "nVPClusters",
)

KEY_BRANCHES = ("RUNNUMBER", "EVENTNUMBER")


@dataclass(frozen=True)
class EventPlaneRecord:
    """
    Q-vectors of one event that passed the event and multiplicity gates.

    Forward arrays have shape (harmonic, slot) with slots
    (bin 1, bin 2, bin 3, inclusive); backward arrays have shape (harmonic,).
    ``q_multiplicity`` is (bin 1, bin 2, bin 3, backward-flagged tracks).
    """

    run_number: int
    event_number: int
    gps_time: int
    pv_x: float
    pv_y: float
    pv_z: float
    multiplicities: Mapping[str, int]
    qx_back: np.ndarray
    qy_back: np.ndarray
    qx_for: np.ndarray
    qy_for: np.ndarray
    qx_back_weta: np.ndarray
    qy_back_weta: np.ndarray
    qx_for_weta: np.ndarray
    qy_for_weta: np.ndarray
    q_multiplicity: tuple[int, int, int, int]

    def __post_init__(self):
        """Validate array shapes and key ranges."""
        for name in ("qx_back", "qy_back", "qx_back_weta", "qy_back_weta"):
            if np.shape(getattr(self, name)) != (N_HARMONICS,):
                raise ValueError(f"{name} must have shape ({N_HARMONICS},), got {np.shape(getattr(self, name))}")
        for name in ("qx_for", "qy_for", "qx_for_weta", "qy_for_weta"):
            if np.shape(getattr(self, name)) != (N_HARMONICS, N_FORWARD_SLOTS):
                raise ValueError(
                    f"{name} must have shape ({N_HARMONICS}, {N_FORWARD_SLOTS}), got {np.shape(getattr(self, name))}"
                )
        if len(self.q_multiplicity) != 4:
            raise ValueError(f"q_multiplicity must have 4 entries, got {len(self.q_multiplicity)}")
        missing = set(EVENT_MULTIPLICITY_BRANCHES) - set(self.multiplicities)
        if missing:
            raise ValueError(f"multiplicities missing {sorted(missing)}")
        if not 0 <= self.run_number < 2**32:
            raise ValueError(f"run_number must fit in 32 bits, got {self.run_number}")
        if not 0 <= self.event_number < 2**64:
            raise ValueError(f"event_number must fit in 64 bits, got {self.event_number}")
        object.__setattr__(self, "multiplicities", MappingProxyType(dict(self.multiplicities)))

    def to_branches(self) -> dict[str, Any]:
        """Flatten into ROOT branch name -> value."""
        branches = {
            "RUNNUMBER": np.uint32(self.run_number),
            "EVENTNUMBER": np.uint64(self.event_number),
            "GPSTIME": np.uint64(self.gps_time),
            "PVX": np.float32(self.pv_x),
            "PVY": np.float32(self.pv_y),
            "PVZ": np.float32(self.pv_z),
        }
        for name in EVENT_MULTIPLICITY_BRANCHES:
            branches[name] = np.int32(self.multiplicities[name])
        branches.update({
            "Qx_back": self.qx_back,
            "Qy_back": self.qy_back,
            "Qx_for": self.qx_for,
            "Qy_for": self.qy_for,
            "Qx_back_wEta": self.qx_back_weta,
            "Qy_back_wEta": self.qy_back_weta,
            "Qx_for_wEta": self.qx_for_weta,
            "Qy_for_wEta": self.qy_for_weta,
            "Qmulti": np.asarray(self.q_multiplicity, dtype=np.int32),
        })
        return branches

    @staticmethod
    def branch_types() -> dict[str, np.dtype]:
        """Branch dtypes of the output tree, in ``to_branches`` order."""
        types = {
            "RUNNUMBER": np.dtype(np.uint32),
            "EVENTNUMBER": np.dtype(np.uint64),
            "GPSTIME": np.dtype(np.uint64),
            "PVX": np.dtype(np.float32),
            "PVY": np.dtype(np.float32),
            "PVZ": np.dtype(np.float32),
        }
        types.update({name: np.dtype(np.int32) for name in EVENT_MULTIPLICITY_BRANCHES})
        back = np.dtype((np.float64, (N_HARMONICS,)))
        forward = np.dtype((np.float64, (N_HARMONICS, N_FORWARD_SLOTS)))
        for suffix in ("", "_wEta"):
            types[f"Qx_back{suffix}"] = back
            types[f"Qy_back{suffix}"] = back
            types[f"Qx_for{suffix}"] = forward
            types[f"Qy_for{suffix}"] = forward
        types["Qmulti"] = np.dtype((np.int32, (4,)))
        return {name: types[name] for name in _BRANCH_ORDER}


_BRANCH_ORDER = (
    ("RUNNUMBER", "EVENTNUMBER", "GPSTIME", "PVX", "PVY", "PVZ")
    + EVENT_MULTIPLICITY_BRANCHES
    + ("Qx_back", "Qy_back", "Qx_for", "Qy_for",
       "Qx_back_wEta", "Qy_back_wEta", "Qx_for_wEta", "Qy_for_wEta", "Qmulti")
)


def _scalar(value, default=np.nan):
    if value is None:
        return default
    array = np.asarray(value)
    if array.ndim == 0:
        return array.item()
    # Array branches (e.g. one entry per PV) contribute their leading value
    return array.flat[0].item() if array.size else default


# (attribute, branch suffix, output dtype)
_DAUGHTER_LAYOUT = (
    ("id", "ID", np.int32),
    ("eta", "ETA", np.float32),
    ("phi", "PHI", np.float32),
    ("mass", "MASS", np.float64),
    ("pt", "PT", np.float32),
    ("px", "PX", np.float32),
    ("py", "PY", np.float32),
    ("pz", "PZ", np.float32),
    ("ip_chi2", "BPVIPCHI2", np.float64),
    ("ghost_prob", "GHOSTPROB", np.float64),
)

_LAMBDA_LAYOUT = (
    ("id", "ID", np.int32),
    ("eta", "ETA", np.float32),
    ("phi", "PHI", np.float32),
    ("mass", "MASS", np.float64),
    ("pt", "PT", np.float32),
    ("px", "PX", np.float32),
    ("py", "PY", np.float32),
    ("pz", "PZ", np.float32),
    ("ip_chi2", "BPVIPCHI2", np.float32),
    ("fd_chi2", "BPVFDCHI2", np.float32),
    ("pv_x", "B_PV_X", np.float32),
    ("pv_y", "B_PV_Y", np.float32),
    ("pv_z", "B_PV_Z", np.float32),
    ("dira", "BPVDIRA", np.float32),
)

_CANDIDATE_EVENT_LAYOUT = (
    ("run_number", "RUNNUMBER", np.uint32),
    ("event_number", "EVENTNUMBER", np.uint64),
    ("n_pvs", "nPVs", np.int32),
    ("pv_x", "PVX", np.float32),
    ("pv_y", "PVY", np.float32),
    ("pv_z", "PVZ", np.float32),
    ("n_back_tracks", "nBackTracks", np.int32),
    ("n_velo_tracks", "nVeloTracks", np.int32),
    ("n_ecal_clusters", "nEcalClusters", np.int32),
)


class _LayoutRecord:
    """Mixin for records described by an (attribute, suffix, dtype) layout."""

    _layout: tuple = ()

    @classmethod
    def from_row(cls, row: Mapping[str, Any], prefix: str = ""):
        values = {}
        for attr, suffix, dtype in cls._layout:
            default = 0 if np.issubdtype(dtype, np.integer) else np.nan
            value = _scalar(row.get(f"{prefix}{suffix}"), default)
            values[attr] = int(value) if np.issubdtype(dtype, np.integer) else float(value)
        return cls(**values)

    def to_branches(self, prefix: str = "") -> dict[str, Any]:
        return {
            f"{prefix}{suffix}": dtype(getattr(self, attr))
            for attr, suffix, dtype in self._layout
        }

    @classmethod
    def branch_names(cls, prefix: str = "") -> tuple[str, ...]:
        return tuple(f"{prefix}{suffix}" for _, suffix, _ in cls._layout)


@dataclass(frozen=True)
class Daughter(_LayoutRecord):
    """Proton or pion daughter of a Lambda candidate."""

    _layout = _DAUGHTER_LAYOUT

    id: int
    eta: float
    phi: float
    mass: float
    pt: float
    px: float
    py: float
    pz: float
    ip_chi2: float
    ghost_prob: float


@dataclass(frozen=True)
class LambdaCandidate(_LayoutRecord):
    """Reconstructed Lambda built from a proton and a pion."""

    _layout = _LAMBDA_LAYOUT

    id: int
    eta: float
    phi: float
    mass: float
    pt: float
    px: float
    py: float
    pz: float
    ip_chi2: float
    fd_chi2: float
    pv_x: float
    pv_y: float
    pv_z: float
    dira: float


@dataclass(frozen=True)
class CandidateEvent(_LayoutRecord):
    """Event-level quantities stored alongside every candidate."""

    _layout = _CANDIDATE_EVENT_LAYOUT

    run_number: int
    event_number: int
    n_pvs: int
    pv_x: float
    pv_y: float
    pv_z: float
    n_back_tracks: int
    n_velo_tracks: int
    n_ecal_clusters: int


LAMBDA_PREFIX = "L0_"
PROTON_PREFIX = "p_"
PION_PREFIX = "pi_"


@dataclass(frozen=True)
class CandidateRecord:
    """One Lambda candidate with its event and both daughters."""

    event: CandidateEvent
    lambda0: LambdaCandidate
    proton: Daughter
    pion: Daughter

    @property
    def key(self) -> tuple[int, int]:
        return self.event.run_number, self.event.event_number

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'CandidateRecord':
        return cls(
            event=CandidateEvent.from_row(row),
            lambda0=LambdaCandidate.from_row(row, LAMBDA_PREFIX),
            proton=Daughter.from_row(row, PROTON_PREFIX),
            pion=Daughter.from_row(row, PION_PREFIX),
        )

    def to_branches(self) -> dict[str, Any]:
        branches = self.event.to_branches()
        branches.update(self.lambda0.to_branches(LAMBDA_PREFIX))
        branches.update(self.proton.to_branches(PROTON_PREFIX))
        branches.update(self.pion.to_branches(PION_PREFIX))
        return branches

    @staticmethod
    def branch_names() -> tuple[str, ...]:
        return (
            CandidateEvent.branch_names()
            + LambdaCandidate.branch_names(LAMBDA_PREFIX)
            + Daughter.branch_names(PROTON_PREFIX)
            + Daughter.branch_names(PION_PREFIX)
        )


EVENT_PLANE_COLLISION_PREFIX = "EP_"


@dataclass(frozen=True)
class MatchedRecord:
    """
    A candidate that passed all cuts, merged with its event-plane entry.

    ``event_plane`` holds the merged fields of the matched event-plane
    record, keyed by their branch names in the event-plane stream.
    """

    candidate: CandidateRecord
    event_plane: Mapping[str, Any]
    event_plane_entry: int

    def __post_init__(self):
        object.__setattr__(self, "event_plane", MappingProxyType(dict(self.event_plane)))

    def to_branches(self) -> dict[str, Any]:
        """
        Candidate branches followed by the event-plane fields.

        An event-plane field whose name is already used by the candidate
        (e.g. PVZ) is written with an ``EP_`` prefix.
        """
        branches = self.candidate.to_branches()
        for name, value in self.event_plane.items():
            if name in KEY_BRANCHES:
                continue
            out_name = f"{EVENT_PLANE_COLLISION_PREFIX}{name}" if name in branches else name
            branches[out_name] = value
        return branches

