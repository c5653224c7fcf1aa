"""
Shared builders for test events, candidates and ROOT input files.
"""

import numpy as np
import awkward as ak
import pytest
import uproot

from domain.events import EventBatch


RUN = 274156

PASSING_CANDIDATE = {
    "nBackTracks": 20,
    "nVeloTracks": 100,
    "nPVs": 1,
    "PVZ": 0.0,
    "L0_BPVFDCHI2": 200.0,
    "L0_BPVDIRA": 0.99995,
    "p_BPVIPCHI2": 50.0,
    "pi_BPVIPCHI2": 50.0,
    "p_PT": 1000.0,
    "pi_PT": 300.0,
    "p_GHOSTPROB": 0.01,
    "pi_GHOSTPROB": 0.01,
}


def region_tracks(bin1=5, bin2=5, bin3=5, backward=5):
    """Track lists with the given number of tracks per region (eta 1.0, 3.0, 5.0, flipped 1.0)."""
    eta = [1.0] * bin1 + [3.0] * bin2 + [5.0] * bin3 + [1.0] * backward
    phi = list(np.linspace(0.1, 3.0, len(eta)))
    is_backward = [0] * (bin1 + bin2 + bin3) + [1] * backward
    return eta, phi, is_backward


def make_event(eta=(), phi=(), ip_chi2=None, is_backward=None, **overrides) -> dict:
    """Field set of one EventTuplePV entry that passes the event gate."""
    n_tracks = len(eta)
    event = {
        "RUNNUMBER": RUN,
        "EVENTNUMBER": 1,
        "GPSTIME": 123456789,
        "nPVs": 1,
        "PVX": np.array([0.1]),
        "PVY": np.array([-0.1]),
        "PVZ": np.array([5.0]),
        "nBackTracks": 20,
        "nVeloTracks": 100,
        "VELOTRACK_ETA": np.asarray(eta, dtype=np.float64),
        "VELOTRACK_PHI": np.asarray(phi, dtype=np.float64),
        "VELOTRACK_BIPCHI2": np.zeros(n_tracks) if ip_chi2 is None else np.asarray(ip_chi2, dtype=np.float64),
        "VELOTRACK_ISBACKWARD": np.zeros(n_tracks, dtype=np.int32) if is_backward is None else np.asarray(is_backward, dtype=np.int32),
    }
    event.update(overrides)
    return event


def make_candidate_batch(candidates: list[dict]) -> EventBatch:
    """Candidate batch from per-candidate overrides of a passing candidate."""
    rows = []
    for index, overrides in enumerate(candidates):
        row = {"RUNNUMBER": RUN, "EVENTNUMBER": index}
        row.update(PASSING_CANDIDATE)
        row.update(overrides)
        rows.append(row)
    return EventBatch(columns={name: np.array([row[name] for row in rows]) for name in rows[0]})


def make_event_plane_batch(keys: list[tuple[int, int]], **columns) -> EventBatch:
    """Event-plane angle batch with the given keys and extra columns."""
    data = {
        "RUNNUMBER": np.array([run for run, _ in keys], dtype=np.uint32),
        "EVENTNUMBER": np.array([event for _, event in keys], dtype=np.uint64),
    }
    for name, values in columns.items():
        data[name] = np.asarray(values)
    return EventBatch(columns=data, source="memory")


def write_event_tuple(path, events: list[dict]):
    """Write events (from make_event) as EventTuplePV/EventTuplePV with one jagged branch per VELOTRACK column."""
    counts = np.array([len(e["VELOTRACK_ETA"]) for e in events], dtype=np.int64)

    def jagged(name, dtype):
        flat = np.concatenate([np.asarray(e[name], dtype=dtype) for e in events]) if events else np.empty(0, dtype)
        return ak.unflatten(flat, counts)

    with uproot.recreate(path) as root_file:
        root_file["EventTuplePV/EventTuplePV"] = {
            "RUNNUMBER": np.array([e["RUNNUMBER"] for e in events], dtype=np.uint32),
            "EVENTNUMBER": np.array([e["EVENTNUMBER"] for e in events], dtype=np.uint64),
            "GPSTIME": np.array([e["GPSTIME"] for e in events], dtype=np.uint64),
            "nPVs": np.array([e["nPVs"] for e in events], dtype=np.int32),
            "PVZ": np.array([np.asarray(e["PVZ"]).flat[0] for e in events], dtype=np.float32),
            "nBackTracks": np.array([e["nBackTracks"] for e in events], dtype=np.int32),
            "nVeloTracks": np.array([e["nVeloTracks"] for e in events], dtype=np.int32),
            # Separate jagged arrays keep their exact branch names
            "VELOTRACK_ETA": jagged("VELOTRACK_ETA", np.float64),
            "VELOTRACK_PHI": jagged("VELOTRACK_PHI", np.float64),
            "VELOTRACK_BIPCHI2": jagged("VELOTRACK_BIPCHI2", np.float64),
            "VELOTRACK_ISBACKWARD": jagged("VELOTRACK_ISBACKWARD", np.int32),
        }


def write_candidates(path, candidates: list[dict]):
    """Write candidates (overrides of a passing candidate) as L0Tuple/DecayTree."""
    batch = make_candidate_batch(candidates)
    with uproot.recreate(path) as root_file:
        root_file["L0Tuple/DecayTree"] = {
            name: np.asarray(batch.column(name)) for name in batch.fields
        }


@pytest.fixture
def passing_tracks():
    """Five tracks in every region."""
    return region_tracks()
