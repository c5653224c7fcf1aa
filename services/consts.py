# Event-level branches of the EventTuplePV input tree
RUN_NUMBER_BRANCH = "RUNNUMBER"
EVENT_NUMBER_BRANCH = "EVENTNUMBER"
GPS_TIME_BRANCH = "GPSTIME"
PV_COUNT_BRANCH = "nPVs"
BACK_TRACKS_BRANCH = "nBackTracks"
VELO_TRACKS_BRANCH = "nVeloTracks"

# Per-track VELO branches
TRACK_ETA_BRANCH = "VELOTRACK_ETA"
TRACK_PHI_BRANCH = "VELOTRACK_PHI"
TRACK_IP_CHI2_BRANCH = "VELOTRACK_BIPCHI2"
TRACK_IS_BACKWARD_BRANCH = "VELOTRACK_ISBACKWARD"

EVENT_PLANE_REQUIRED_BRANCHES = (
    RUN_NUMBER_BRANCH,
    EVENT_NUMBER_BRANCH,
    PV_COUNT_BRANCH,
    "PVZ",
    BACK_TRACKS_BRANCH,
    VELO_TRACKS_BRANCH,
    TRACK_ETA_BRANCH,
    TRACK_PHI_BRANCH,
    TRACK_IP_CHI2_BRANCH,
    TRACK_IS_BACKWARD_BRANCH,
)

# Copied to the output when present, zero otherwise
EVENT_PLANE_OPTIONAL_BRANCHES = (
    GPS_TIME_BRANCH,
    "PVX",
    "PVY",
    "nVeloClusters",
    "nEcalClusters",
    "ECalETot",
    "nLongTracks",
    "nVPClusters",
)

# Candidate branches every cut depends on; the rest are read when present
CANDIDATE_REQUIRED_BRANCHES = (
    RUN_NUMBER_BRANCH,
    EVENT_NUMBER_BRANCH,
    PV_COUNT_BRANCH,
    "PVZ",
    BACK_TRACKS_BRANCH,
    VELO_TRACKS_BRANCH,
    "L0_BPVFDCHI2",
    "L0_BPVDIRA",
    "p_BPVIPCHI2",
    "pi_BPVIPCHI2",
    "p_PT",
    "pi_PT",
    "p_GHOSTPROB",
    "pi_GHOSTPROB",
)

# Flag value marking a backward VELO track
BACKWARD_FLAG = 1

# Log matching progress every N candidates
DEFAULT_PROGRESS_INTERVAL = 100_000
