"""
Configuration domain models.

Validated configuration objects for the pipeline.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


DEFAULT_FILE_PATTERN = r"^00274156_00000[0-4][0-9][0-9]_1\.tuple_pbpb2024\.root$"


@dataclass(frozen=True)
class TaskConfig:
    """Configuration for which tasks to run."""

    do_event_plane: bool = False
    do_matching: bool = False

    def any_enabled(self) -> bool:
        """Check if any task is enabled."""
        return any([
            self.do_event_plane,
            self.do_matching,
        ])


@dataclass(frozen=True)
class EventCutsConfig:
    """Event-level admissibility thresholds shared by both stages."""

    required_pv_count: int = 1
    min_back_tracks: int = 10
    min_velo_tracks: int = 15
    pv_z_min: float = -100.0
    pv_z_max: float = 100.0

    def __post_init__(self):
        if self.pv_z_min > self.pv_z_max:
            raise ValueError(
                f"pv_z_min ({self.pv_z_min}) must not exceed pv_z_max ({self.pv_z_max})"
            )
        if self.required_pv_count < 0:
            raise ValueError(f"required_pv_count must be non-negative, got {self.required_pv_count}")


@dataclass(frozen=True)
class TrackCutsConfig:
    """Track quality cut and pseudorapidity region edges."""

    max_ip_chi2: float = 1.5
    backward_eta_max: float = -0.5
    # Forward bin edges: bins are (edges[i], edges[i + 1]]
    forward_eta_edges: tuple[float, ...] = (0.5, 2.5, 4.0, 6.0)
    min_region_multiplicity: int = 5

    def __post_init__(self):
        """Validate track cuts."""
        if len(self.forward_eta_edges) != 4:
            raise ValueError(
                f"forward_eta_edges must define exactly 3 bins (4 edges), got {len(self.forward_eta_edges)}"
            )
        if list(self.forward_eta_edges) != sorted(set(self.forward_eta_edges)):
            raise ValueError("forward_eta_edges must be strictly increasing")
        if self.backward_eta_max > self.forward_eta_edges[0]:
            raise ValueError("backward_eta_max must not overlap the forward region")
        if self.min_region_multiplicity < 0:
            raise ValueError(
                f"min_region_multiplicity must be non-negative, got {self.min_region_multiplicity}"
            )


@dataclass(frozen=True)
class CandidateCutsConfig:
    """Lambda candidate and daughter thresholds."""

    min_l0_fd_chi2: float = 130.0
    min_l0_dira: float = 0.9999
    min_proton_ip_chi2: float = 25.0
    min_pion_ip_chi2: float = 25.0
    min_proton_pt: float = 500.0
    min_pion_pt: float = 200.0
    max_proton_ghost_prob: float = 0.1
    max_pion_ghost_prob: float = 0.1


@dataclass(frozen=True)
class EventPlaneConfig:
    """Configuration for the event-plane (Q-vector) task."""

    # Paths
    input_dir: str
    output_path: str

    # Input selection
    file_pattern: str = DEFAULT_FILE_PATTERN
    input_directory_name: Optional[str] = "EventTuplePV"
    input_tree_name: str = "EventTuplePV"
    output_tree_name: str = "EventPlaneTuple"

    # Performance
    threads: int = 4
    step_size: int = 50_000
    flush_threshold: int = 100_000
    show_progress_bar: bool = True

    # Selection
    event_cuts: EventCutsConfig = field(default_factory=EventCutsConfig)
    track_cuts: TrackCutsConfig = field(default_factory=TrackCutsConfig)

    def __post_init__(self):
        """Validate event-plane configuration."""
        if not self.input_dir:
            raise ValueError("input_dir cannot be empty")
        if not self.output_path:
            raise ValueError("output_path cannot be empty")
        if self.threads <= 0:
            raise ValueError(f"threads must be positive, got {self.threads}")
        if self.step_size <= 0:
            raise ValueError(f"step_size must be positive, got {self.step_size}")
        if self.flush_threshold <= 0:
            raise ValueError(f"flush_threshold must be positive, got {self.flush_threshold}")


@dataclass(frozen=True)
class MatchingConfig:
    """Configuration for the candidate / event-plane matching task."""

    # Paths
    candidate_file: str
    event_plane_file: str
    output_dir: str
    file_index: int = 0
    output_template: str = "LambdaFile_newPhiEP_{file_index}.root"

    # Trees
    candidate_directory_name: Optional[str] = "L0Tuple"
    candidate_tree_name: str = "DecayTree"
    event_plane_directory_name: Optional[str] = None
    event_plane_tree_name: str = "EventPlaneTuple"
    output_tree_name: str = "LambdaEventPlaneTree"

    # Behaviour
    duplicate_policy: str = "overwrite"
    merge_fields: Optional[tuple[str, ...]] = None
    log_unmatched: bool = True
    progress_interval: int = 100_000
    step_size: int = 100_000
    flush_threshold: int = 100_000

    # Selection
    event_cuts: EventCutsConfig = field(default_factory=EventCutsConfig)
    candidate_cuts: CandidateCutsConfig = field(default_factory=CandidateCutsConfig)

    def __post_init__(self):
        """Validate matching configuration."""
        if not self.candidate_file:
            raise ValueError("candidate_file cannot be empty")
        if not self.event_plane_file:
            raise ValueError("event_plane_file cannot be empty")
        if not self.output_dir:
            raise ValueError("output_dir cannot be empty")
        if self.file_index < 0:
            raise ValueError(f"file_index must be non-negative, got {self.file_index}")
        if self.duplicate_policy not in ("overwrite", "error"):
            raise ValueError(
                f"duplicate_policy must be 'overwrite' or 'error', got {self.duplicate_policy!r}"
            )
        if self.progress_interval <= 0:
            raise ValueError(f"progress_interval must be positive, got {self.progress_interval}")
        if self.step_size <= 0:
            raise ValueError(f"step_size must be positive, got {self.step_size}")

    @property
    def output_path(self) -> str:
        """Full path of the matched output file for this file index."""
        file_name = self.output_template.format(file_index=self.file_index)
        return os.path.join(self.output_dir, file_name)


@dataclass(frozen=True)
class PipelineConfig:
    """
    Complete pipeline configuration.

    Immutable configuration object validated at creation.
    """

    # Task configuration
    tasks: TaskConfig

    # Stage configurations
    event_plane_config: Optional[EventPlaneConfig] = None
    matching_config: Optional[MatchingConfig] = None

    # Run metadata
    run_name: str = "pipeline_run"
    stats_dir: Optional[str] = None
    batch_job_index: Optional[int] = None
    total_batch_jobs: Optional[int] = None

    def __post_init__(self):
        """Validate pipeline configuration."""
        if not self.tasks.any_enabled():
            raise ValueError("At least one task must be enabled")

        if self.tasks.do_event_plane and not self.event_plane_config:
            raise ValueError("event_plane_config required when do_event_plane=True")

        if self.tasks.do_matching and not self.matching_config:
            raise ValueError("matching_config required when do_matching=True")

        if self.batch_job_index is not None:
            if self.batch_job_index < 1:
                raise ValueError(f"batch_job_index must be 1-based, got {self.batch_job_index}")
            if self.total_batch_jobs is None:
                raise ValueError("total_batch_jobs required when batch_job_index is set")
            if self.batch_job_index > self.total_batch_jobs:
                raise ValueError(
                    f"batch_job_index ({self.batch_job_index}) must not exceed "
                    f"total_batch_jobs ({self.total_batch_jobs})"
                )

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'PipelineConfig':
        """
        Create PipelineConfig from a dictionary (e.g., loaded from YAML).

        Args:
            config_dict: Dictionary with configuration values

        Returns:
            Validated PipelineConfig instance
        """
        tasks_dict = config_dict.get("tasks", {})
        tasks = TaskConfig(
            do_event_plane=tasks_dict.get("do_event_plane", False),
            do_matching=tasks_dict.get("do_matching", False),
        )

        event_cuts = _event_cuts_from_dict(config_dict.get("event_cuts", {}))

        event_plane_config = None
        if tasks.do_event_plane:
            ep_dict = config_dict.get("event_plane_task_config", {})
            track_dict = ep_dict.get("track_cuts", {})
            track_cuts = TrackCutsConfig(
                max_ip_chi2=track_dict.get("max_ip_chi2", 1.5),
                backward_eta_max=track_dict.get("backward_eta_max", -0.5),
                forward_eta_edges=tuple(track_dict.get("forward_eta_edges", [0.5, 2.5, 4.0, 6.0])),
                min_region_multiplicity=track_dict.get("min_region_multiplicity", 5),
            )
            event_plane_config = EventPlaneConfig(
                input_dir=ep_dict["input_dir"],
                output_path=ep_dict["output_path"],
                file_pattern=ep_dict.get("file_pattern", DEFAULT_FILE_PATTERN),
                input_directory_name=ep_dict.get("input_directory_name", "EventTuplePV"),
                input_tree_name=ep_dict.get("input_tree_name", "EventTuplePV"),
                output_tree_name=ep_dict.get("output_tree_name", "EventPlaneTuple"),
                threads=ep_dict.get("threads", 4),
                step_size=ep_dict.get("step_size", 50_000),
                flush_threshold=ep_dict.get("flush_threshold", 100_000),
                show_progress_bar=ep_dict.get("show_progress_bar", True),
                event_cuts=event_cuts,
                track_cuts=track_cuts,
            )

        matching_config = None
        if tasks.do_matching:
            m_dict = config_dict.get("matching_task_config", {})
            cand_dict = m_dict.get("candidate_cuts", {})
            defaults = CandidateCutsConfig()
            candidate_cuts = CandidateCutsConfig(**{
                name: cand_dict.get(name, getattr(defaults, name))
                for name in defaults.__dataclass_fields__
            })
            matching_config = MatchingConfig(
                candidate_file=m_dict["candidate_file"],
                event_plane_file=m_dict["event_plane_file"],
                output_dir=m_dict["output_dir"],
                file_index=m_dict.get("file_index", 0),
                output_template=m_dict.get("output_template", "LambdaFile_newPhiEP_{file_index}.root"),
                candidate_directory_name=m_dict.get("candidate_directory_name", "L0Tuple"),
                candidate_tree_name=m_dict.get("candidate_tree_name", "DecayTree"),
                event_plane_directory_name=m_dict.get("event_plane_directory_name"),
                event_plane_tree_name=m_dict.get("event_plane_tree_name", "EventPlaneTuple"),
                output_tree_name=m_dict.get("output_tree_name", "LambdaEventPlaneTree"),
                duplicate_policy=m_dict.get("duplicate_policy", "overwrite"),
                merge_fields=tuple(m_dict["merge_fields"]) if m_dict.get("merge_fields") else None,
                log_unmatched=m_dict.get("log_unmatched", True),
                progress_interval=m_dict.get("progress_interval", 100_000),
                step_size=m_dict.get("step_size", 100_000),
                flush_threshold=m_dict.get("flush_threshold", 100_000),
                event_cuts=event_cuts,
                candidate_cuts=candidate_cuts,
            )

        run_metadata = config_dict.get("run_metadata", {})

        return cls(
            tasks=tasks,
            event_plane_config=event_plane_config,
            matching_config=matching_config,
            run_name=run_metadata.get("run_name", "pipeline_run"),
            stats_dir=run_metadata.get("stats_dir"),
            batch_job_index=run_metadata.get("batch_job_index"),
            total_batch_jobs=run_metadata.get("total_batch_jobs"),
        )


def _event_cuts_from_dict(cuts_dict: dict) -> EventCutsConfig:
    return EventCutsConfig(
        required_pv_count=cuts_dict.get("required_pv_count", 1),
        min_back_tracks=cuts_dict.get("min_back_tracks", 10),
        min_velo_tracks=cuts_dict.get("min_velo_tracks", 15),
        pv_z_min=cuts_dict.get("pv_z_min", -100.0),
        pv_z_max=cuts_dict.get("pv_z_max", 100.0),
    )
