#!/usr/bin/env python3
"""
Main entry point for the PbPb event-plane pipeline.

Stages (enabled in the config's `tasks` section):
  - event plane: Q-vectors per event from the EventTuplePV files
  - matching:    Lambda candidate cuts + join with the event-plane file

Supports batch job execution via --batch-job-index / --total-batch-jobs:
each job builds event planes for its slice of the input files and writes
its own output segment and stats JSON.
"""

import sys
import logging
import argparse
import yaml

from domain.config import PipelineConfig
from pipeline.executor import PipelineExecutor


def setup_logging(level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file."""
    with open(config_path, 'r') as f:
        return yaml.safe_load(f) or {}


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="PbPb event-plane Q-vectors and Lambda matching",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # All enabled stages from config.yaml
  python main.py

  # Event planes from another directory
  python main.py --input-dir /data/pbpb2024 --event-plane-output out/EventPlane.root

  # Match candidate file 3
  python main.py --candidate-file /data/L0/3.root --file-index 3

  # Batch array job over the input files
  python main.py --batch-job-index 1 --total-batch-jobs 4

  # Dry-run to validate config
  python main.py --dry-run
        """
    )

    parser.add_argument(
        "--config", type=str, default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Validate configuration without running pipeline"
    )

    ep_group = parser.add_argument_group("Event Plane Options")
    ep_group.add_argument(
        "--input-dir", type=str, default=None,
        help="Directory of EventTuplePV input files"
    )
    ep_group.add_argument(
        "--event-plane-output", type=str, default=None,
        help="Event-plane output file"
    )

    match_group = parser.add_argument_group("Matching Options")
    match_group.add_argument(
        "--candidate-file", type=str, default=None,
        help="Lambda candidate file"
    )
    match_group.add_argument(
        "--file-index", type=int, default=None,
        help="Candidate file number, used in the output file name"
    )
    match_group.add_argument(
        "--event-plane-file", type=str, default=None,
        help="Event-plane file to match candidates against"
    )

    batch_group = parser.add_argument_group("Batch Job Options")
    batch_group.add_argument(
        "--batch-job-index", type=int, default=None,
        help="This job's index (1-based)"
    )
    batch_group.add_argument(
        "--total-batch-jobs", type=int, default=None,
        help="Total number of batch jobs"
    )

    args = parser.parse_args(argv)

    if args.batch_job_index is not None and args.total_batch_jobs is None:
        parser.error("--total-batch-jobs is required when --batch-job-index is set")
    if args.total_batch_jobs is not None and args.batch_job_index is None:
        parser.error("--batch-job-index is required when --total-batch-jobs is set")

    return args


def apply_overrides(config_dict: dict, args) -> dict:
    """Inject command line values into the config dict (override YAML values)."""
    ep_overrides = {
        "input_dir": args.input_dir,
        "output_path": args.event_plane_output,
    }
    matching_overrides = {
        "candidate_file": args.candidate_file,
        "file_index": args.file_index,
        "event_plane_file": args.event_plane_file,
    }

    for section, overrides in (
        ("event_plane_task_config", ep_overrides),
        ("matching_task_config", matching_overrides),
    ):
        for key, value in overrides.items():
            if value is not None:
                config_dict.setdefault(section, {})[key] = value

    if args.batch_job_index is not None:
        config_dict.setdefault("run_metadata", {})
        config_dict["run_metadata"]["batch_job_index"] = args.batch_job_index
        config_dict["run_metadata"]["total_batch_jobs"] = args.total_batch_jobs

    return config_dict


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("PbPb event-plane pipeline")
    logger.info("=" * 60)

    try:
        logger.info(f"Loading configuration from: {args.config}")
        config_dict = apply_overrides(load_config(args.config), args)
        config = PipelineConfig.from_dict(config_dict)
        logger.info("Configuration loaded and validated successfully")
    except (OSError, KeyError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    batch_info = ""
    if config.batch_job_index is not None:
        batch_info = f" (batch {config.batch_job_index}/{config.total_batch_jobs})"

    if args.dry_run:
        logger.info("Dry run mode - configuration is valid, exiting")
        logger.info(f"Enabled tasks: {[k for k, v in vars(config.tasks).items() if v]}")
        return 0

    try:
        executor = PipelineExecutor(config)
        final_context = executor.run()
        executor.save_stats(final_context)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    if final_context.is_successful:
        logger.info(f"Pipeline completed successfully{batch_info}")
        return 0

    logger.error(f"Pipeline failed: {final_context.error_message}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
