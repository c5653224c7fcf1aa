"""
Batch splitting utilities for distributed processing.

Splits the input file list across batch jobs; each job writes its own
output segment. Batch jobs are 1-indexed to match scheduler array indices.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def get_batch_slice(items: list, batch_index: int, total_batches: int) -> list:
    """
    Extract the slice of items for a specific batch job.

    Even distribution with the last batch absorbing the remainder.

    Args:
        items: Full list of items to split
        batch_index: This job's index (1-based)
        total_batches: Total number of batch jobs

    Returns:
        Slice of items for this batch job
    """
    batch_index = int(batch_index)
    total_batches = int(total_batches)

    if batch_index < 1 or batch_index > total_batches:
        raise ValueError(f"batch_index must be 1..{total_batches}, got {batch_index}")

    if not items:
        return []

    total_items = len(items)
    items_per_batch = total_items // total_batches
    start_idx = (batch_index - 1) * items_per_batch

    if batch_index == total_batches:
        end_idx = total_items
    else:
        end_idx = start_idx + items_per_batch

    logger.info(
        f"Batch {batch_index}/{total_batches}: items[{start_idx}:{end_idx}] "
        f"({end_idx - start_idx} of {total_items})"
    )
    return items[start_idx:end_idx]


def batch_output_path(output_path: str, batch_index: int) -> str:
    """
    Per-batch output segment: ``EventPlane.root`` -> ``EventPlane_batch3.root``.

    Args:
        output_path: Output file of an unsplit run
        batch_index: This job's index (1-based)

    Returns:
        Output path for this batch job
    """
    path = Path(output_path)
    return str(path.with_name(f"{path.stem}_batch{int(batch_index)}{path.suffix}"))
