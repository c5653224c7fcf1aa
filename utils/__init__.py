"""
Utility modules for pipeline.
"""

from .batching import get_batch_slice, batch_output_path

__all__ = [
    "get_batch_slice",
    "batch_output_path",
]
