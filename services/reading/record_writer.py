"""
RecordWriter service - Buffers output records and writes them to a ROOT tree.

Single responsibility: Manage record accumulation and flushing logic.
"""

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional
import numpy as np
import uproot


class RecordWriter:
    """
    Appends flat records (branch name -> value) to a tree in a new ROOT file.

    Records are accumulated in memory and written in chunks of
    ``flush_threshold`` records. Stateful; use as a context manager.
    """

    def __init__(
        self,
        file_path: str,
        tree_name: str,
        flush_threshold: int = 100_000,
        branch_types: Optional[Mapping[str, np.dtype]] = None
    ):
        """
        Initialize writer.

        Args:
            file_path: Output ROOT file (recreated)
            tree_name: Name of the output tree
            flush_threshold: Number of buffered records that triggers a write
            branch_types: Schema used to create an empty tree if no record is written
        """
        if flush_threshold <= 0:
            raise ValueError(f"flush_threshold must be positive, got {flush_threshold}")

        self.file_path = file_path
        self.tree_name = tree_name
        self._flush_threshold = flush_threshold
        self._branch_types = dict(branch_types) if branch_types else None
        self.logger = logging.getLogger(self.__class__.__name__)

        self._file = None
        self._tree = None
        self._branch_names: Optional[tuple[str, ...]] = None
        self._buffer: list[Mapping[str, Any]] = []
        self._records_written = 0

    def __enter__(self) -> 'RecordWriter':
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def open(self):
        Path(self.file_path).parent.mkdir(parents=True, exist_ok=True)
        self._file = uproot.recreate(self.file_path)

    def append(self, record: Mapping[str, Any]):
        """
        Buffer one record, flushing when the threshold is reached.

        Args:
            record: Branch name -> scalar or fixed-size array value
        """
        if self._file is None:
            raise RuntimeError(f"RecordWriter for {self.file_path} is not open")

        names = tuple(record.keys())
        if self._branch_names is None:
            self._branch_names = names
        elif set(names) != set(self._branch_names):
            raise ValueError(
                f"Record branches {sorted(set(names) ^ set(self._branch_names))} "
                f"do not match the tree schema of {self.tree_name}"
            )

        self._buffer.append(record)
        if len(self._buffer) >= self._flush_threshold:
            self.flush()

    def extend(self, records: Iterable[Mapping[str, Any]]):
        for record in records:
            self.append(record)

    def flush(self):
        """Write buffered records to the tree."""
        if not self._buffer:
            return

        data = {
            name: self._stack(name, [record[name] for record in self._buffer])
            for name in self._branch_names
        }

        if self._tree is None:
            self._file[self.tree_name] = data
            self._tree = self._file[self.tree_name]
        else:
            self._tree.extend(data)

        self._records_written += len(self._buffer)
        self.logger.debug(f"Flushed {len(self._buffer)} records to {self.file_path}:{self.tree_name}")
        self._buffer = []

    def close(self):
        """Flush remaining records and finalize the file."""
        if self._file is None:
            return
        try:
            self.flush()
            if self._tree is None:
                self._create_empty_tree()
        finally:
            self._file.close()
            self._file = None

        self.logger.info(
            f"Wrote {self._records_written} records to {self.file_path}:{self.tree_name}"
        )

    def _stack(self, name: str, values: list) -> np.ndarray:
        stacked = np.stack([np.asarray(v) for v in values])
        if self._branch_types and name in self._branch_types:
            return stacked.astype(self._branch_types[name].base, copy=False)
        return stacked

    def _create_empty_tree(self):
        if self._branch_types:
            self._file.mktree(self.tree_name, self._branch_types)
        else:
            self.logger.warning(
                f"No records and no schema for {self.tree_name}; {self.file_path} has no tree"
            )

    @property
    def records_written(self) -> int:
        """Records already written to disk."""
        return self._records_written

    @property
    def buffered_count(self) -> int:
        """Records waiting to be flushed."""
        return len(self._buffer)
