"""
RecordStream service - Single responsibility: Read one ROOT tree.

Sequential, batched reader over one input file's tree using uproot.
No selection logic, no state beyond the open file.
"""

import logging
from typing import Iterator, Optional, Sequence
import numpy as np
import uproot

from domain.events import EventBatch


class RecordStreamError(Exception):
    """Raised when an input file or its expected tree cannot be read."""


class RecordStream:
    """
    Reader over a single tree, optionally inside a TDirectory.

    Use as a context manager; entries are read in ``step_size`` batches.
    """

    def __init__(
        self,
        file_path: str,
        tree_name: str,
        directory_name: Optional[str] = None,
        branches: Optional[Sequence[str]] = None,
        optional_branches: Sequence[str] = (),
        step_size: int = 50_000
    ):
        """
        Initialize the stream.

        Args:
            file_path: Path or URI to ROOT file
            tree_name: Name of the tree to read
            directory_name: TDirectory holding the tree, if any
            branches: Branches that must exist (all branches if None)
            optional_branches: Branches read only when the tree has them
            step_size: Number of entries to read per batch
        """
        if step_size <= 0:
            raise ValueError(f"step_size must be positive, got {step_size}")

        self.file_path = file_path
        self.tree_name = tree_name
        self.directory_name = directory_name
        self.branches = list(branches) if branches is not None else None
        self.optional_branches = list(optional_branches)
        self.step_size = step_size

        self._file = None
        self._tree = None
        self._selected: list[str] = []

    def __enter__(self) -> 'RecordStream':
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def open(self):
        """Open the file and locate the tree; raises RecordStreamError on failure."""
        try:
            self._file = uproot.open(self.file_path)
        except Exception as e:
            raise RecordStreamError(f"Could not open file {self.file_path}: {e}") from e

        try:
            self._tree = self._locate_tree(self._file)
            self._selected = self._select_branches(set(self._tree.keys()))
        except RecordStreamError:
            self.close()
            raise

    def close(self):
        if self._file is not None:
            self._file.close()
        self._file = None
        self._tree = None

    @property
    def num_entries(self) -> int:
        return self._require_tree().num_entries

    @property
    def selected_branches(self) -> list[str]:
        return list(self._selected)

    def iter_batches(self) -> Iterator[EventBatch]:
        """
        Yield consecutive EventBatches covering the whole tree.

        Yields:
            EventBatch per entry range of at most ``step_size`` entries
        """
        tree = self._require_tree()
        n_entries = tree.num_entries

        for entry_start in range(0, n_entries, self.step_size):
            entry_stop = min(entry_start + self.step_size, n_entries)
            yield self._read_range(tree, entry_start, entry_stop)

    def __iter__(self) -> Iterator[dict]:
        """Yield the field set of each event in file order."""
        for batch in self.iter_batches():
            yield from batch.iter_rows()

    def read_all(self) -> EventBatch:
        """Read every entry as a single batch."""
        tree = self._require_tree()
        return self._read_range(tree, 0, tree.num_entries)

    def read_entry(self, index: int) -> dict:
        """Field set of one entry by its position in the tree."""
        tree = self._require_tree()
        if not 0 <= index < tree.num_entries:
            raise IndexError(f"entry {index} out of range for {tree.num_entries} entries")
        return self._read_range(tree, index, index + 1).row(0)

    def _read_range(self, tree, entry_start: int, entry_stop: int) -> EventBatch:
        if entry_stop <= entry_start:
            return self._empty_batch(entry_start)
        arrays = tree.arrays(
            self._selected,
            entry_start=entry_start,
            entry_stop=entry_stop,
            library="ak"
        )
        return EventBatch.from_awkward(arrays, entry_start=entry_start, source=self.file_path)

    def _empty_batch(self, entry_start: int) -> EventBatch:
        return EventBatch(
            columns={name: np.empty(0) for name in self._selected},
            entry_start=entry_start,
            source=self.file_path,
        )

    def _locate_tree(self, root_file):
        keys = self._strip_cycles(root_file.keys())
        path = f"{self.directory_name}/{self.tree_name}" if self.directory_name else self.tree_name

        if self.directory_name and self.directory_name not in keys:
            raise RecordStreamError(
                f"Directory '{self.directory_name}' not found in file: {self.file_path}"
            )
        if path not in keys:
            raise RecordStreamError(
                f"Tree '{path}' not found in file: {self.file_path}"
            )
        return root_file[path]

    @staticmethod
    def _strip_cycles(keys: Sequence[str]) -> set[str]:
        """Drop ROOT cycle suffixes (``name;1``) from key paths."""
        stripped = set()
        for key in keys:
            stripped.add("/".join(part.split(";")[0] for part in key.split("/")))
        return stripped

    def _select_branches(self, tree_branches: set[str]) -> list[str]:
        if self.branches is None:
            return sorted(tree_branches)

        missing = [b for b in self.branches if b not in tree_branches]
        if missing:
            raise RecordStreamError(
                f"Branches {missing} not found in tree '{self.tree_name}' of {self.file_path}"
            )

        skipped = [b for b in self.optional_branches if b not in tree_branches]
        if skipped:
            logging.debug(f"Optional branches not in {self.file_path}: {skipped}")

        selected = list(self.branches)
        selected.extend(
            b for b in self.optional_branches
            if b in tree_branches and b not in selected
        )
        return selected

    def _require_tree(self):
        if self._tree is None:
            raise RecordStreamError(f"Stream for {self.file_path} is not open")
        return self._tree


def read_key_columns(batch: EventBatch, run_branch: str, event_branch: str) -> tuple[np.ndarray, np.ndarray]:
    """Run and event number columns of a batch as unsigned integer arrays."""
    runs = np.asarray(batch.scalar(run_branch)).astype(np.uint64)
    events = np.asarray(batch.scalar(event_branch)).astype(np.uint64)
    return runs, events

