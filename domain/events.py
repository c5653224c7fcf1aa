"""
Event-related domain models.

Columnar batches of events read from a ROOT tree, and the per-event
track arrays the event-plane builder works on.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Union
import awkward as ak
import numpy as np


@dataclass(frozen=True)
class JaggedColumn:
    """
    A variable-length-per-event column stored as flat content plus offsets.

    Row ``i`` is ``content[offsets[i]:offsets[i + 1]]``.
    """

    content: np.ndarray
    offsets: np.ndarray

    def __post_init__(self):
        """Validate the offsets."""
        if len(self.offsets) == 0:
            raise ValueError("offsets must hold at least one entry")
        if self.offsets[0] != 0 or self.offsets[-1] != len(self.content):
            raise ValueError(
                f"offsets must span the content (0..{len(self.content)}), "
                f"got {self.offsets[0]}..{self.offsets[-1]}"
            )

    def __len__(self) -> int:
        return len(self.offsets) - 1

    def row(self, index: int) -> np.ndarray:
        return self.content[self.offsets[index]:self.offsets[index + 1]]

    def counts(self) -> np.ndarray:
        return np.diff(self.offsets)

    def first(self, fill: float = np.nan) -> np.ndarray:
        """First element of every row, ``fill`` where a row is empty."""
        has_entries = self.counts() > 0
        result = np.full(len(self), fill, dtype=np.float64)
        result[has_entries] = self.content[self.offsets[:-1][has_entries]]
        return result

    @classmethod
    def from_awkward(cls, array: ak.Array) -> 'JaggedColumn':
        counts = ak.to_numpy(ak.num(array, axis=1))
        offsets = np.zeros(len(counts) + 1, dtype=np.int64)
        np.cumsum(counts, out=offsets[1:])
        return cls(content=ak.to_numpy(ak.flatten(array, axis=1)), offsets=offsets)


Column = Union[np.ndarray, JaggedColumn]


@dataclass(frozen=True)
class EventBatch:
    """
    A batch of consecutive entries from a single tree.

    Regular columns (scalars or fixed-size arrays) are numpy arrays whose
    first axis is the entry; variable-length columns are ``JaggedColumn``.
    """

    columns: Mapping[str, Column]
    entry_start: int = 0
    source: str = ""
    event_count: int = field(init=False)

    def __post_init__(self):
        """Validate the event batch."""
        if self.entry_start < 0:
            raise ValueError(f"entry_start must be non-negative, got {self.entry_start}")
        lengths = {name: len(column) for name, column in self.columns.items()}
        if len(set(lengths.values())) > 1:
            raise ValueError(f"all columns must have the same length, got {lengths}")
        object.__setattr__(self, "event_count", next(iter(lengths.values()), 0))

    def __len__(self) -> int:
        return self.event_count

    @property
    def fields(self) -> list[str]:
        return list(self.columns)

    def column(self, name: str) -> Column:
        try:
            return self.columns[name]
        except KeyError:
            raise KeyError(f"Branch '{name}' not present in batch from {self.source or '<memory>'}") from None

    def scalar(self, name: str) -> np.ndarray:
        """A per-entry numpy column; rejects jagged branches."""
        column = self.column(name)
        if isinstance(column, JaggedColumn):
            raise TypeError(f"Branch '{name}' is variable-length, not a scalar column")
        return column

    def first(self, name: str, fill: float = np.nan) -> np.ndarray:
        """
        First element per entry of an array branch (e.g. the leading PV).

        Scalar branches are returned as float64.
        """
        column = self.column(name)
        if isinstance(column, JaggedColumn):
            return column.first(fill)
        if column.ndim == 1:
            return column.astype(np.float64)
        if column.shape[1] == 0:
            return np.full(len(column), fill, dtype=np.float64)
        return column[:, 0].astype(np.float64)

    def row(self, index: int) -> dict[str, Any]:
        """Field set of one entry, indexed relative to this batch."""
        if not 0 <= index < self.event_count:
            raise IndexError(f"row {index} out of range for batch of {self.event_count} entries")
        return {
            name: column.row(index) if isinstance(column, JaggedColumn) else column[index]
            for name, column in self.columns.items()
        }

    def iter_rows(self) -> Iterator[dict[str, Any]]:
        for index in range(self.event_count):
            yield self.row(index)

    @classmethod
    def from_awkward(cls, array: ak.Array, entry_start: int = 0, source: str = "") -> 'EventBatch':
        """
        Convert an awkward record array (as returned by ``tree.arrays``).

        Args:
            array: Awkward array with one field per branch
            entry_start: Global entry number of the first row
            source: File the entries were read from

        Returns:
            EventBatch with numpy / jagged columns
        """
        columns: dict[str, Column] = {}
        for name in array.fields:
            values = array[name]
            if isinstance(values.layout, (ak.contents.ListOffsetArray, ak.contents.ListArray)):
                columns[name] = JaggedColumn.from_awkward(values)
            else:
                columns[name] = ak.to_numpy(values)
        return cls(columns=columns, entry_start=entry_start, source=source)


@dataclass(frozen=True)
class TrackArrays:
    """
    The tracks of one event, one numpy entry per track.

    Built fresh for every event and never carried across events.
    """

    eta: np.ndarray
    phi: np.ndarray
    ip_chi2: np.ndarray
    is_backward: np.ndarray

    def __post_init__(self):
        """Validate the track arrays."""
        lengths = {len(self.eta), len(self.phi), len(self.ip_chi2), len(self.is_backward)}
        if len(lengths) != 1:
            raise ValueError(
                "eta, phi, ip_chi2 and is_backward must have the same length, got "
                f"{len(self.eta)}, {len(self.phi)}, {len(self.ip_chi2)}, {len(self.is_backward)}"
            )

    def __len__(self) -> int:
        return len(self.eta)

    def select(self, mask: np.ndarray) -> 'TrackArrays':
        return TrackArrays(
            eta=self.eta[mask],
            phi=self.phi[mask],
            ip_chi2=self.ip_chi2[mask],
            is_backward=self.is_backward[mask],
        )

    @classmethod
    def from_values(cls, eta, phi, ip_chi2=None, is_backward=None) -> 'TrackArrays':
        """Build from plain sequences; missing quality/flag arrays default to passing forward tracks."""
        eta = np.asarray(eta, dtype=np.float64)
        return cls(
            eta=eta,
            phi=np.asarray(phi, dtype=np.float64),
            ip_chi2=np.zeros_like(eta) if ip_chi2 is None else np.asarray(ip_chi2, dtype=np.float64),
            is_backward=np.zeros(len(eta), dtype=bool) if is_backward is None else np.asarray(is_backward, dtype=bool),
        )
