"""
EventPlaneIndex - Composite (run, event) key -> entry position in the event-plane stream.

Built once from a full forward scan, read-only afterwards.
"""

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from domain.events import EventBatch
from services import consts
from services.reading.record_stream import read_key_columns


RUN_BITS = 32
EVENT_BITS = 64

DUPLICATE_POLICIES = ("overwrite", "error")


class DuplicateKeyError(ValueError):
    """Raised when a (run, event) key repeats under the 'error' policy."""


def composite_key(run_number: int, event_number: int) -> int:
    """
    Pack a run and event number into one integer.

    ``(run << 64) | event``: exact, so distinct pairs never collide.

    Raises:
        ValueError: If run does not fit 32 bits or event does not fit 64 bits
    """
    run_number = int(run_number)
    event_number = int(event_number)
    if not 0 <= run_number < (1 << RUN_BITS):
        raise ValueError(f"run_number must fit in {RUN_BITS} bits, got {run_number}")
    if not 0 <= event_number < (1 << EVENT_BITS):
        raise ValueError(f"event_number must fit in {EVENT_BITS} bits, got {event_number}")
    return (run_number << EVENT_BITS) | event_number


class EventPlaneIndex:
    """
    Lookup table from (run, event) to the entry position of an event-plane record.

    Safe for concurrent lookups: nothing mutates it after construction.
    """

    def __init__(self, entries: Mapping[int, int], duplicate_count: int = 0, source: str = ""):
        self._entries = MappingProxyType(dict(entries))
        self._duplicate_count = duplicate_count
        self.source = source

    @classmethod
    def build(
        cls,
        keys: Iterable[tuple[int, int]],
        duplicate_policy: str = "overwrite",
        source: str = ""
    ) -> 'EventPlaneIndex':
        """
        Index a sequence of (run, event) pairs by their position.

        Args:
            keys: (run, event) pairs in stream order
            duplicate_policy: 'overwrite' keeps the last position and warns;
                'error' raises DuplicateKeyError
            source: Description of the indexed stream, for messages

        Returns:
            EventPlaneIndex
        """
        if duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(
                f"duplicate_policy must be one of {DUPLICATE_POLICIES}, got {duplicate_policy!r}"
            )

        logger = logging.getLogger(cls.__name__)
        entries: dict[int, int] = {}
        duplicates = 0

        for position, (run_number, event_number) in enumerate(keys):
            key = composite_key(run_number, event_number)
            previous = entries.get(key)
            if previous is not None:
                if duplicate_policy == "error":
                    raise DuplicateKeyError(
                        f"Duplicate key run={run_number} event={event_number} "
                        f"at entries {previous} and {position} in {source or '<stream>'}"
                    )
                duplicates += 1
                logger.warning(
                    f"Duplicate key run={run_number} event={event_number}: "
                    f"entry {position} replaces entry {previous}"
                )
            entries[key] = position

        logger.info(f"Indexed {len(entries)} events from {source or '<stream>'} ({duplicates} duplicate keys)")
        return cls(entries, duplicate_count=duplicates, source=source)

    @classmethod
    def from_batch(cls, batch: EventBatch, duplicate_policy: str = "overwrite") -> 'EventPlaneIndex':
        """Index the entries of an event-plane batch by their RUNNUMBER / EVENTNUMBER branches."""
        runs, events = read_key_columns(batch, consts.RUN_NUMBER_BRANCH, consts.EVENT_NUMBER_BRANCH)
        return cls.build(
            zip(runs.tolist(), events.tolist()),
            duplicate_policy=duplicate_policy,
            source=batch.source
        )

    def lookup(self, run_number: int, event_number: int) -> Optional[int]:
        """Entry position of (run, event), or None when absent."""
        return self._entries.get(composite_key(run_number, event_number))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        run_number, event_number = key
        return composite_key(run_number, event_number) in self._entries

    @property
    def duplicate_count(self) -> int:
        return self._duplicate_count
