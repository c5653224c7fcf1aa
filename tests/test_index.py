"""
Tests for EventPlaneIndex and the composite key.
"""

import logging
from types import MappingProxyType
import pytest

from services.matching.index import EventPlaneIndex, DuplicateKeyError, composite_key

from conftest import make_event_plane_batch


class TestCompositeKey:
    """Tests for composite_key."""

    def test_distinct_pairs_never_collide(self):
        """Test pairs that would collide under a naive arithmetic combination."""
        assert composite_key(1, 0) != composite_key(0, 2**32)
        assert composite_key(1, 2**64 - 1) != composite_key(2, 0)

    def test_packing(self):
        """Test the run sits above the 64 event bits."""
        assert composite_key(274156, 42) == (274156 << 64) | 42

    @pytest.mark.parametrize("run,event", [(2**32, 0), (0, 2**64), (-1, 0)])
    def test_out_of_range(self, run, event):
        """Test that values beyond the key widths raise ValueError."""
        with pytest.raises(ValueError, match="must fit"):
            composite_key(run, event)


class TestEventPlaneIndex:
    """Tests for EventPlaneIndex."""

    def test_lookup(self):
        """Test hits and misses."""
        index = EventPlaneIndex.build([(274156, 1), (274156, 2), (274157, 1)])

        assert index.lookup(274156, 2) == 1
        assert index.lookup(274157, 1) == 2
        assert index.lookup(274156, 3) is None
        assert len(index) == 3
        assert (274156, 1) in index

    def test_duplicate_overwrites_and_warns(self, caplog):
        """Test that the last position wins and one warning is logged."""
        with caplog.at_level(logging.WARNING):
            index = EventPlaneIndex.build([(1, 1), (1, 2), (1, 1)])

        assert index.lookup(1, 1) == 2
        assert index.duplicate_count == 1
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "run=1 event=1" in warnings[0].getMessage()

    def test_duplicate_error_policy(self):
        """Test that the 'error' policy raises on a repeated key."""
        with pytest.raises(DuplicateKeyError, match="run=1 event=1"):
            EventPlaneIndex.build([(1, 1), (1, 1)], duplicate_policy="error")

    def test_unknown_policy(self):
        """Test that an unknown policy raises ValueError."""
        with pytest.raises(ValueError, match="duplicate_policy"):
            EventPlaneIndex.build([], duplicate_policy="skip")

    def test_from_batch(self):
        """Test indexing an event-plane batch by its key branches."""
        batch = make_event_plane_batch([(274156, 10), (274156, 11)], Psi2Full=[0.1, 0.2])
        index = EventPlaneIndex.from_batch(batch)

        assert index.lookup(274156, 11) == 1
        assert index.source == "memory"

    def test_index_is_read_only(self):
        """Test that the underlying mapping cannot be modified."""
        index = EventPlaneIndex.build([(1, 1)])

        assert isinstance(index._entries, MappingProxyType)
        with pytest.raises(TypeError):
            index._entries[5] = 1
        assert index.lookup(1, 1) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
