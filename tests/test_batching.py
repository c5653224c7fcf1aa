"""
Tests for batch splitting utilities.
"""

import pytest

from utils.batching import get_batch_slice, batch_output_path


class TestGetBatchSlice:
    """Tests for get_batch_slice."""

    def test_slices_cover_all_items_once(self):
        """Test that the batches partition the items, last one taking the remainder."""
        items = list(range(10))
        slices = [get_batch_slice(items, i, 3) for i in (1, 2, 3)]

        assert slices == [[0, 1, 2], [3, 4, 5], [6, 7, 8, 9]]

    def test_empty_items(self):
        """Test that an empty list yields an empty slice."""
        assert get_batch_slice([], 1, 4) == []

    @pytest.mark.parametrize("index", [0, 5])
    def test_index_out_of_range(self, index):
        """Test that batch indices are 1-based and bounded."""
        with pytest.raises(ValueError, match="batch_index must be 1..4"):
            get_batch_slice([1, 2, 3], index, 4)


class TestBatchOutputPath:
    """Tests for batch_output_path."""

    def test_suffix_added_before_extension(self):
        """Test the per-batch output segment name."""
        assert batch_output_path("out/EventPlane.root", 3) == "out/EventPlane_batch3.root"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
