"""
Tests for FileSelector.
"""

import pytest

from services.reading.file_selector import FileSelector


class TestFileSelector:
    """Tests for input file selection."""

    @pytest.mark.parametrize("name,expected", [
        ("00274156_00000001_1.tuple_pbpb2024.root", True),
        ("00274156_00000499_1.tuple_pbpb2024.root", True),
        ("00274156_00000500_1.tuple_pbpb2024.root", False),
        ("00274156_00000001_2.tuple_pbpb2024.root", False),
        ("00274157_00000001_1.tuple_pbpb2024.root", False),
        ("00274156_00000001_1.tuple_pbpb2024.root.bak", False),
    ])
    def test_default_pattern(self, name, expected):
        """Test the run / segment naming template."""
        assert FileSelector().matches(name) is expected

    def test_select_sorted_full_paths(self, tmp_path):
        """Test that matching files are returned sorted and others ignored."""
        for name in ("00274156_00000002_1.tuple_pbpb2024.root",
                     "00274156_00000001_1.tuple_pbpb2024.root",
                     "notes.txt"):
            (tmp_path / name).write_bytes(b"")
        (tmp_path / "00274156_00000003_1.tuple_pbpb2024.root").mkdir()

        selected = FileSelector().select(str(tmp_path))

        assert selected == [
            str(tmp_path / "00274156_00000001_1.tuple_pbpb2024.root"),
            str(tmp_path / "00274156_00000002_1.tuple_pbpb2024.root"),
        ]

    def test_custom_pattern(self, tmp_path):
        """Test selecting with a configured pattern."""
        (tmp_path / "run_1.root").write_bytes(b"")
        assert len(FileSelector(r"^run_\d+\.root$").select(str(tmp_path))) == 1

    def test_missing_directory(self, tmp_path):
        """Test that a missing directory raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Could not open or read directory"):
            FileSelector().select(str(tmp_path / "missing"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
