"""
Input file selection.

Scans a directory for ROOT files whose names match the production
naming template (run number / segment number).
"""

import logging
import os
import re
from pathlib import Path

from domain.config import DEFAULT_FILE_PATTERN


class FileSelector:
    """
    Select input files from a directory by filename pattern.

    Non-matching names and sub-directories are ignored silently.
    """

    def __init__(self, pattern: str = DEFAULT_FILE_PATTERN):
        self.pattern = re.compile(pattern)
        self.logger = logging.getLogger(self.__class__.__name__)

    def matches(self, file_name: str) -> bool:
        return file_name.endswith(".root") and self.pattern.search(file_name) is not None

    def select(self, directory: str) -> list[str]:
        """
        List matching files in a directory, sorted by name.

        Args:
            directory: Directory to scan (not recursive)

        Returns:
            Full paths of the selected files

        Raises:
            FileNotFoundError: If the directory does not exist
        """
        if not os.path.isdir(directory):
            raise FileNotFoundError(f"Could not open or read directory: {directory}")

        selected = []
        for entry in sorted(os.scandir(directory), key=lambda e: e.name):
            if entry.is_dir() or not self.matches(entry.name):
                continue
            selected.append(str(Path(directory) / entry.name))
            self.logger.debug(f"Adding file: {selected[-1]}")

        self.logger.info(f"Selected {len(selected)} input files from {directory}")
        return selected
