"""
Reading services.

Services responsible for selecting, reading and writing ROOT files.
"""

from .record_stream import RecordStream, RecordStreamError
from .record_writer import RecordWriter
from .file_selector import FileSelector

__all__ = [
    "RecordStream",
    "RecordStreamError",
    "RecordWriter",
    "FileSelector",
]
