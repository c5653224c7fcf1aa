"""
ThreadedFileProcessor - Runs the event-plane builder over many files concurrently.

Single responsibility: manage the thread pool; files share no mutable state.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import nullcontext
from datetime import datetime
from typing import Iterator, Optional, Callable
from tqdm import tqdm

from domain.statistics import EventCounts, EventPlaneStatistics
from .builder import EventPlaneBuilder, FileResult


class ThreadedFileProcessor:
    """
    Service for processing multiple input files using a thread pool.

    Yields one FileResult per readable file, in completion order.
    """

    def __init__(
        self,
        builder: EventPlaneBuilder,
        max_threads: int,
        show_progress: bool = True
    ):
        """
        Initialize threaded processor.

        Args:
            builder: EventPlaneBuilder shared by all workers
            max_threads: Maximum number of concurrent threads
            show_progress: Whether to show progress bar
        """
        if max_threads <= 0:
            raise ValueError(f"max_threads must be positive, got {max_threads}")

        self.builder = builder
        self.max_threads = max_threads
        self.show_progress = show_progress
        self.logger = logging.getLogger(self.__class__.__name__)

    def process_files(
        self,
        file_paths: list[str],
        tree_name: str,
        directory_name: Optional[str],
        step_size: int = 50_000,
        on_success: Optional[Callable[[FileResult], None]] = None,
        on_error: Optional[Callable[[str, Exception], None]] = None
    ) -> Iterator[FileResult]:
        """
        Build event-plane records for every file.

        A file that cannot be read is logged, reported through on_error and
        skipped; the remaining files still run.

        Args:
            file_paths: Input files
            tree_name: Input tree name
            directory_name: Directory holding the tree, or None
            step_size: Entries per read batch
            on_success: Optional callback(result) on success
            on_error: Optional callback(file_path, exception) on error

        Yields:
            FileResult objects as files complete
        """
        with ThreadPoolExecutor(max_workers=self.max_threads) as executor:
            futures = {
                executor.submit(
                    self.builder.build_file,
                    file_path,
                    tree_name,
                    directory_name,
                    step_size
                ): file_path
                for file_path in file_paths
            }

            with self._create_progress_bar(len(file_paths)) as pbar:
                for future in as_completed(futures):
                    file_path = futures[future]

                    try:
                        result = future.result()
                    except Exception as e:
                        self.logger.warning(f"Skipping file {file_path}: {e}")
                        if on_error:
                            on_error(file_path, e)
                        continue
                    finally:
                        if self.show_progress:
                            pbar.update(1)

                    if on_success:
                        on_success(result)
                    yield result

    def _create_progress_bar(self, total: int):
        if self.show_progress:
            return tqdm(
                total=total,
                desc="Building event planes",
                unit="file",
                dynamic_ncols=True,
                mininterval=1
            )
        return nullcontext()


class EventPlaneStatisticsCollector:
    """
    Thread-safe collector of file and event outcomes for one run.

    Usable directly as the on_success / on_error callbacks.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.start_time = datetime.now()
        self.successful_count = 0
        self.failed_files: list[tuple[str, str]] = []
        self.events = EventCounts()

    def record_success(self, result: FileResult):
        with self.lock:
            self.successful_count += 1
            self.events = self.events + result.counts

    def record_failure(self, file_path: str, error: Exception):
        with self.lock:
            self.failed_files.append((file_path, str(error)))

    def snapshot(self) -> EventPlaneStatistics:
        """Immutable statistics of everything recorded so far."""
        with self.lock:
            end_time = datetime.now()
            return EventPlaneStatistics(
                total_files=self.successful_count + len(self.failed_files),
                successful_files=self.successful_count,
                failed_files=len(self.failed_files),
                events=self.events,
                total_time_sec=(end_time - self.start_time).total_seconds(),
                start_time=self.start_time,
                end_time=end_time,
                failed_file_list=tuple(self.failed_files),
            )
