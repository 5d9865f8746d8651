"""Core type definitions for the AVIF conversion workflow.

This module defines the data classes passed between the pipeline stages:
conversion tasks and their folder groups, the shared progress counter, the
error/rename log records and the per-folder and per-batch results.

Example:
    >>> from avif_converter.core.types import ConversionTask
    >>> task = ConversionTask(
    ...     input_path=Path("photos/a/10.png"),
    ...     output_directory=Path("photos_avif/a"),
    ...     sanitized_relative_path=Path("a"),
    ...     sequence_index=1,
    ... )
    >>> task.output_filename
    '002.avif'
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from avif_converter.utils.constants import LOG_TIMESTAMP_FORMAT, TARGET_EXTENSION


def _one_line(text: str) -> str:
    """Fold multi-line text (encoder stderr etc.) onto a single log line."""
    return " | ".join(line.strip() for line in str(text).splitlines() if line.strip())


class RunStatus(Enum):
    """Final status of a conversion run.

    Attributes:
        COMPLETED: All folders were handed to workers and processed.
        NOTHING_TO_DO: Discovery found no convertible files.
        CANCELLED: The run was cancelled before every folder was processed.
    """

    COMPLETED = "completed"
    NOTHING_TO_DO = "nothing_to_do"
    CANCELLED = "cancelled"


class FileOutcome(Enum):
    """Terminal outcome of a single file in the first pass.

    Attributes:
        CONVERTED: The encoder produced the numbered output file.
        SKIPPED: The numbered output already existed.
        FAILED: The conversion raised a ConversionError.
    """

    CONVERTED = "converted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ConversionTask:
    """One source image scheduled for conversion.

    Attributes:
        input_path: Absolute path of the source image.
        output_directory: Target directory (already created by discovery).
        sanitized_relative_path: Sanitized path of the containing folder
            relative to the source root.
        sequence_index: Zero-based position within the folder after the
            natural sort. Reassigned by the folder worker.
        target_extension: Extension of the produced files, without the dot.
    """

    input_path: Path
    output_directory: Path
    sanitized_relative_path: Path
    sequence_index: int = 0
    target_extension: str = TARGET_EXTENSION

    def __post_init__(self) -> None:
        """Normalize path fields."""
        if isinstance(self.input_path, str):
            self.input_path = Path(self.input_path)
        if isinstance(self.output_directory, str):
            self.output_directory = Path(self.output_directory)
        if isinstance(self.sanitized_relative_path, str):
            self.sanitized_relative_path = Path(self.sanitized_relative_path)

    @property
    def output_filename(self) -> str:
        """Zero-padded, one-based output name such as ``001.avif``."""
        return f"{self.sequence_index + 1:03d}.{self.target_extension}"

    @property
    def output_path(self) -> Path:
        """Final location of the converted file."""
        return self.output_directory / self.output_filename


@dataclass
class FolderTask:
    """All tasks sharing one source directory.

    A folder is the unit of work handed to a worker; it is never split.

    Attributes:
        folder_path: Source directory containing the files.
        files: Conversion tasks for the files directly inside ``folder_path``.
        error_files: Tasks whose first attempt failed (populated by the worker).
        completed: Set once after per-folder verification.
    """

    folder_path: Path
    files: list[ConversionTask] = field(default_factory=list)
    error_files: list[ConversionTask] = field(default_factory=list)
    completed: bool = False

    @property
    def output_directory(self) -> Path | None:
        """Target directory shared by every task in the folder."""
        if not self.files:
            return None
        return self.files[0].output_directory


class ProgressOverflowError(RuntimeError):
    """Raised when progress would advance beyond its total."""


@dataclass(frozen=True)
class ProgressSnapshot:
    """Immutable view of the progress counter at one instant.

    Attributes:
        current: Number of files that reached a terminal state.
        total: Total number of discovered files.
        elapsed: Seconds since the run started.
    """

    current: int
    total: int
    elapsed: float

    @property
    def percent(self) -> float:
        """Completion percentage (0.0-100.0)."""
        if self.total <= 0:
            return 100.0
        return self.current / self.total * 100.0

    @property
    def rate(self) -> float:
        """Files per second since the start of the run."""
        if self.elapsed <= 0:
            return 0.0
        return self.current / self.elapsed

    @property
    def eta(self) -> float | None:
        """Estimated seconds remaining, or None if no rate is known yet."""
        rate = self.rate
        if rate <= 0:
            return None
        return (self.total - self.current) / rate


@dataclass
class ProgressInfo:
    """Shared, thread-safe progress counter.

    Every worker advances the counter when one of its files reaches a
    terminal state; ``current`` never decreases and never exceeds ``total``.

    Attributes:
        total: Total number of discovered files.
        current: Files that reached a terminal state so far.
        start_time: Monotonic timestamp of the start of the run.
        on_update: Optional callback receiving a snapshot after each advance.
    """

    total: int
    current: int = 0
    start_time: float = field(default_factory=time.monotonic)
    on_update: Callable[[ProgressSnapshot], None] | None = field(
        default=None, repr=False, compare=False
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate the initial counter values."""
        if self.total < 0:
            raise ValueError("total must not be negative")
        if not 0 <= self.current <= self.total:
            raise ValueError("current must be between 0 and total")

    def advance(self, amount: int = 1) -> ProgressSnapshot:
        """Increment the counter and notify the listener.

        Args:
            amount: Number of files that reached a terminal state.

        Returns:
            Snapshot taken right after the increment.

        Raises:
            ValueError: If ``amount`` is negative.
            ProgressOverflowError: If the counter would exceed ``total``.
        """
        if amount < 0:
            raise ValueError("progress never decreases")
        with self._lock:
            if self.current + amount > self.total:
                raise ProgressOverflowError(
                    f"progress {self.current + amount} would exceed total {self.total}"
                )
            self.current += amount
            snapshot = self._snapshot_locked()

        if self.on_update is not None:
            self.on_update(snapshot)
        return snapshot

    def snapshot(self) -> ProgressSnapshot:
        """Return the current progress without modifying it."""
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            current=self.current,
            total=self.total,
            elapsed=time.monotonic() - self.start_time,
        )


@dataclass(frozen=True)
class DirectoryMismatch:
    """A source directory whose target holds a different number of files.

    Attributes:
        source_dir: Directory in the source tree.
        target_dir: Mapped directory in the target tree.
        source_file_count: Supported images directly inside ``source_dir``.
        target_file_count: Converted files directly inside ``target_dir``.
        difference: ``source_file_count - target_file_count``.
    """

    source_dir: Path
    target_dir: Path
    source_file_count: int
    target_file_count: int
    difference: int

    def format_block(self) -> str:
        """Render the mismatch as a report block."""
        return (
            f"Source: {self.source_dir} ({self.source_file_count} files)\n"
            f"Target: {self.target_dir} ({self.target_file_count} files)\n"
            f"Missing: {self.difference} files"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source_dir": str(self.source_dir),
            "target_dir": str(self.target_dir),
            "source_file_count": self.source_file_count,
            "target_file_count": self.target_file_count,
            "difference": self.difference,
        }


@dataclass(frozen=True)
class FileError:
    """Entry written to the error log.

    Attributes:
        file_path: Source image that failed.
        error: Error description.
        timestamp: When the failure was recorded.
    """

    file_path: Path
    error: str
    timestamp: datetime = field(default_factory=datetime.now)

    def format_line(self) -> str:
        """Render the entry as a single log line."""
        stamp = self.timestamp.strftime(LOG_TIMESTAMP_FORMAT)
        return f"{stamp} - Error processing '{self.file_path}': {_one_line(self.error)}"


@dataclass(frozen=True)
class RenameRecord:
    """Entry written to the rename error log.

    Attributes:
        old_path: Directory that was (or should have been) renamed.
        new_path: Intended new location.
        error: Error description.
        timestamp: When the event was recorded.
    """

    old_path: Path
    new_path: Path
    error: str
    timestamp: datetime = field(default_factory=datetime.now)

    def format_line(self) -> str:
        """Render the entry as a single log line."""
        stamp = self.timestamp.strftime(LOG_TIMESTAMP_FORMAT)
        return (
            f"{stamp} - Error renaming from '{self.old_path}' to '{self.new_path}': "
            f"{_one_line(self.error)}"
        )


@dataclass(frozen=True)
class FolderVerification:
    """Outcome of the per-folder completion check.

    Attributes:
        folder_path: Source directory that was checked.
        output_directory: Target directory that was counted.
        expected: Number of tasks in the folder.
        actual: Number of converted files found, or -1 if unreadable.
    """

    folder_path: Path
    output_directory: Path | None
    expected: int
    actual: int

    @property
    def readable(self) -> bool:
        """Whether the target directory could be listed."""
        return self.actual >= 0

    @property
    def matches(self) -> bool:
        """Whether the expected and actual counts agree."""
        return self.expected == self.actual

    @property
    def difference(self) -> int:
        """Number of missing outputs (0 when unreadable)."""
        if not self.readable:
            return 0
        return self.expected - self.actual


@dataclass
class FolderResult:
    """Per-folder processing summary.

    Attributes:
        folder_path: Source directory.
        total: Number of files in the folder.
        success_count: Files converted (including recovered retries).
        skipped_count: Files skipped because their output already existed.
        error_count: Files that still failed after all retries.
        recovered_count: Files that failed once and succeeded on retry.
        final_failures: Source paths that never converted.
        verification: Result of the per-folder completion check.
        duration_seconds: Wall time spent on the folder.
    """

    folder_path: Path
    total: int = 0
    success_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    recovered_count: int = 0
    final_failures: list[Path] = field(default_factory=list)
    verification: FolderVerification | None = None
    duration_seconds: float = 0.0

    @property
    def accounted(self) -> int:
        """Files in a terminal state; equals ``total`` when processing finished."""
        return self.success_count + self.skipped_count + self.error_count


@dataclass
class BatchResult:
    """Aggregated result of the worker pool.

    Attributes:
        folders_total: Number of folders submitted.
        folders_processed: Number of folders that finished normally.
        success_count: Converted files over all folders.
        skipped_count: Skipped files over all folders.
        error_count: Final failures over all folders.
        recovered_count: Files converted only on retry.
        failed_folders: Folders aborted by an unexpected exception.
        folder_results: Individual folder results in completion order.
        elapsed_seconds: Wall time of the pool run.
        peak_workers: Highest number of folders processed concurrently.
        cancelled: Whether the pool was cancelled.
    """

    folders_total: int = 0
    folders_processed: int = 0
    success_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    recovered_count: int = 0
    failed_folders: list[tuple[Path, str]] = field(default_factory=list)
    folder_results: list[FolderResult] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    peak_workers: int = 0
    cancelled: bool = False

    def add_folder_result(self, result: FolderResult) -> None:
        """Fold one folder result into the totals.

        Args:
            result: The folder result to add.
        """
        self.folder_results.append(result)
        self.folders_processed += 1
        self.success_count += result.success_count
        self.skipped_count += result.skipped_count
        self.error_count += result.error_count
        self.recovered_count += result.recovered_count

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "folders_total": self.folders_total,
            "folders_processed": self.folders_processed,
            "success_count": self.success_count,
            "skipped_count": self.skipped_count,
            "error_count": self.error_count,
            "recovered_count": self.recovered_count,
            "failed_folders": [
                {"folder": str(path), "error": error} for path, error in self.failed_folders
            ],
            "elapsed_seconds": self.elapsed_seconds,
            "peak_workers": self.peak_workers,
            "cancelled": self.cancelled,
        }


@dataclass
class RenameSummary:
    """Outcome of the directory rename pass.

    Attributes:
        renamed: Pairs of (old path, new path) that were renamed.
        failed: Records for directories that could not be renamed.
        skipped: Directories skipped because their path went stale.
    """

    renamed: list[tuple[Path, Path]] = field(default_factory=list)
    failed: list[RenameRecord] = field(default_factory=list)
    skipped: int = 0

    @property
    def renamed_count(self) -> int:
        """Number of directories renamed."""
        return len(self.renamed)

    @property
    def failed_count(self) -> int:
        """Number of directories left with their unsafe names."""
        return len(self.failed)


@dataclass
class DiscoveryResult:
    """Outcome of task discovery.

    Attributes:
        tasks: Discovered tasks in deterministic walk order.
        failed: Files skipped because their target directory could not be created.
    """

    tasks: list[ConversionTask] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Whether no image was found at all, neither convertible nor failed."""
        return not self.tasks and not self.failed

    @property
    def total(self) -> int:
        """Images found, including those dropped during discovery."""
        return len(self.tasks) + len(self.failed)


@dataclass
class RunReport:
    """Summary of a complete conversion run.

    Attributes:
        source_root: Directory that was converted.
        target_root: Mirrored output directory.
        status: Final run status.
        total_files: Images found, including files dropped during discovery.
        workers: Worker count used by the pool.
        batch: Worker pool result (None when there was nothing to do).
        rename: Result of the rename pass.
        discovery_failures: Files skipped during discovery.
        mismatches: Directories reported by the global verification.
        error_log: Path of the error log.
        mismatch_report: Path of the mismatch report, if one was written.
        verified: False if the global verification could not read the trees.
        elapsed_seconds: Wall time of the complete run.
    """

    source_root: Path
    target_root: Path
    status: RunStatus
    total_files: int = 0
    workers: int = 0
    batch: BatchResult | None = None
    rename: RenameSummary | None = None
    discovery_failures: list[Path] = field(default_factory=list)
    mismatches: list[DirectoryMismatch] = field(default_factory=list)
    error_log: Path | None = None
    mismatch_report: Path | None = None
    verified: bool = True
    elapsed_seconds: float = 0.0

    @property
    def success_count(self) -> int:
        """Converted files."""
        return self.batch.success_count if self.batch else 0

    @property
    def skipped_count(self) -> int:
        """Skipped files."""
        return self.batch.skipped_count if self.batch else 0

    @property
    def error_count(self) -> int:
        """Final failures, including files dropped during discovery."""
        errors = self.batch.error_count if self.batch else 0
        return errors + len(self.discovery_failures)

    @property
    def recovered_count(self) -> int:
        """Files converted only after a retry."""
        return self.batch.recovered_count if self.batch else 0

    @property
    def has_errors(self) -> bool:
        """Whether any file failed or any folder aborted."""
        failed_folders = self.batch.failed_folders if self.batch else []
        return self.error_count > 0 or bool(failed_folders)


__all__ = [
    "BatchResult",
    "ConversionTask",
    "DirectoryMismatch",
    "DiscoveryResult",
    "FileError",
    "FileOutcome",
    "FolderResult",
    "FolderTask",
    "FolderVerification",
    "ProgressInfo",
    "ProgressOverflowError",
    "ProgressSnapshot",
    "RenameRecord",
    "RenameSummary",
    "RunReport",
    "RunStatus",
]
