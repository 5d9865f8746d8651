"""Orchestrator for the directory conversion workflow.

This module implements the Orchestrator class that runs a complete
conversion of one source tree:

    1. validate the source directory;
    2. sanitize unsafe directory names in place;
    3. create the ``{source}_avif`` target root;
    4. discover tasks and create the mirrored target directories;
    5. group tasks per folder and hand the folders to the worker pool;
    6. compare source and target trees and write the mismatch report;
    7. remove leftover staging directories.

Example:
    >>> from avif_converter.core.config import Config
    >>> from avif_converter.core.orchestrator import Orchestrator
    >>>
    >>> orchestrator = Orchestrator(Config.load())
    >>> report = orchestrator.run_sync(Path("/photos"))
    >>> print(f"Converted: {report.success_count}/{report.total_files}")
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from collections.abc import Callable
from pathlib import Path

from avif_converter.converters.executor import ConversionExecutor
from avif_converter.core.concurrent import WorkerPool
from avif_converter.core.config import Config
from avif_converter.core.types import (
    DirectoryMismatch,
    ProgressInfo,
    ProgressSnapshot,
    RenameSummary,
    RunReport,
    RunStatus,
)
from avif_converter.extractors.folder_grouper import group_by_folder
from avif_converter.extractors.task_discoverer import TaskDiscoverer
from avif_converter.handlers.directory_renamer import DirectoryRenamer
from avif_converter.processors.folder_worker import FolderWorker
from avif_converter.processors.verification import CompletionVerifier, VerificationError
from avif_converter.reporters.error_log import ErrorLog
from avif_converter.reporters.mismatch_reporter import MismatchReporter
from avif_converter.ui.progress import ProgressDisplayManager
from avif_converter.utils.constants import (
    ERROR_LOG_FILE,
    RENAME_ERROR_LOG_FILE,
    TARGET_ROOT_SUFFIX,
)
from avif_converter.utils.file_utils import cleanup_scratch, ensure_directory

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressSnapshot], None]


class SourceDirectoryError(Exception):
    """Raised when the source path is missing or not a directory.

    Attributes:
        path: The offending source path.
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Source directory {reason}: {path}")


def target_root_for(source_root: Path) -> Path:
    """Return the sibling target root ``{source_name}_avif``.

    Example:
        >>> target_root_for(Path("/data/photos"))
        PosixPath('/data/photos_avif')
    """
    return source_root.parent / f"{source_root.name}{TARGET_ROOT_SUFFIX}"


class Orchestrator:
    """Central controller for a conversion run.

    Attributes:
        config: Immutable application configuration.
        error_log: Per-file error log shared by all workers.
        rename_log: Directory rename error log.
    """

    def __init__(
        self,
        config: Config,
        executor: ConversionExecutor | None = None,
        on_progress: ProgressCallback | None = None,
        display_manager: ProgressDisplayManager | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Application configuration.
            executor: Conversion executor. Defaults to the AVIF encoder.
            on_progress: Optional callback receiving progress snapshots.
            display_manager: Optional manager creating the progress display.
        """
        self.config = config
        self._executor = executor or ConversionExecutor.from_config(config)
        self._on_progress = on_progress
        self._display_manager = display_manager
        self._pool: WorkerPool | None = None
        self._cancelled = False

        report_dir = config.paths.report_dir
        self.error_log = ErrorLog(report_dir / ERROR_LOG_FILE)
        self.rename_log = ErrorLog(report_dir / RENAME_ERROR_LOG_FILE)
        self._verifier = CompletionVerifier.from_config(config)
        self._mismatch_reporter = MismatchReporter(report_dir)

    @property
    def executor(self) -> ConversionExecutor:
        """Executor used for every conversion of this run."""
        return self._executor

    def mismatch_report_path(self, source: Path) -> Path:
        """Return where the mismatch report for a source tree is written."""
        return self._mismatch_reporter.report_path(source)

    @staticmethod
    def validate_source(source: Path) -> Path:
        """Check that the source exists and is a directory.

        Args:
            source: Source path given by the user.

        Returns:
            The absolute source path.

        Raises:
            SourceDirectoryError: If the path is missing or not a directory.
        """
        path = source.expanduser()
        if not path.exists():
            raise SourceDirectoryError(path, "does not exist")
        if not path.is_dir():
            raise SourceDirectoryError(path, "is not a directory")
        return path.resolve()

    def rename_directories(self, source: Path) -> RenameSummary:
        """Sanitize unsafe directory names below the source.

        Args:
            source: Source tree root.

        Returns:
            RenameSummary of the rename pass.
        """
        source_root = self.validate_source(source)
        logger.info("Renaming folders with special characters...")
        return DirectoryRenamer(self.rename_log).rename_all(source_root)

    async def run(self, source: Path) -> RunReport:
        """Run the complete conversion workflow.

        Args:
            source: Source tree root.

        Returns:
            RunReport describing the run.

        Raises:
            SourceDirectoryError: If the source path is invalid.
        """
        start_time = time.perf_counter()
        source_root = self.validate_source(source)
        target_root = target_root_for(source_root)
        workers = self.config.processing.max_workers

        rename = await asyncio.to_thread(
            DirectoryRenamer(self.rename_log).rename_all, source_root
        )

        await asyncio.to_thread(ensure_directory, target_root)

        logger.info("Finding image files in %s", source_root)
        discovery = await asyncio.to_thread(
            TaskDiscoverer(
                source_root,
                target_root,
                self.error_log,
                extensions=self.config.processing.supported_extensions,
                target_extension=self.config.encoder.target_extension,
            ).discover
        )

        report = RunReport(
            source_root=source_root,
            target_root=target_root,
            status=RunStatus.COMPLETED,
            total_files=discovery.total,
            workers=workers,
            rename=rename,
            discovery_failures=discovery.failed,
            error_log=self.error_log.path,
        )

        if discovery.is_empty:
            logger.info("No image files found in %s", source_root)
            report.status = RunStatus.NOTHING_TO_DO
            report.elapsed_seconds = time.perf_counter() - start_time
            return report

        folders = group_by_folder(discovery.tasks)
        logger.info(
            "Found %d files to process across %d folders using %d workers",
            len(discovery.tasks),
            len(folders),
            workers,
        )

        display = None
        if self._display_manager is not None:
            display = self._display_manager.create_batch_progress(len(discovery.tasks), workers)

        def on_update(snapshot: ProgressSnapshot) -> None:
            if display is not None:
                display.update(snapshot)
            if self._on_progress is not None:
                self._on_progress(snapshot)

        progress = ProgressInfo(total=len(discovery.tasks), on_update=on_update)
        worker = FolderWorker(
            self._executor,
            self.error_log,
            self._verifier,
            progress,
            skip_existing=self.config.processing.skip_existing,
            max_retry_count=self.config.processing.max_retry_count,
            retry_delay=self.config.processing.retry_delay,
        )
        self._pool = WorkerPool(
            worker.process, max_workers=workers, on_folder_error=worker.abandon
        )
        if self._cancelled:
            self._pool.cancel()

        if display is not None:
            display.start()
        restore_interrupt = self._install_interrupt_handler()
        try:
            report.batch = await self._pool.run(folders)
        finally:
            restore_interrupt()
            if display is not None:
                display.finish()
            self._pool = None

        if report.batch.cancelled:
            report.status = RunStatus.CANCELLED

        mismatches = await self._verify_tree(source_root, target_root)
        if mismatches is None:
            report.verified = False
        else:
            report.mismatches = mismatches
            report.mismatch_report = self._write_mismatch_report(mismatches, source_root)

        await asyncio.to_thread(cleanup_scratch, self.config.paths.scratch_dir)

        report.elapsed_seconds = time.perf_counter() - start_time
        return report

    async def verify_only(self, source: Path) -> list[DirectoryMismatch]:
        """Compare a source tree with its target tree without converting.

        Args:
            source: Source tree root.

        Returns:
            Mismatches found (also written to the mismatch report).

        Raises:
            SourceDirectoryError: If the source path is invalid.
            VerificationError: If the trees cannot be read.
        """
        source_root = self.validate_source(source)
        mismatches = await self._verifier.verify_tree(source_root, target_root_for(source_root))
        self._write_mismatch_report(mismatches, source_root)
        return mismatches

    async def _verify_tree(
        self, source_root: Path, target_root: Path
    ) -> list[DirectoryMismatch] | None:
        try:
            return await self._verifier.verify_tree(source_root, target_root)
        except VerificationError as e:
            logger.error("Directory verification failed: %s", e)
            return None

    def _write_mismatch_report(
        self, mismatches: list[DirectoryMismatch], source_root: Path
    ) -> Path | None:
        try:
            return self._mismatch_reporter.write(mismatches, source_root)
        except OSError as e:
            logger.error("Cannot write mismatch report: %s", e)
            return None

    def _install_interrupt_handler(self) -> Callable[[], None]:
        """Turn the first Ctrl-C into a graceful cancel.

        Folders in progress finish; a second Ctrl-C raises KeyboardInterrupt
        as usual.

        Returns:
            Function removing the handler again.
        """
        loop = asyncio.get_running_loop()

        def on_interrupt() -> None:
            loop.remove_signal_handler(signal.SIGINT)
            logger.warning(
                "Interrupted: finishing folders in progress. Press Ctrl-C again to abort."
            )
            self.cancel()

        try:
            loop.add_signal_handler(signal.SIGINT, on_interrupt)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            logger.debug("Cannot install interrupt handler: %s", e)
            return lambda: None
        return lambda: loop.remove_signal_handler(signal.SIGINT)

    def cancel(self) -> None:
        """Stop handing out new folders; folders in progress finish."""
        self._cancelled = True
        if self._pool is not None:
            self._pool.cancel()
        logger.info("Conversion cancelled by user")

    def run_sync(self, source: Path) -> RunReport:
        """Synchronous wrapper for run.

        Args:
            source: Source tree root.

        Returns:
            RunReport describing the run.
        """
        return asyncio.run(self.run(source))

    def verify_sync(self, source: Path) -> list[DirectoryMismatch]:
        """Synchronous wrapper for verify_only."""
        return asyncio.run(self.verify_only(source))


__all__ = [
    "Orchestrator",
    "ProgressCallback",
    "SourceDirectoryError",
    "target_root_for",
]
