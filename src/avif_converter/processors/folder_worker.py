"""Sequential processing of one folder.

A folder is always handled by a single worker, one file at a time, so the
numbered outputs (``001.avif``, ``002.avif``, ...) follow the natural order
of the source names no matter how many folders run in parallel.

Processing Steps:
    1. Natural-sort the files by name and assign sequence indices.
    2. First pass: skip files whose output exists, convert the rest. A
       failure is logged and queued for retry. Progress advances once per
       file.
    3. Retry pass: each failed file gets up to ``max_retry_count`` more
       attempts. A recovery moves the file from the error tally to the
       success tally; exhaustion writes one final-failure line.
    4. Per-folder verification, then the folder is marked completed.

Example:
    >>> worker = FolderWorker(executor, error_log, verifier, progress)
    >>> result = await worker.process(folder)
    >>> print(result.success_count, result.error_count)
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from avif_converter.converters.base import ConversionError
from avif_converter.converters.executor import ConversionExecutor
from avif_converter.core.retry import RetryPolicy, retry_async
from avif_converter.core.types import (
    ConversionTask,
    FileOutcome,
    FolderResult,
    FolderTask,
    ProgressInfo,
)
from avif_converter.processors.verification import CompletionVerifier
from avif_converter.reporters.error_log import ErrorLog
from avif_converter.utils.constants import (
    DEFAULT_MAX_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SKIP_EXISTING,
)
from avif_converter.utils.sanitizer import natural_sort_key

logger = logging.getLogger(__name__)


class FolderWorker:
    """Converts every file of a folder in natural order.

    Attributes:
        executor: Runs single conversions.
        error_log: Log receiving per-file failures.
        verifier: Performs the per-folder completion check.
        progress: Shared progress counter, if any.
        skip_existing: Skip files whose output already exists.
        max_retry_count: Retry attempts for files that failed once.
        retry_delay: Seconds between retry attempts.
    """

    def __init__(
        self,
        executor: ConversionExecutor,
        error_log: ErrorLog,
        verifier: CompletionVerifier,
        progress: ProgressInfo | None = None,
        *,
        skip_existing: bool = DEFAULT_SKIP_EXISTING,
        max_retry_count: int = DEFAULT_MAX_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        """Initialize the worker.

        Args:
            executor: Runs single conversions.
            error_log: Log receiving per-file failures.
            verifier: Performs the per-folder completion check.
            progress: Shared progress counter, if any.
            skip_existing: Skip files whose output already exists.
            max_retry_count: Retry attempts for files that failed once.
            retry_delay: Seconds between retry attempts.
        """
        if max_retry_count < 0:
            raise ValueError("max_retry_count must not be negative")
        self.executor = executor
        self.error_log = error_log
        self.verifier = verifier
        self.progress = progress
        self.skip_existing = skip_existing
        self.max_retry_count = max_retry_count
        self.retry_delay = retry_delay
        self._partial: dict[Path, FolderResult] = {}

    @staticmethod
    def order_files(folder: FolderTask) -> None:
        """Sort a folder's files naturally by name and renumber them.

        Args:
            folder: Folder whose ``files`` list is sorted in place.
        """
        folder.files.sort(key=lambda task: natural_sort_key(task.input_path.name))
        for index, task in enumerate(folder.files):
            task.sequence_index = index

    async def process(self, folder: FolderTask) -> FolderResult:
        """Process every file in the folder.

        Args:
            folder: Folder to process. ``error_files`` ends up holding the files
                that still fail and ``completed`` is set.

        Returns:
            FolderResult with the per-folder tallies and verification.

        Raises:
            Exception: Anything that is not a ConversionError propagates to
                the worker pool, which hands the folder to ``abandon``.
        """
        start_time = time.perf_counter()
        result = FolderResult(folder_path=folder.folder_path, total=len(folder.files))
        self._partial[folder.folder_path] = result

        self.order_files(folder)
        logger.info(
            "Starting sequential conversion of %d files in %s",
            len(folder.files),
            folder.folder_path,
        )

        for task in folder.files:
            outcome = await self._first_attempt(task, folder)
            if outcome is FileOutcome.CONVERTED:
                result.success_count += 1
            elif outcome is FileOutcome.SKIPPED:
                result.skipped_count += 1
            else:
                result.error_count += 1
            if self.progress is not None:
                self.progress.advance()

        if folder.error_files:
            await self._retry_failed(folder, result)

        result.verification = await self.verifier.verify_folder(folder)
        folder.completed = True
        result.duration_seconds = time.perf_counter() - start_time
        del self._partial[folder.folder_path]

        logger.info(
            "Finished %s: %d converted, %d skipped, %d failed (%d recovered)",
            folder.folder_path,
            result.success_count,
            result.skipped_count,
            result.error_count,
            result.recovered_count,
        )
        return result

    def abandon(self, folder: FolderTask, error: BaseException) -> FolderResult:
        """Account for the files of a folder whose processing raised.

        Files that never reached an outcome are counted as failed and advance
        the progress counter; every file still failing gets a final-failure
        line in the error log.

        Args:
            folder: Folder whose ``process`` call raised.
            error: The exception that aborted the folder.

        Returns:
            FolderResult including the tallies reached before the abort.
        """
        result = self._partial.pop(folder.folder_path, None)
        if result is None:
            result = FolderResult(folder_path=folder.folder_path, total=len(folder.files))
        reason = f"FINAL FAILURE, folder aborted: {error}"

        unreached = folder.files[result.accounted :]
        for task in unreached:
            result.error_count += 1
            result.final_failures.append(task.input_path)
            self.error_log.record_file_error(task.input_path, reason)
            if self.progress is not None:
                self.progress.advance()

        for task in folder.error_files:
            if task.input_path not in result.final_failures:
                result.final_failures.append(task.input_path)
                self.error_log.record_file_error(task.input_path, reason)

        logger.error(
            "Folder %s aborted: %d files without outcome, %d failed in total",
            folder.folder_path,
            len(unreached),
            result.error_count,
        )
        return result

    async def _first_attempt(self, task: ConversionTask, folder: FolderTask) -> FileOutcome:
        if self.skip_existing and task.output_path.exists():
            logger.debug("Skipping existing file: %s", task.output_path)
            return FileOutcome.SKIPPED

        try:
            await self.executor.convert(task)
        except ConversionError as e:
            logger.error("Error processing file %s: %s", task.input_path, e)
            folder.error_files.append(task)
            self.error_log.record_file_error(task.input_path, e)
            return FileOutcome.FAILED
        return FileOutcome.CONVERTED

    async def _retry_failed(self, folder: FolderTask, result: FolderResult) -> None:
        logger.info(
            "Will retry %d failed files in %s with up to %d attempts each",
            len(folder.error_files),
            folder.folder_path,
            self.max_retry_count,
        )

        for task in list(folder.error_files):
            if self.max_retry_count == 0:
                self._final_failure(task, 0, None, result)
                continue

            def on_failure(attempt: int, error: Exception, task: ConversionTask = task) -> None:
                logger.warning(
                    "Retry attempt %d/%d failed for %s: %s",
                    attempt,
                    self.max_retry_count,
                    task.input_path,
                    error,
                )

            async def attempt(number: int, task: ConversionTask = task) -> None:
                logger.info(
                    "Retry attempt %d/%d for file: %s", number, self.max_retry_count, task.input_path
                )
                await self.executor.convert(task)

            outcome = await retry_async(
                attempt,
                RetryPolicy(
                    max_attempts=self.max_retry_count,
                    delay=self.retry_delay,
                    retry_on=(ConversionError,),
                ),
                description=f"convert {task.input_path}",
                on_failure=on_failure,
            )

            if outcome.success:
                result.error_count -= 1
                result.success_count += 1
                result.recovered_count += 1
                folder.error_files.remove(task)
                logger.info(
                    "Recovered %s on retry attempt %d", task.input_path, outcome.total_attempts
                )
                self.error_log.record_recovery(
                    task.input_path, outcome.total_attempts, self.max_retry_count
                )
            else:
                self._final_failure(task, len(outcome.attempts), outcome.last_error, result)

    def _final_failure(
        self,
        task: ConversionTask,
        attempts: int,
        error: BaseException | None,
        result: FolderResult,
    ) -> None:
        result.final_failures.append(task.input_path)
        logger.error("Giving up on %s after %d retry attempts", task.input_path, attempts)
        self.error_log.record_file_error(
            task.input_path,
            f"FINAL FAILURE after {attempts} retry attempts: {error or 'no retries configured'}",
        )


__all__ = ["FolderWorker"]
