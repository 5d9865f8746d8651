"""Fixed-size worker pool for folder processing.

Folders are placed on a FIFO queue and drained by ``max_workers`` worker
coroutines. A worker takes one folder, processes it completely, then takes
the next, so at most ``max_workers`` folders are in flight and a folder is
never split between workers. An unexpected exception in one folder is
logged, recorded and handed to ``on_folder_error`` so its files are still
accounted for; the worker then moves on to the next folder.

Example:
    >>> from avif_converter.core.concurrent import WorkerPool
    >>>
    >>> pool = WorkerPool(worker.process, max_workers=4)
    >>> result = await pool.run(folders)
    >>> print(f"{result.success_count} converted, peak {result.peak_workers} workers")
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from avif_converter.core.types import BatchResult, FolderResult, FolderTask

logger = logging.getLogger(__name__)

FolderErrorHandler = Callable[[FolderTask, BaseException], FolderResult]


@dataclass(frozen=True)
class PoolStatus:
    """Snapshot of the pool state.

    Attributes:
        max_workers: Configured worker count.
        active_workers: Folders currently being processed.
        peak_workers: Highest number of concurrently processed folders.
        pending_folders: Folders still waiting in the queue.
        completed_folders: Folders finished (normally or with an exception).
    """

    max_workers: int
    active_workers: int
    peak_workers: int
    pending_folders: int
    completed_folders: int


class WorkerPool:
    """Processes folders with a bounded number of concurrent workers.

    Attributes:
        max_workers: Maximum number of folders processed at the same time.
    """

    def __init__(
        self,
        process_folder: Callable[[FolderTask], Awaitable[FolderResult]],
        max_workers: int | None = None,
        on_folder_error: FolderErrorHandler | None = None,
    ) -> None:
        """Initialize the pool.

        Args:
            process_folder: Coroutine function processing one folder.
            max_workers: Worker count. Defaults to the CPU count.
            on_folder_error: Called with a folder whose processing raised;
                the returned result is added to the batch totals.
        """
        self._process_folder = process_folder
        self._on_folder_error = on_folder_error
        self._max_workers = max(1, max_workers or os.cpu_count() or 1)
        self._lock = threading.Lock()
        self._queue: asyncio.Queue[FolderTask] | None = None
        self._stop_event: asyncio.Event | None = None
        self._cancel_requested = False
        self._active = 0
        self._peak = 0
        self._completed = 0

    @property
    def max_workers(self) -> int:
        """Get maximum concurrent worker count."""
        return self._max_workers

    def status(self) -> PoolStatus:
        """Return a snapshot of the pool state."""
        with self._lock:
            return PoolStatus(
                max_workers=self._max_workers,
                active_workers=self._active,
                peak_workers=self._peak,
                pending_folders=self._queue.qsize() if self._queue is not None else 0,
                completed_folders=self._completed,
            )

    def cancel(self) -> None:
        """Stop handing out folders; folders already in progress finish."""
        self._cancel_requested = True
        if self._stop_event is not None:
            self._stop_event.set()

    async def run(self, folders: list[FolderTask]) -> BatchResult:
        """Process all folders and aggregate their results.

        Args:
            folders: Folders in the order they should be started.

        Returns:
            BatchResult with aggregated counts and failed folders.
        """
        start_time = time.perf_counter()
        result = BatchResult(folders_total=len(folders))

        self._queue = asyncio.Queue()
        self._stop_event = asyncio.Event()
        if self._cancel_requested:
            self._stop_event.set()
        with self._lock:
            self._active = 0
            self._peak = 0
            self._completed = 0

        for folder in folders:
            self._queue.put_nowait(folder)

        worker_count = min(self._max_workers, len(folders))
        logger.info(
            "Starting %d workers for %d folders (max %d)",
            worker_count,
            len(folders),
            self._max_workers,
        )

        if worker_count:
            await asyncio.gather(
                *(self._worker(worker_id, result) for worker_id in range(1, worker_count + 1))
            )

        result.elapsed_seconds = time.perf_counter() - start_time
        result.peak_workers = self._peak
        result.cancelled = self._stop_event.is_set() and not self._queue.empty()
        if result.cancelled:
            logger.warning("Cancelled with %d folders left in the queue", self._queue.qsize())
        return result

    async def _worker(self, worker_id: int, result: BatchResult) -> None:
        assert self._queue is not None and self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                folder = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break

            with self._lock:
                self._active += 1
                self._peak = max(self._peak, self._active)

            logger.info(
                "[worker %d] Processing folder %s (%d files)",
                worker_id,
                folder.folder_path,
                len(folder.files),
            )
            try:
                folder_result = await self._process_folder(folder)
            except Exception as e:
                logger.exception("[worker %d] Folder %s failed", worker_id, folder.folder_path)
                result.failed_folders.append((folder.folder_path, str(e)))
                if self._on_folder_error is not None:
                    result.add_folder_result(self._on_folder_error(folder, e))
            else:
                result.add_folder_result(folder_result)
            finally:
                with self._lock:
                    self._active -= 1
                    self._completed += 1
                self._queue.task_done()

        logger.debug("[worker %d] No more folders, exiting", worker_id)


__all__ = ["FolderErrorHandler", "PoolStatus", "WorkerPool"]
