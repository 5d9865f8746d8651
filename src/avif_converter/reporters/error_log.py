"""Append-only error logs written next to a run.

Two plain-text logs accompany every run: ``error.txt`` for per-file
conversion problems and ``rename_error.txt`` for directory rename problems.
Each event is one UTF-8 line; concurrent workers share one ``ErrorLog``
instance, which serializes appends with a lock.

Example:
    >>> log = ErrorLog(Path("error.txt"))
    >>> log.record_file_error(Path("a/1.png"), "encoder exited with code 1")
    >>> log.path.read_text().count("Error processing")
    1
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path

from avif_converter.core.types import FileError, RenameRecord
from avif_converter.utils.constants import LOG_TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)


class ErrorLog:
    """Thread-safe, append-only line log.

    Attributes:
        path: Location of the log file.
        lines_written: Number of lines appended through this instance.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the log.

        The file is created lazily on the first append.

        Args:
            path: Location of the log file.
        """
        self.path = path
        self.lines_written = 0
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        """Append one line to the log.

        Args:
            line: Text to append; embedded newlines are replaced by spaces.
        """
        text = " ".join(line.splitlines())
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(text + "\n")
            except OSError as e:
                logger.error("Cannot write to %s: %s (%s)", self.path, e, text)
                return
            self.lines_written += 1

    def record_file_error(self, file_path: Path, error: str | BaseException) -> FileError:
        """Record a per-file conversion error.

        Args:
            file_path: Source image that failed.
            error: Error message or exception.

        Returns:
            The FileError that was written.
        """
        entry = FileError(file_path=file_path, error=str(error))
        self.append(entry.format_line())
        return entry

    def record_recovery(self, file_path: Path, attempt: int, max_attempts: int) -> str:
        """Record that a previously failed file converted on retry.

        Args:
            file_path: Source image that recovered.
            attempt: Retry attempt that succeeded (1-based).
            max_attempts: Retry attempts allowed.

        Returns:
            The line that was written.
        """
        stamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
        line = f"{stamp} - Recovered '{file_path}' on retry attempt {attempt}/{max_attempts}"
        self.append(line)
        return line

    def record_rename_error(
        self, old_path: Path, new_path: Path, error: str | BaseException
    ) -> RenameRecord:
        """Record a directory rename problem.

        Args:
            old_path: Directory that was to be renamed.
            new_path: Intended new location.
            error: Error message or exception.

        Returns:
            The RenameRecord that was written.
        """
        entry = RenameRecord(old_path=old_path, new_path=new_path, error=str(error))
        self.append(entry.format_line())
        return entry


__all__ = ["ErrorLog"]
