"""Discover convertible images and prepare the mirrored target tree.

The source tree is walked in a deterministic (sorted) order. For every
directory holding at least one supported image the matching target
directory is created up front, so that concurrent workers never race on
directory creation later.

Example:
    >>> discoverer = TaskDiscoverer(
    ...     source_root=Path("/photos"),
    ...     target_root=Path("/photos_avif"),
    ...     error_log=ErrorLog(Path("error.txt")),
    ... )
    >>> result = discoverer.discover()
    >>> print(f"Found {len(result.tasks)} files")
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from avif_converter.core.retry import RetryPolicy, retry_call
from avif_converter.core.types import ConversionTask, DiscoveryResult
from avif_converter.reporters.error_log import ErrorLog
from avif_converter.utils.constants import SUPPORTED_EXTENSIONS, TARGET_EXTENSION
from avif_converter.utils.file_utils import ensure_directory, ensure_directory_stepwise
from avif_converter.utils.sanitizer import map_target_directory, sanitized_relative_path

logger = logging.getLogger(__name__)

# First attempt creates the whole path at once, the second one segment by segment
MKDIR_ATTEMPTS = 2


def is_supported_image(name: str, extensions: Iterable[str] = SUPPORTED_EXTENSIONS) -> bool:
    """Check whether a file name has a supported image extension.

    Args:
        name: File name or path.
        extensions: Lower-case dotted extensions.

    Returns:
        True if the (case-insensitive) extension is supported.
    """
    return os.path.splitext(name)[1].lower() in extensions


class TaskDiscoverer:
    """Builds the list of conversion tasks for a source tree.

    Attributes:
        source_root: Root of the source tree.
        target_root: Root of the mirrored target tree.
        error_log: Log receiving files that cannot be scheduled.
        extensions: Supported source extensions.
        target_extension: Extension of the produced files.
    """

    def __init__(
        self,
        source_root: Path,
        target_root: Path,
        error_log: ErrorLog,
        *,
        extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
        target_extension: str = TARGET_EXTENSION,
    ) -> None:
        """Initialize the discoverer.

        Args:
            source_root: Root of the source tree.
            target_root: Root of the mirrored target tree.
            error_log: Log receiving files that cannot be scheduled.
            extensions: Supported source extensions.
            target_extension: Extension of the produced files.
        """
        self.source_root = source_root
        self.target_root = target_root
        self.error_log = error_log
        self.extensions = frozenset(ext.lower() for ext in extensions)
        self.target_extension = target_extension

    def discover(self) -> DiscoveryResult:
        """Walk the source tree and create the target directories.

        Returns:
            DiscoveryResult with the tasks in walk order and the files that
            were skipped because their target directory could not be created.
        """
        result = DiscoveryResult()

        for dirpath, dirnames, filenames in os.walk(self.source_root, onerror=self._on_walk_error):
            dirnames.sort()
            images = sorted(name for name in filenames if is_supported_image(name, self.extensions))
            if not images:
                continue

            directory = Path(dirpath)
            files = [directory / name for name in images]
            output_directory = map_target_directory(self.source_root, self.target_root, directory)

            error = self._prepare_output_directory(output_directory)
            if error is not None:
                logger.error(
                    "Cannot create %s, skipping %d files: %s", output_directory, len(files), error
                )
                for path in files:
                    self.error_log.record_file_error(
                        path, f"Cannot create output directory '{output_directory}': {error}"
                    )
                result.failed.extend(files)
                continue

            relative = sanitized_relative_path(self.source_root, directory)
            for path in files:
                logger.debug("Found file: %s -> %s", path, output_directory)
                result.tasks.append(
                    ConversionTask(
                        input_path=path,
                        output_directory=output_directory,
                        sanitized_relative_path=relative,
                        target_extension=self.target_extension,
                    )
                )

        logger.info(
            "Discovered %d files (%d skipped) in %s",
            len(result.tasks),
            len(result.failed),
            self.source_root,
        )
        return result

    def _prepare_output_directory(self, output_directory: Path) -> BaseException | None:
        def attempt(number: int) -> Path:
            if number == 1:
                return ensure_directory(output_directory)
            return ensure_directory_stepwise(output_directory)

        outcome = retry_call(
            attempt,
            RetryPolicy(max_attempts=MKDIR_ATTEMPTS, retry_on=(OSError,)),
            description=f"create {output_directory}",
        )
        if outcome.success:
            return None
        return outcome.last_error

    @staticmethod
    def _on_walk_error(error: OSError) -> None:
        logger.warning("Cannot list %s: %s", error.filename, error)


__all__ = ["TaskDiscoverer", "is_supported_image"]
