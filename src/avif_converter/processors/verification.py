"""Completion checks comparing source images with converted outputs.

Two levels of checking are provided:

    - ``verify_folder`` runs after a worker finishes a folder and compares the
      number of tasks with the number of converted files in its output
      directory. A mismatch is only reported; it is never retried.
    - ``verify_tree`` runs after all workers finished and walks the source and
      target trees independently, reporting every source directory whose
      mirrored target holds a different number of files.

Transient directory read errors are retried with a delay; both checks are
read-only.

Example:
    >>> verifier = CompletionVerifier.from_config(config)
    >>> mismatches = await verifier.verify_tree(Path("/photos"), Path("/photos_avif"))
    >>> for m in mismatches:
    ...     print(f"{m.source_dir}: missing {m.difference}")
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path

from avif_converter.core.config import Config
from avif_converter.core.retry import RetryPolicy, retry_async
from avif_converter.core.types import DirectoryMismatch, FolderTask, FolderVerification
from avif_converter.utils.constants import (
    DEFAULT_VERIFY_MAX_RETRIES,
    DEFAULT_VERIFY_RETRY_DELAY,
    SUPPORTED_EXTENSIONS,
    TARGET_EXTENSION,
)
from avif_converter.utils.file_utils import count_files
from avif_converter.utils.sanitizer import map_target_directory

logger = logging.getLogger(__name__)


class VerificationError(Exception):
    """Raised when a tree could not be read after all retries.

    Attributes:
        root: Tree that could not be read.
    """

    def __init__(self, root: Path, cause: BaseException | None) -> None:
        self.root = root
        super().__init__(f"Cannot read directory tree '{root}': {cause}")


def _raise_walk_error(error: OSError) -> None:
    raise error


def count_tree(root: Path, matches: Callable[[str], bool]) -> dict[Path, int]:
    """Count matching files per directory below ``root``.

    Args:
        root: Tree to walk.
        matches: Predicate applied to file names.

    Returns:
        Mapping of directory to number of matching files directly inside it.
        Directories without matching files are omitted.

    Raises:
        OSError: If any directory cannot be listed.
    """
    counts: dict[Path, int] = {}
    for dirpath, _, filenames in os.walk(root, onerror=_raise_walk_error):
        count = sum(1 for name in filenames if matches(name))
        if count:
            counts[Path(dirpath)] = count
    return counts


class CompletionVerifier:
    """Checks that every source image has a converted counterpart.

    Attributes:
        max_retries: Extra attempts when a directory cannot be read.
        retry_delay: Seconds between read attempts.
        target_extension: Extension of converted files.
        extensions: Supported source extensions.
    """

    def __init__(
        self,
        *,
        max_retries: int = DEFAULT_VERIFY_MAX_RETRIES,
        retry_delay: float = DEFAULT_VERIFY_RETRY_DELAY,
        target_extension: str = TARGET_EXTENSION,
        extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
    ) -> None:
        """Initialize the verifier.

        Args:
            max_retries: Extra attempts when a directory cannot be read.
            retry_delay: Seconds between read attempts.
            target_extension: Extension of converted files.
            extensions: Supported source extensions.
        """
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.target_extension = target_extension.lstrip(".").lower()
        self.extensions = frozenset(ext.lower() for ext in extensions)

    @classmethod
    def from_config(cls, config: Config) -> CompletionVerifier:
        """Create a verifier from configuration."""
        return cls(
            max_retries=config.verification.max_retries,
            retry_delay=config.verification.retry_delay,
            target_extension=config.encoder.target_extension,
            extensions=config.processing.supported_extensions,
        )

    @property
    def policy(self) -> RetryPolicy:
        """Retry policy applied to directory reads."""
        return RetryPolicy(
            max_attempts=self.max_retries + 1,
            delay=self.retry_delay,
            retry_on=(OSError,),
        )

    def is_source_file(self, name: str) -> bool:
        """Check whether a file name is a supported source image."""
        return os.path.splitext(name)[1].lower() in self.extensions

    def is_target_file(self, name: str) -> bool:
        """Check whether a file name is a converted output."""
        return os.path.splitext(name)[1].lower() == f".{self.target_extension}"

    async def verify_folder(self, folder: FolderTask) -> FolderVerification:
        """Compare a folder's task count with its converted outputs.

        Args:
            folder: Folder that was just processed.

        Returns:
            FolderVerification; ``actual`` is -1 if the output directory
            could not be read after all retries.
        """
        output_directory = folder.output_directory
        expected = len(folder.files)
        if output_directory is None:
            return FolderVerification(folder.folder_path, None, expected, 0)

        async def attempt(number: int) -> int:
            if number > 1:
                logger.info(
                    "Retry attempt %d/%d for verifying %s",
                    number - 1,
                    self.max_retries,
                    output_directory,
                )
            return await asyncio.to_thread(count_files, output_directory, self.target_extension)

        outcome = await retry_async(
            attempt, self.policy, description=f"verify {output_directory}"
        )

        if not outcome.success or outcome.value is None:
            logger.error(
                "Could not verify %s after %d attempts: %s",
                output_directory,
                outcome.total_attempts,
                outcome.last_error,
            )
            return FolderVerification(folder.folder_path, output_directory, expected, -1)

        verification = FolderVerification(
            folder.folder_path, output_directory, expected, outcome.value
        )
        if verification.matches:
            logger.debug("Verified %s: %d files", output_directory, expected)
        else:
            logger.warning(
                "File count mismatch in %s: expected %d, found %d",
                output_directory,
                expected,
                outcome.value,
            )
        return verification

    async def verify_tree(self, source_root: Path, target_root: Path) -> list[DirectoryMismatch]:
        """Compare per-directory file counts of the source and target trees.

        Args:
            source_root: Root of the source tree.
            target_root: Root of the mirrored target tree.

        Returns:
            One DirectoryMismatch per source directory whose target count
            differs, in source path order.

        Raises:
            VerificationError: If either tree cannot be read after all retries.
        """
        logger.info("Verifying conversion completeness...")

        async def attempt(number: int) -> tuple[dict[Path, int], dict[Path, int]]:
            if number > 1:
                logger.info(
                    "Retry attempt %d/%d for full directory verification",
                    number - 1,
                    self.max_retries,
                )
            source_counts = await asyncio.to_thread(count_tree, source_root, self.is_source_file)
            target_counts: dict[Path, int] = {}
            if target_root.exists():
                target_counts = await asyncio.to_thread(
                    count_tree, target_root, self.is_target_file
                )
            return source_counts, target_counts

        outcome = await retry_async(attempt, self.policy, description="directory verification")
        if not outcome.success or outcome.value is None:
            raise VerificationError(source_root, outcome.last_error)

        source_counts, target_counts = outcome.value
        logger.info(
            "Found %d source directories with %d files",
            len(source_counts),
            sum(source_counts.values()),
        )
        logger.info(
            "Found %d target directories with %d files",
            len(target_counts),
            sum(target_counts.values()),
        )

        mismatches: list[DirectoryMismatch] = []
        for source_dir in sorted(source_counts):
            source_count = source_counts[source_dir]
            target_dir = map_target_directory(source_root, target_root, source_dir)
            target_count = target_counts.get(target_dir, 0)
            if source_count != target_count:
                mismatches.append(
                    DirectoryMismatch(
                        source_dir=source_dir,
                        target_dir=target_dir,
                        source_file_count=source_count,
                        target_file_count=target_count,
                        difference=source_count - target_count,
                    )
                )

        if mismatches:
            logger.warning("Found %d directories with mismatched file counts", len(mismatches))
        else:
            logger.info("All directories verified. File counts match between source and target.")
        return mismatches


__all__ = ["CompletionVerifier", "VerificationError", "count_tree"]
