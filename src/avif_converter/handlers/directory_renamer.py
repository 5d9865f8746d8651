"""Rename source directories whose names contain unsafe characters.

Directories are processed deepest first so that renaming a child never
invalidates the path of a directory that is still waiting to be processed.
When the sanitized name is already taken, the first free numbered
alternative (``name_1``, ``name_2``, ...) is used, so two folders are never
merged and no file is lost.

Rename failures are not fatal: the directory keeps its original name, the
problem is written to the rename error log, and the run continues.

Example:
    >>> renamer = DirectoryRenamer(ErrorLog(Path("rename_error.txt")))
    >>> summary = renamer.rename_all(Path("/photos"))
    >>> print(summary.renamed_count, summary.failed_count)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from avif_converter.core.retry import RetryPolicy, retry_call
from avif_converter.core.types import RenameSummary
from avif_converter.reporters.error_log import ErrorLog
from avif_converter.utils.constants import MAX_RENAME_ALTERNATIVES
from avif_converter.utils.sanitizer import sanitize

logger = logging.getLogger(__name__)

# One numbered alternative is tried after the original rename fails.
FALLBACK_ATTEMPTS = 1


class DirectoryRenamer:
    """Sanitizes directory names below a source root in place.

    Attributes:
        rename_log: Log receiving rename problems.
        max_alternatives: Highest numeric suffix tried on collisions.
    """

    def __init__(
        self,
        rename_log: ErrorLog,
        *,
        max_alternatives: int = MAX_RENAME_ALTERNATIVES,
    ) -> None:
        """Initialize the renamer.

        Args:
            rename_log: Log receiving rename problems.
            max_alternatives: Highest numeric suffix tried on collisions.
        """
        self.rename_log = rename_log
        self.max_alternatives = max_alternatives

    def collect_directories(self, source_root: Path) -> list[Path]:
        """List every directory below the root, deepest first.

        Args:
            source_root: Root of the source tree (not included in the result).

        Returns:
            Directories ordered by descending depth, then by path.
        """
        directories: list[Path] = []
        for dirpath, dirnames, _ in os.walk(source_root, onerror=self._on_walk_error):
            dirnames.sort()
            directories.extend(Path(dirpath) / name for name in dirnames)

        directories.sort(key=lambda p: (-len(p.parts), str(p)))
        return directories

    def rename_all(self, source_root: Path) -> RenameSummary:
        """Rename every directory whose name is not already sanitized.

        Args:
            source_root: Root of the source tree. The root itself is never
                renamed.

        Returns:
            RenameSummary with renamed pairs, failures and skipped count.
        """
        summary = RenameSummary()
        renamed_originals: set[Path] = set()

        for directory in self.collect_directories(source_root):
            name = directory.name
            safe_name = sanitize(name)
            if safe_name == name:
                continue

            if self._is_stale(directory, renamed_originals):
                logger.debug("Skipping stale path: %s", directory)
                summary.skipped += 1
                continue

            new_path = self._rename_one(directory, safe_name, summary)
            if new_path is not None:
                renamed_originals.add(directory)
                summary.renamed.append((directory, new_path))

        logger.info(
            "Directory rename summary: %d renamed, %d failed, %d skipped.",
            summary.renamed_count,
            summary.failed_count,
            summary.skipped,
        )
        return summary

    def _rename_one(self, directory: Path, safe_name: str, summary: RenameSummary) -> Path | None:
        target = directory.parent / safe_name
        try:
            if target.exists():
                logger.info(
                    "Destination %s already exists, creating a numbered alternative", target
                )
                target = self._find_alternative(directory.parent, safe_name)
            directory.rename(target)
        except OSError as e:
            logger.warning("Error renaming directory %s: %s", directory, e)
            return self._fallback(directory, safe_name, target, e, summary)

        logger.debug("Renamed directory: %s -> %s", directory, target)
        return target

    def _fallback(
        self,
        directory: Path,
        safe_name: str,
        intended: Path,
        original_error: OSError,
        summary: RenameSummary,
    ) -> Path | None:
        def attempt(_: int) -> Path:
            alternative = self._find_alternative(directory.parent, safe_name)
            directory.rename(alternative)
            return alternative

        result = retry_call(
            attempt,
            RetryPolicy(max_attempts=FALLBACK_ATTEMPTS, retry_on=(OSError,)),
            description=f"rename {directory}",
        )

        if result.success and result.value is not None:
            logger.info("Renamed to numbered path: %s", result.value)
            self.rename_log.record_rename_error(
                directory,
                result.value,
                f"Original rename failed ({original_error}). Used numbered alternative.",
            )
            return result.value

        record = self.rename_log.record_rename_error(
            directory,
            intended,
            f"Original error: {original_error}. "
            f"Alternate method also failed: {result.last_error}",
        )
        summary.failed.append(record)
        logger.error("Could not rename %s; keeping original name", directory)
        return None

    def _find_alternative(self, parent: Path, safe_name: str) -> Path:
        """Return the first free ``safe_name_N`` below ``parent``.

        Raises:
            FileExistsError: If every numbered alternative is taken.
        """
        for counter in range(1, self.max_alternatives + 1):
            candidate = parent / f"{safe_name}_{counter}"
            if not candidate.exists():
                return candidate
        raise FileExistsError(
            f"No free alternative for '{safe_name}' in '{parent}' "
            f"after {self.max_alternatives} attempts"
        )

    @staticmethod
    def _is_stale(directory: Path, renamed_originals: set[Path]) -> bool:
        if any(parent in renamed_originals for parent in directory.parents):
            return True
        return not directory.is_dir()

    @staticmethod
    def _on_walk_error(error: OSError) -> None:
        logger.warning("Cannot list %s: %s", error.filename, error)


__all__ = ["DirectoryRenamer"]
