"""Write the per-run directory mismatch report.

The report ``check_errors_{source_name}.txt`` is rewritten on every run and
removed when a run finds no mismatches, so it always describes the latest
state of the tree.

Example:
    >>> reporter = MismatchReporter(report_dir=Path("."))
    >>> path = reporter.write(mismatches, Path("/photos"))
    >>> path.name
    'check_errors_photos.txt'
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from avif_converter.core.types import DirectoryMismatch
from avif_converter.utils.constants import LOG_TIMESTAMP_FORMAT, MISMATCH_REPORT_TEMPLATE

logger = logging.getLogger(__name__)


class MismatchReporter:
    """Formats and writes directory mismatch reports.

    Attributes:
        report_dir: Directory receiving the report files.
    """

    def __init__(self, report_dir: Path) -> None:
        self.report_dir = report_dir

    def report_path(self, source_root: Path) -> Path:
        """Return the report location for a source tree."""
        return self.report_dir / MISMATCH_REPORT_TEMPLATE.format(name=source_root.name)

    def format_report(
        self, mismatches: list[DirectoryMismatch], timestamp: datetime | None = None
    ) -> str:
        """Render mismatches as report text.

        Args:
            mismatches: Mismatches to describe.
            timestamp: Time stamp for the header. Defaults to now.

        Returns:
            Header line followed by one block per mismatch.
        """
        stamp = (timestamp or datetime.now()).strftime(LOG_TIMESTAMP_FORMAT)
        total = sum(abs(m.difference) for m in mismatches)
        parts = [
            f"{stamp} - Found {len(mismatches)} directories with mismatched file counts "
            f"(total: {total} files):"
        ]
        parts.extend(m.format_block() for m in mismatches)
        return "\n\n".join(parts) + "\n"

    def write(self, mismatches: list[DirectoryMismatch], source_root: Path) -> Path | None:
        """Write the report, or remove a stale one when nothing mismatches.

        Args:
            mismatches: Mismatches found by the global verification.
            source_root: Source tree the report is named after.

        Returns:
            Path of the written report, or None when there were no mismatches.

        Raises:
            OSError: If the report cannot be written.
        """
        path = self.report_path(source_root)
        if not mismatches:
            path.unlink(missing_ok=True)
            return None

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.format_report(mismatches), encoding="utf-8")
        logger.warning(
            "Found %d directories with mismatched file counts. Check %s for details.",
            len(mismatches),
            path,
        )
        return path


__all__ = ["MismatchReporter"]
