"""Final statistics for a conversion run.

Example:
    >>> from avif_converter.reporters.batch_reporter import BatchReporter
    >>>
    >>> reporter = BatchReporter()
    >>> print(reporter.format_summary(report))
"""

from __future__ import annotations

from rich.console import Console

from avif_converter.core.types import RunReport, RunStatus


def format_duration(seconds: float) -> str:
    """Format a duration as ``HH:MM:SS``.

    Args:
        seconds: Duration in seconds.

    Returns:
        Zero-padded duration string (e.g., "01:02:03").
    """
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class BatchReporter:
    """Reporter for conversion run results."""

    def format_summary(self, report: RunReport) -> str:
        """Format the final statistics of a run.

        Args:
            report: Run report to format.

        Returns:
            Formatted summary string.
        """
        lines = []
        lines.append("=" * 50)
        lines.append("              Final Statistics")
        lines.append("=" * 50)
        lines.append("")
        lines.append(f"Source:                  {report.source_root}")
        lines.append(f"Target:                  {report.target_root}")

        if report.status is RunStatus.NOTHING_TO_DO:
            lines.append("")
            lines.append("No image files found in the specified directory.")
            lines.append("=" * 50)
            return "\n".join(lines)

        converted_time = report.elapsed_seconds
        attempted = report.total_files - report.skipped_count
        lines.append(f"Total time:              {format_duration(converted_time)}")
        if attempted > 0:
            lines.append(f"Average time per file:   {converted_time / attempted:.2f} seconds")

        lines.append("")
        lines.append("-" * 50)
        lines.append(f"Total files found:       {report.total_files}")
        lines.append(f"Successfully converted:  {report.success_count}")
        lines.append(f"  Recovered on retry:    {report.recovered_count}")
        lines.append(f"Skipped (already exist): {report.skipped_count}")
        lines.append(f"Failed conversions:      {report.error_count}")
        lines.append(f"Concurrent workers:      {report.workers}")
        if converted_time > 0:
            lines.append(
                f"Processing rate:         {report.success_count / converted_time:.2f} files/second"
            )

        if report.batch is not None and report.batch.failed_folders:
            lines.append("")
            lines.append("-" * 50)
            lines.append("              Aborted Folders")
            lines.append("-" * 50)
            for folder, error in report.batch.failed_folders[:10]:
                lines.append(f"  - {folder}: {error}")
            if len(report.batch.failed_folders) > 10:
                lines.append(f"  ... and {len(report.batch.failed_folders) - 10} more folders")

        if report.status is RunStatus.CANCELLED:
            lines.append("")
            lines.append("Status:                  CANCELLED")

        if report.has_errors and report.error_log is not None:
            lines.append("")
            lines.append(f"See {report.error_log} for error details")

        if not report.verified:
            lines.append("Directory verification could not be completed. See the log for details.")
        elif report.mismatches:
            lines.append(
                f"Found {len(report.mismatches)} directories with mismatched file counts. "
                f"Check {report.mismatch_report} for details."
            )
        else:
            lines.append("All directories verified. File counts match between source and target.")

        lines.append("")
        lines.append("=" * 50)
        return "\n".join(lines)

    def print_report(self, report: RunReport, console: Console | None = None) -> None:
        """Print the summary to a Rich console.

        Args:
            report: Run report to print.
            console: Console to print to. Defaults to a new stdout console.
        """
        console = console or Console()
        style = "yellow" if report.has_errors or report.mismatches else "green"
        console.print(self.format_summary(report), style=style, highlight=False, markup=False)


__all__ = ["BatchReporter", "format_duration"]
