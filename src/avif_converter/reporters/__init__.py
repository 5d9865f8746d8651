"""Reporters for run statistics, error logs and mismatch reports.

This package provides:
- ErrorLog: append-only, thread-safe log of per-file and rename errors
- MismatchReporter: per-run report of directories with missing outputs
- BatchReporter: final statistics printed after a run
"""

from avif_converter.reporters.batch_reporter import BatchReporter, format_duration
from avif_converter.reporters.error_log import ErrorLog
from avif_converter.reporters.mismatch_reporter import MismatchReporter

__all__ = [
    "BatchReporter",
    "ErrorLog",
    "MismatchReporter",
    "format_duration",
]
