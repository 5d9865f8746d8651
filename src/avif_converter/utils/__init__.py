"""Utility modules for the AVIF converter.

This package provides subprocess, filesystem and name sanitizing helpers
used across the converter.
"""

from avif_converter.utils.command_runner import (
    CommandFailure,
    CommandNotFoundError,
    CommandResult,
    CommandRunner,
    CommandStartError,
    CommandSuccess,
    CommandTimeoutError,
)
from avif_converter.utils.file_utils import (
    cleanup_scratch,
    count_files,
    create_temp_directory,
    ensure_directory,
    ensure_directory_stepwise,
    remove_tree,
    safe_copy,
    safe_move,
)
from avif_converter.utils.sanitizer import (
    map_target_directory,
    natural_sort_key,
    needs_sanitizing,
    sanitize,
    sanitized_relative_path,
)

__all__ = [
    # Command runner
    "CommandFailure",
    "CommandNotFoundError",
    "CommandResult",
    "CommandRunner",
    "CommandStartError",
    "CommandSuccess",
    "CommandTimeoutError",
    # File utils
    "cleanup_scratch",
    "count_files",
    "create_temp_directory",
    "ensure_directory",
    "ensure_directory_stepwise",
    "remove_tree",
    "safe_copy",
    "safe_move",
    # Sanitizer
    "map_target_directory",
    "natural_sort_key",
    "needs_sanitizing",
    "sanitize",
    "sanitized_relative_path",
]
