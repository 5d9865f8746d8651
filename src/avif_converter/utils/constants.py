"""Centralized constants for avif_converter.

This module contains the magic numbers, file names and default values used
throughout the application. Import from here to ensure consistency.

Example:
    >>> from avif_converter.utils.constants import (
    ...     SUPPORTED_EXTENSIONS,
    ...     ERROR_LOG_FILE,
    ... )
    >>> path.suffix.lower() in SUPPORTED_EXTENSIONS
    True
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

# =============================================================================
# File Types
# =============================================================================
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff"}
)
TARGET_EXTENSION = "avif"

# Suffix appended to the source directory name to build the target root
TARGET_ROOT_SUFFIX = "_avif"

# =============================================================================
# Log Artifacts
# =============================================================================
ERROR_LOG_FILE = "error.txt"
RENAME_ERROR_LOG_FILE = "rename_error.txt"
MISMATCH_REPORT_TEMPLATE = "check_errors_{name}.txt"
LOG_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# =============================================================================
# Processing Defaults
# =============================================================================
DEFAULT_MAX_WORKERS = os.cpu_count() or 4
MIN_WORKERS = 1
MAX_WORKERS = 64
DEFAULT_MAX_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 0.0
DEFAULT_SKIP_EXISTING = True

# Staged copies are always named "source{ext}" inside their private directory
STAGED_INPUT_STEM = "source"
STAGING_DIR_PREFIX = "stage_"

# Rename collisions try name_1 .. name_{MAX_RENAME_ALTERNATIVES}
MAX_RENAME_ALTERNATIVES = 99

# =============================================================================
# Verification
# =============================================================================
DEFAULT_VERIFY_MAX_RETRIES = 2
DEFAULT_VERIFY_RETRY_DELAY = 1.5  # seconds

# =============================================================================
# Encoder (npm "avif" CLI through deno)
# =============================================================================
DEFAULT_ENCODER_COMMAND: tuple[str, ...] = (
    "deno",
    "run",
    "--allow-ffi",
    "--allow-read",
    "--allow-write",
    "--allow-env",
    "npm:avif",
)
DEFAULT_QUALITY = 60
MIN_QUALITY = 0
MAX_QUALITY = 100
DEFAULT_EFFORT = 1
MIN_EFFORT = 0
MAX_EFFORT = 10
ENCODER_PROCESS_TIMEOUT = 600.0  # 10 minutes

# =============================================================================
# Paths
# =============================================================================
DEFAULT_SCRATCH_DIR = Path(tempfile.gettempdir()) / "avif_converter"
