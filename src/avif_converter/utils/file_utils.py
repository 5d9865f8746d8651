"""File utilities for staging, moving and counting files.

This module provides the filesystem helpers used by the pipeline: private
staging directories under a scratch root, copy/move with overwrite control,
directory creation with a segment-by-segment fallback, and file counting for
verification.

Example:
    >>> from avif_converter.utils.file_utils import (
    ...     create_temp_directory,
    ...     safe_move,
    ... )
    >>> stage = create_temp_directory(Path("/tmp/avif_converter"))
    >>> safe_move(stage / "source.avif", Path("out/001.avif"), overwrite=True)
    PosixPath('out/001.avif')
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import uuid
from pathlib import Path

from avif_converter.utils.constants import STAGING_DIR_PREFIX

logger = logging.getLogger(__name__)


def create_temp_directory(scratch_root: Path, prefix: str | None = None) -> Path:
    """Create a unique staging directory below the scratch root.

    Args:
        scratch_root: Directory holding all staging directories.
        prefix: Optional prefix for the directory name.

    Returns:
        Path to the created directory.

    Raises:
        OSError: If the directory cannot be created.

    Example:
        >>> create_temp_directory(Path("/tmp/avif_converter"))
        PosixPath('/tmp/avif_converter/stage_a1b2c3d4')
    """
    prefix = prefix or STAGING_DIR_PREFIX
    scratch_root.mkdir(parents=True, exist_ok=True)

    temp_dir = scratch_root / f"{prefix}{uuid.uuid4().hex[:8]}"
    temp_dir.mkdir()

    logger.debug("Created staging directory: %s", temp_dir)
    return temp_dir


def safe_copy(src: str | Path, dst: str | Path, overwrite: bool = False) -> Path:
    """Safely copy a file to a new location.

    Args:
        src: Source file path.
        dst: Destination file path.
        overwrite: If True, overwrite existing destination. Default is False.

    Returns:
        Path to the destination file.

    Raises:
        FileNotFoundError: If source file doesn't exist.
        FileExistsError: If destination exists and overwrite is False.
        OSError: If copy operation fails.
    """
    src_path = Path(src)
    dst_path = Path(dst)

    if not src_path.is_file():
        raise FileNotFoundError(f"Source file not found: {src_path}")

    if dst_path.exists() and not overwrite:
        raise FileExistsError(f"Destination already exists: {dst_path}")

    dst_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src_path, dst_path)
    logger.debug("Copied file: %s -> %s", src_path, dst_path)

    return dst_path


def safe_move(src: str | Path, dst: str | Path, overwrite: bool = False) -> Path:
    """Safely move a file to a new location.

    Uses an atomic ``os.replace`` when source and destination share a
    filesystem. Across devices the file is copied to a hidden ``.partial``
    name beside the destination and then renamed into place, so an
    interrupted copy never shows up under the destination name.

    Args:
        src: Source file path.
        dst: Destination file path.
        overwrite: If True, overwrite existing destination. Default is False.

    Returns:
        Path to the destination file.

    Raises:
        FileNotFoundError: If source file doesn't exist.
        FileExistsError: If destination exists and overwrite is False.
        OSError: If move operation fails.
    """
    src_path = Path(src)
    dst_path = Path(dst)

    if not src_path.exists():
        raise FileNotFoundError(f"Source file not found: {src_path}")

    if dst_path.exists() and not overwrite:
        raise FileExistsError(f"Destination already exists: {dst_path}")

    dst_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        os.replace(src_path, dst_path)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        # The destination name only ever refers to a complete file.
        partial = dst_path.with_name(f".{dst_path.name}.{uuid.uuid4().hex[:8]}.partial")
        try:
            shutil.copy2(src_path, partial)
            os.replace(partial, dst_path)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        src_path.unlink()

    logger.debug("Moved file: %s -> %s", src_path, dst_path)
    return dst_path


def remove_tree(path: str | Path) -> bool:
    """Remove a directory tree, logging instead of raising on failure.

    Args:
        path: Directory to remove.

    Returns:
        True if the directory is gone afterwards, False otherwise.
    """
    target = Path(path)
    if not target.exists():
        return True

    try:
        shutil.rmtree(target)
    except OSError as e:
        logger.warning("Failed to remove %s: %s", target, e)
        return False

    logger.debug("Removed directory: %s", target)
    return True


def cleanup_scratch(scratch_root: Path, prefix: str | None = None) -> int:
    """Remove leftover staging directories below the scratch root.

    Args:
        scratch_root: Directory holding the staging directories.
        prefix: Prefix of the directories to remove.

    Returns:
        Number of directories removed.
    """
    prefix = prefix or STAGING_DIR_PREFIX
    if not scratch_root.is_dir():
        return 0

    removed = 0
    for entry in scratch_root.iterdir():
        if entry.is_dir() and entry.name.startswith(prefix) and remove_tree(entry):
            removed += 1

    if removed:
        logger.info("Cleaned up %d staging directories", removed)
    return removed


def ensure_directory(path: str | Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path to the directory.
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def ensure_directory_stepwise(path: str | Path) -> Path:
    """Create a directory one missing ancestor at a time.

    Used as the fallback when a single ``mkdir(parents=True)`` fails, so the
    error names the exact segment that could not be created.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path to the directory.

    Raises:
        OSError: If a segment cannot be created.
    """
    dir_path = Path(path)
    missing: list[Path] = []
    current = dir_path
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent

    for segment in reversed(missing):
        try:
            segment.mkdir()
        except FileExistsError:
            if not segment.is_dir():
                raise
    if not dir_path.is_dir():
        raise NotADirectoryError(f"Not a directory: {dir_path}")
    return dir_path


def count_files(directory: str | Path, extension: str | None = None) -> int:
    """Count regular files directly inside a directory.

    Args:
        directory: Directory to list.
        extension: Optional extension filter such as ``"avif"`` or ``".png"``
            (case-insensitive).

    Returns:
        Number of matching files.

    Raises:
        OSError: If the directory cannot be listed.
    """
    suffix = None
    if extension is not None:
        suffix = extension.lower() if extension.startswith(".") else f".{extension.lower()}"

    count = 0
    with os.scandir(directory) as entries:
        for entry in entries:
            if not entry.is_file():
                continue
            if suffix is None or os.path.splitext(entry.name)[1].lower() == suffix:
                count += 1
    return count


__all__ = [
    "cleanup_scratch",
    "count_files",
    "create_temp_directory",
    "ensure_directory",
    "ensure_directory_stepwise",
    "remove_tree",
    "safe_copy",
    "safe_move",
]
