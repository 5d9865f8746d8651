"""Group conversion tasks into per-folder units of work."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from avif_converter.core.types import ConversionTask, FolderTask


def group_by_folder(tasks: Iterable[ConversionTask]) -> list[FolderTask]:
    """Group tasks by the directory containing their source file.

    Folders appear in the order their first task was seen, and tasks keep
    their relative order within a folder.

    Args:
        tasks: Tasks in discovery order.

    Returns:
        One FolderTask per source directory, not yet completed.

    Example:
        >>> folders = group_by_folder(result.tasks)
        >>> [len(f.files) for f in folders]
        [3, 12, 1]
    """
    groups: dict[Path, FolderTask] = {}
    for task in tasks:
        folder_path = task.input_path.parent
        folder = groups.get(folder_path)
        if folder is None:
            folder = groups[folder_path] = FolderTask(folder_path=folder_path)
        folder.files.append(task)
    return list(groups.values())


__all__ = ["group_by_folder"]
