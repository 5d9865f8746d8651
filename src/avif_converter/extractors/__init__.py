"""Task discovery and folder grouping."""

from avif_converter.extractors.folder_grouper import group_by_folder
from avif_converter.extractors.task_discoverer import TaskDiscoverer, is_supported_image

__all__ = ["TaskDiscoverer", "group_by_folder", "is_supported_image"]
