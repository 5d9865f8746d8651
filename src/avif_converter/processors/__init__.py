"""Per-folder processing and completion verification."""

from avif_converter.processors.folder_worker import FolderWorker
from avif_converter.processors.verification import (
    CompletionVerifier,
    VerificationError,
    count_tree,
)

__all__ = [
    "CompletionVerifier",
    "FolderWorker",
    "VerificationError",
    "count_tree",
]
