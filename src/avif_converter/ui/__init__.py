"""Terminal UI components."""

from avif_converter.ui.progress import (
    BatchProgressDisplay,
    ETAColumn,
    ProgressDisplayManager,
    RateColumn,
)

__all__ = [
    "BatchProgressDisplay",
    "ETAColumn",
    "ProgressDisplayManager",
    "RateColumn",
]
