"""Unit tests for the batch progress display."""

from __future__ import annotations

import io

from rich.console import Console
from rich.progress import Progress

from avif_converter.core.types import ProgressInfo, ProgressSnapshot
from avif_converter.ui.progress import (
    BatchProgressDisplay,
    ETAColumn,
    ProgressDisplayManager,
    RateColumn,
)


def quiet_console() -> Console:
    """Console writing to a buffer."""
    return Console(file=io.StringIO(), force_terminal=False, width=120)


class TestColumns:
    """Tests for the custom progress columns."""

    def test_rate_column(self) -> None:
        """Test rendering with and without a rate."""
        progress = Progress(console=quiet_console())
        task_id = progress.add_task("x", total=10, rate=0.0, eta="--")
        task = progress.tasks[task_id]

        assert str(RateColumn().render(task)) == "calculating..."
        progress.update(task_id, rate=2.5)
        assert str(RateColumn().render(task)) == "2.50 files/s"

    def test_eta_column(self) -> None:
        """Test ETA rendering."""
        progress = Progress(console=quiet_console())
        task_id = progress.add_task("x", total=10, eta="00:01:00")
        assert str(ETAColumn().render(progress.tasks[task_id])) == "ETA: 00:01:00"


class TestBatchProgressDisplay:
    """Tests for BatchProgressDisplay class."""

    def test_tracks_snapshots(self) -> None:
        """Test that the display follows the shared counter."""
        display = BatchProgressDisplay(total_files=3, workers=2, console=quiet_console())
        progress = ProgressInfo(total=3, on_update=display.update)

        display.start()
        progress.advance()
        progress.advance()
        display.finish()

        assert display.completed_count == 2

    def test_update_before_start(self) -> None:
        """Test that updates before start are remembered but not drawn."""
        display = BatchProgressDisplay(total_files=1, workers=1, console=quiet_console())
        display.update(ProgressSnapshot(current=1, total=1, elapsed=1.0))
        assert display.completed_count == 1
        display.finish()


class TestProgressDisplayManager:
    """Tests for ProgressDisplayManager class."""

    def test_quiet_returns_null_display(self) -> None:
        """Test that quiet mode draws nothing."""
        console = quiet_console()
        display = ProgressDisplayManager(quiet=True, console=console).create_batch_progress(5, 2)

        display.start()
        display.update(ProgressSnapshot(current=1, total=5, elapsed=1.0))
        display.finish()

        assert not isinstance(display, BatchProgressDisplay)
        assert display.completed_count == 1
        assert console.file.getvalue() == ""  # type: ignore[attr-defined]

    def test_normal_mode(self) -> None:
        """Test that a real display is created."""
        display = ProgressDisplayManager(console=quiet_console()).create_batch_progress(5, 2)
        assert isinstance(display, BatchProgressDisplay)
        assert display.workers == 2
