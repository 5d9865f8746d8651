"""Rich-based progress display for batch conversion.

The display is a thin renderer over ``ProgressSnapshot``: the pipeline owns
the counter, the display only draws what it is handed.

Example display:
    Converting [########............] 120/300 | 2.35 files/s | ETA: 0:01:16 | Workers: 4

Example:
    >>> from avif_converter.ui.progress import ProgressDisplayManager
    >>>
    >>> manager = ProgressDisplayManager(quiet=False)
    >>> display = manager.create_batch_progress(total_files=300, workers=4)
    >>> display.start()
    >>> progress = ProgressInfo(total=300, on_update=display.update)
    >>> display.finish()
"""

from __future__ import annotations

from dataclasses import dataclass, field

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text

from avif_converter.core.types import ProgressSnapshot
from avif_converter.reporters.batch_reporter import format_duration


class RateColumn(ProgressColumn):
    """Custom column showing the conversion rate in files per second."""

    def render(self, task: Task) -> Text:
        """Render the rate column.

        Args:
            task: The progress task to render.

        Returns:
            Formatted text showing files per second.
        """
        rate = task.fields.get("rate", 0.0)
        if rate > 0:
            return Text(f"{rate:.2f} files/s", style="green")
        return Text("calculating...", style="dim")


class ETAColumn(ProgressColumn):
    """Custom column showing the estimated time remaining.

    Format: "ETA: 0:01:45" or "ETA: --"
    """

    def render(self, task: Task) -> Text:
        """Render the ETA column.

        Args:
            task: The progress task to render.

        Returns:
            Formatted text showing ETA.
        """
        eta = task.fields.get("eta", "--")
        return Text(f"ETA: {eta}", style="yellow")


@dataclass
class BatchProgressDisplay:
    """Single progress bar for all discovered files.

    Attributes:
        total_files: Total number of files to convert.
        workers: Number of concurrent folder workers (display only).
        console: Rich console for output.
    """

    total_files: int
    workers: int
    console: Console = field(default_factory=Console)
    _progress: Progress | None = field(default=None, init=False, repr=False)
    _task_id: TaskID | None = field(default=None, init=False, repr=False)
    _last: ProgressSnapshot | None = field(default=None, init=False, repr=False)

    def start(self) -> None:
        """Start the progress display."""
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}[/bold blue]"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TaskProgressColumn(),
            TextColumn("[dim]|[/dim]"),
            RateColumn(),
            TextColumn("[dim]|[/dim]"),
            TimeElapsedColumn(),
            TextColumn("[dim]|[/dim]"),
            ETAColumn(),
            TextColumn("[dim]|[/dim]"),
            TextColumn("Workers: {task.fields[workers]}"),
            console=self.console,
            expand=False,
        )
        self._task_id = self._progress.add_task(
            "Converting",
            total=self.total_files,
            rate=0.0,
            eta="--",
            workers=self.workers,
        )
        self._progress.start()

    def update(self, snapshot: ProgressSnapshot) -> None:
        """Redraw the bar from a progress snapshot.

        Args:
            snapshot: Snapshot taken after the latest advance.
        """
        self._last = snapshot
        if self._progress is None or self._task_id is None:
            return
        eta = snapshot.eta
        self._progress.update(
            self._task_id,
            completed=snapshot.current,
            rate=snapshot.rate,
            eta=format_duration(eta) if eta is not None else "--",
        )

    def finish(self) -> None:
        """Stop the progress display."""
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    @property
    def completed_count(self) -> int:
        """Get the number of files shown as completed."""
        return self._last.current if self._last is not None else 0


@dataclass
class _NullBatchProgress:
    """Null object pattern for BatchProgressDisplay when quiet mode is enabled."""

    _last: ProgressSnapshot | None = field(default=None, init=False)

    def start(self) -> None:
        """No-op."""

    def update(self, snapshot: ProgressSnapshot) -> None:
        """Remember the snapshot without drawing."""
        self._last = snapshot

    def finish(self) -> None:
        """No-op."""

    @property
    def completed_count(self) -> int:
        """Get the number of files reported as completed."""
        return self._last.current if self._last is not None else 0


@dataclass
class ProgressDisplayManager:
    """Manager for progress displays with quiet mode support.

    Attributes:
        quiet: If True, suppress all progress output.
        console: Rich console for output.
    """

    quiet: bool = False
    console: Console = field(default_factory=Console)

    def create_batch_progress(
        self,
        total_files: int,
        workers: int,
    ) -> BatchProgressDisplay | _NullBatchProgress:
        """Create a batch progress display.

        Args:
            total_files: Total number of files to convert.
            workers: Number of concurrent folder workers.

        Returns:
            A batch progress display, or a null object if quiet mode is enabled.
        """
        if self.quiet:
            return _NullBatchProgress()
        return BatchProgressDisplay(
            total_files=total_files,
            workers=workers,
            console=self.console,
        )


__all__ = [
    "BatchProgressDisplay",
    "ETAColumn",
    "ProgressDisplayManager",
    "RateColumn",
]
