"""CLI entrypoint for avif-converter."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console

from avif_converter import __version__
from avif_converter.core.config import Config
from avif_converter.core.logger import configure_logging
from avif_converter.core.orchestrator import (
    Orchestrator,
    SourceDirectoryError,
    target_root_for,
)
from avif_converter.core.types import RunStatus
from avif_converter.processors.verification import VerificationError
from avif_converter.reporters.batch_reporter import BatchReporter
from avif_converter.ui.progress import ProgressDisplayManager

# Rich console for formatted output
console = Console()


@dataclass
class CLIContext:
    """Context object passed between CLI commands."""

    config: Config
    verbose: bool
    quiet: bool


pass_context = click.make_pass_decorator(CLIContext, ensure=True)

SOURCE_ARGUMENT = click.argument(
    "source",
    type=click.Path(path_type=Path),
    required=False,
)


def _require_source(source: Path | None) -> Path:
    """Validate the SOURCE argument or exit with status 1.

    Args:
        source: Path given on the command line, if any.

    Returns:
        The resolved source directory.
    """
    if source is None:
        console.print("[red]✗ Please provide a source directory.[/red]")
        console.print("Usage: avif-converter convert SOURCE")
        sys.exit(1)
    try:
        return Orchestrator.validate_source(source)
    except SourceDirectoryError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to custom configuration file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output (DEBUG level logging).",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Minimal output (only errors and results).",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool, quiet: bool) -> None:
    """AVIF Converter - Bulk image to AVIF conversion for directory trees.

    Converts every PNG, JPEG, BMP, GIF and TIFF image below SOURCE into a
    mirrored SOURCE_avif tree of numbered AVIF files.
    """
    try:
        config = Config.load(config_path)
    except (ValueError, ValidationError) as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        sys.exit(1)

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO
    configure_logging(level=level, log_dir=config.paths.log_dir, console_output=True)

    ctx.ensure_object(dict)
    ctx.obj = CLIContext(config=config, verbose=verbose, quiet=quiet)


@main.command()
@SOURCE_ARGUMENT
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(1, 64),
    default=None,
    help="Number of folders converted concurrently (default: CPU count).",
)
@click.option(
    "--retries",
    type=click.IntRange(0, None),
    default=None,
    help="Retry attempts for each failed file (default: 3).",
)
@click.option(
    "--timeout",
    type=click.FloatRange(0, None, min_open=True),
    default=None,
    help="Encoder timeout per file in seconds.",
)
@click.option(
    "--skip-existing/--no-skip-existing",
    default=None,
    help="Skip files whose numbered output already exists.",
)
@click.option(
    "--report-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for error.txt and mismatch reports.",
)
@pass_context
def convert(
    ctx: CLIContext,
    source: Path | None,
    workers: int | None,
    retries: int | None,
    timeout: float | None,
    skip_existing: bool | None,
    report_dir: Path | None,
) -> None:
    """Convert all images below SOURCE to AVIF.

    Output goes to a sibling directory named SOURCE_avif. Files that fail
    after all retries are listed in error.txt; they do not change the exit
    status.

    Examples:

        avif-converter convert ~/Pictures/scans

        avif-converter convert ./photos --workers 8 --retries 5
    """
    source_root = _require_source(source)

    config = ctx.config.with_overrides(
        max_workers=workers,
        max_retry_count=retries,
        skip_existing=skip_existing,
        timeout=timeout,
        report_dir=report_dir,
    )

    orchestrator = Orchestrator(
        config,
        display_manager=ProgressDisplayManager(quiet=ctx.quiet, console=console),
    )
    if not orchestrator.executor.encoder.is_available():
        console.print(
            f"[yellow]⚠ Encoder '{orchestrator.executor.encoder.executable}' "
            "was not found on PATH. Conversions will fail.[/yellow]"
        )

    if not ctx.quiet:
        console.print(f"[bold]Source:[/bold] {source_root}")
        console.print(f"[bold]Target:[/bold] {target_root_for(source_root)}")
        console.print(f"[bold]Workers:[/bold] {config.processing.max_workers}")

    # The first Ctrl-C is handled inside the run; only a second one lands here.
    try:
        report = orchestrator.run_sync(source_root)
    except KeyboardInterrupt:
        console.print()
        console.print("[yellow]Conversion aborted by user.[/yellow]")
        sys.exit(130)
    except SourceDirectoryError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    if report.status is RunStatus.NOTHING_TO_DO:
        console.print("[yellow]No image files found in the specified directory.[/yellow]")
        return

    BatchReporter().print_report(report, console=console)
    if report.status is RunStatus.CANCELLED:
        console.print("[yellow]Conversion cancelled by user.[/yellow]")
        sys.exit(130)


@main.command()
@SOURCE_ARGUMENT
@pass_context
def rename(ctx: CLIContext, source: Path | None) -> None:
    """Replace unsafe characters in directory names below SOURCE.

    Directories are renamed deepest first. Failures are written to
    rename_error.txt in the report directory.
    """
    source_root = _require_source(source)

    orchestrator = Orchestrator(ctx.config)
    summary = orchestrator.rename_directories(source_root)

    if ctx.verbose:
        for old, new in summary.renamed:
            console.print(f"  {old} -> {new.name}")
    console.print(
        f"[green]✓ Renamed {summary.renamed_count} directories[/green] "
        f"({summary.skipped} skipped)"
    )
    if summary.failed_count:
        console.print(
            f"[yellow]⚠ {summary.failed_count} directories could not be renamed. "
            f"See {orchestrator.rename_log.path}[/yellow]"
        )


@main.command()
@SOURCE_ARGUMENT
@pass_context
def verify(ctx: CLIContext, source: Path | None) -> None:
    """Compare file counts between SOURCE and SOURCE_avif.

    Exits with status 1 only if the trees cannot be read.
    """
    source_root = _require_source(source)
    orchestrator = Orchestrator(ctx.config)

    try:
        mismatches = orchestrator.verify_sync(source_root)
    except VerificationError as e:
        console.print(f"[red]✗ Verification failed: {e}[/red]")
        sys.exit(1)

    if not mismatches:
        console.print(
            "[green]✓ All directories verified. "
            "File counts match between source and target.[/green]"
        )
        return

    report_path = orchestrator.mismatch_report_path(source_root)
    console.print(
        f"[yellow]⚠ Found {len(mismatches)} directories with mismatched file counts. "
        f"Check {report_path} for details.[/yellow]"
    )
    for mismatch in mismatches[:10]:
        console.print(
            f"  {mismatch.source_dir}: {mismatch.source_file_count} source, "
            f"{mismatch.target_file_count} target"
        )
    if len(mismatches) > 10:
        console.print(f"  ... and {len(mismatches) - 10} more")


if __name__ == "__main__":
    main()
