"""Integration tests for the avif-converter command line.

This module tests the convert, rename and verify commands including:
- Source argument validation and exit codes
- A complete conversion with the fake encoder
- Summary and verification messages
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner
from pytest_mock import MockerFixture
from rich.console import Console

from avif_converter import __version__
from avif_converter.__main__ import main


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


class TestMainGroup:
    """Tests for the top-level command group."""

    def test_help(self, cli_runner: CliRunner) -> None:
        """Test that help lists the subcommands."""
        result = cli_runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("convert", "rename", "verify"):
            assert command in result.output

    def test_version(self, cli_runner: CliRunner) -> None:
        """Test the version option."""
        result = cli_runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_config_file(self, cli_runner: CliRunner, temp_dir: Path) -> None:
        """Test that a broken configuration file exits with status 1."""
        broken = temp_dir / "broken.json"
        broken.write_text('{"processing": {"max_workers": 0}}')

        result = cli_runner.invoke(main, ["--config", str(broken), "verify", str(temp_dir)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestSourceValidation:
    """Tests for the SOURCE argument."""

    @pytest.mark.parametrize("command", ["convert", "rename", "verify"])
    def test_missing_source(self, cli_runner: CliRunner, config_file: Path, command: str) -> None:
        """Test that omitting SOURCE exits with status 1."""
        result = cli_runner.invoke(main, ["--config", str(config_file), command])

        assert result.exit_code == 1
        assert "Please provide a source directory" in result.output

    def test_nonexistent_source(
        self, cli_runner: CliRunner, config_file: Path, temp_dir: Path
    ) -> None:
        """Test that a missing directory exits with status 1."""
        result = cli_runner.invoke(
            main, ["--config", str(config_file), "convert", str(temp_dir / "nope")]
        )

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_file_as_source(self, cli_runner: CliRunner, config_file: Path) -> None:
        """Test that a file exits with status 1."""
        result = cli_runner.invoke(main, ["--config", str(config_file), "convert", str(config_file)])

        assert result.exit_code == 1
        assert "is not a directory" in result.output


class TestConvertCommand:
    """Tests for the convert command."""

    def test_empty_directory(
        self, cli_runner: CliRunner, config_file: Path, temp_dir: Path
    ) -> None:
        """Test that a tree without images exits with status 0."""
        empty = temp_dir / "empty"
        empty.mkdir()

        result = cli_runner.invoke(main, ["--config", str(config_file), "convert", str(empty)])

        assert result.exit_code == 0
        assert "No image files found" in result.output

    def test_converts_tree(
        self, cli_runner: CliRunner, config_file: Path, source_tree: Path
    ) -> None:
        """Test a complete conversion from the command line."""
        result = cli_runner.invoke(
            main, ["--config", str(config_file), "-q", "convert", str(source_tree), "-w", "2"]
        )

        assert result.exit_code == 0, result.output
        assert "Final Statistics" in result.output
        assert "Successfully converted:  6" in result.output
        assert "Failed conversions:      0" in result.output
        assert (source_tree.parent / "photos_avif" / "Trip__2021_" / "003.avif").exists()

    def test_failures_keep_exit_status(
        self, cli_runner: CliRunner, config_file: Path, source_tree: Path
    ) -> None:
        """Test that failed files are reported without a non-zero exit."""
        (source_tree / "broken.png").write_bytes(b"FAIL")

        result = cli_runner.invoke(
            main,
            ["--config", str(config_file), "-q", "convert", str(source_tree), "--retries", "0"],
        )

        assert result.exit_code == 0, result.output
        assert "Failed conversions:      1" in result.output

    def test_warns_when_encoder_missing(
        self,
        cli_runner: CliRunner,
        config_file: Path,
        source_tree: Path,
        mocker: MockerFixture,
    ) -> None:
        """Test the warning printed when the encoder is not installed."""
        mocker.patch(
            "avif_converter.converters.avif.AvifEncoder.is_available", return_value=False
        )

        result = cli_runner.invoke(main, ["--config", str(config_file), "convert", str(source_tree)])

        assert result.exit_code == 0, result.output
        assert "Encoder" in result.output
        assert "Successfully converted:  6" in result.output

    def test_discovery_failures_print_summary(
        self,
        cli_runner: CliRunner,
        config_file: Path,
        temp_dir: Path,
        mocker: MockerFixture,
    ) -> None:
        """Test that images lost during discovery lead to a summary, not "nothing to do"."""
        mocker.patch("avif_converter.__main__.console", Console(width=500))
        source = temp_dir / "pics"
        (source / "sub").mkdir(parents=True)
        (source / "sub" / "1.png").write_bytes(b"x")
        (temp_dir / "pics_avif").mkdir()
        (temp_dir / "pics_avif" / "sub").write_text("a file in the way")

        result = cli_runner.invoke(
            main, ["--config", str(config_file), "-q", "convert", str(source)]
        )

        assert result.exit_code == 0, result.output
        assert "No image files found" not in result.output
        assert "Failed conversions:      1" in result.output
        assert "error.txt for error details" in result.output

    def test_cancelled_run_exits_130(
        self,
        cli_runner: CliRunner,
        config_file: Path,
        source_tree: Path,
        mocker: MockerFixture,
    ) -> None:
        """Test that a gracefully cancelled run prints the summary and exits 130."""
        mocker.patch(
            "avif_converter.core.orchestrator.Orchestrator._install_interrupt_handler",
            side_effect=lambda self: (self.cancel(), lambda: None)[1],
            autospec=True,
        )

        result = cli_runner.invoke(
            main, ["--config", str(config_file), "-q", "convert", str(source_tree)]
        )

        assert result.exit_code == 130
        assert "Final Statistics" in result.output
        assert "Conversion cancelled by user." in result.output

    def test_rejects_zero_workers(
        self, cli_runner: CliRunner, config_file: Path, source_tree: Path
    ) -> None:
        """Test that the worker count is range checked."""
        result = cli_runner.invoke(
            main, ["--config", str(config_file), "convert", str(source_tree), "--workers", "0"]
        )

        assert result.exit_code == 2


class TestRenameCommand:
    """Tests for the rename command."""

    def test_renames_unsafe_directories(
        self, cli_runner: CliRunner, config_file: Path, source_tree: Path
    ) -> None:
        """Test renaming from the command line."""
        result = cli_runner.invoke(main, ["--config", str(config_file), "rename", str(source_tree)])

        assert result.exit_code == 0, result.output
        assert "Renamed 2 directories" in result.output
        assert (source_tree / "Trip__2021_" / "day__1").is_dir()


class TestVerifyCommand:
    """Tests for the verify command."""

    def test_unconverted_tree(
        self, cli_runner: CliRunner, config_file: Path, source_tree: Path
    ) -> None:
        """Test that missing outputs are listed."""
        result = cli_runner.invoke(main, ["--config", str(config_file), "verify", str(source_tree)])

        assert result.exit_code == 0, result.output
        assert "mismatched file counts" in result.output

    def test_after_conversion(
        self, cli_runner: CliRunner, config_file: Path, source_tree: Path
    ) -> None:
        """Test that a converted tree verifies cleanly."""
        convert = cli_runner.invoke(
            main, ["--config", str(config_file), "-q", "convert", str(source_tree)]
        )
        assert convert.exit_code == 0, convert.output

        result = cli_runner.invoke(main, ["--config", str(config_file), "verify", str(source_tree)])

        assert result.exit_code == 0, result.output
        assert "All directories verified" in result.output
