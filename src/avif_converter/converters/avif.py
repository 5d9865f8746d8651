"""AVIF encoder based on the npm ``avif`` command line tool.

The default command runs the tool through deno::

    deno run --allow-ffi --allow-read --allow-write --allow-env npm:avif \\
        --input=<staged> --effort=1 --quality=60 --keep-metadata --verbose \\
        --output=<staging dir>

and expects ``<staged stem>.avif`` inside the output directory afterwards.

Example:
    >>> from avif_converter.converters.avif import AvifEncoder
    >>> encoder = AvifEncoder(EncoderConfig(quality=50))
    >>> encoder.build_command(Path("/tmp/s/source.png"), Path("/tmp/s"))[-1]
    '--output=/tmp/s'
"""

from __future__ import annotations

from pathlib import Path

from avif_converter.converters.base import BaseEncoder
from avif_converter.core.config import EncoderConfig


class AvifEncoder(BaseEncoder):
    """Encoder invoking the npm ``avif`` CLI.

    Attributes:
        config: Encoder settings (command prefix, quality, effort, flags).
    """

    def __init__(self, config: EncoderConfig | None = None) -> None:
        """Initialize the encoder.

        Args:
            config: Encoder settings. Defaults to ``EncoderConfig()``.
        """
        self.config = config or EncoderConfig()
        self.target_extension = self.config.target_extension

    @property
    def encoder_name(self) -> str:
        """Human-readable encoder name."""
        return "avif"

    @property
    def executable(self) -> str:
        """First element of the configured command prefix."""
        return self.config.command[0]

    def build_command(self, staged_input: Path, output_dir: Path) -> list[str]:
        """Build the encoder command line.

        Args:
            staged_input: Staged copy of the source image.
            output_dir: Directory the encoder writes into.

        Returns:
            List of command arguments.
        """
        cmd = list(self.config.command)
        cmd.extend(
            [
                f"--input={staged_input}",
                f"--effort={self.config.effort}",
                f"--quality={self.config.quality}",
            ]
        )
        if self.config.keep_metadata:
            cmd.append("--keep-metadata")
        if self.config.verbose:
            cmd.append("--verbose")
        cmd.append(f"--output={output_dir}")
        return cmd


__all__ = ["AvifEncoder"]
