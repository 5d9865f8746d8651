"""Single-file conversion with a private staging directory.

The encoder is never pointed at the user's files directly. Each conversion:

    1. creates a unique staging directory under the scratch root and copies
       the source there as ``source{ext}``;
    2. runs the encoder on the staged copy with a timeout;
    3. checks the exit status and that ``source.avif`` was produced;
    4. moves the result to ``<output_directory>/<NNN>.avif``, replacing any
       stale file;
    5. removes the staging directory, whatever happened.

Staging isolates the encoder from unsafe source names and lets concurrent
workers convert files with identical names without collisions.

Example:
    >>> executor = ConversionExecutor(AvifEncoder(), scratch_root=Path("/tmp/avif"))
    >>> output = await executor.convert(task)
    >>> output.name
    '001.avif'
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from avif_converter.converters.avif import AvifEncoder
from avif_converter.converters.base import (
    BaseEncoder,
    ConversionError,
    EncoderNotAvailableError,
    EncoderProcessError,
    EncoderTimeoutError,
    MissingOutputError,
    StagingError,
)
from avif_converter.core.config import Config
from avif_converter.core.types import ConversionTask
from avif_converter.utils.command_runner import (
    CommandFailure,
    CommandNotFoundError,
    CommandRunner,
    CommandStartError,
    CommandTimeoutError,
)
from avif_converter.utils.constants import ENCODER_PROCESS_TIMEOUT, STAGED_INPUT_STEM
from avif_converter.utils.file_utils import (
    create_temp_directory,
    remove_tree,
    safe_copy,
    safe_move,
)

logger = logging.getLogger(__name__)


class ConversionExecutor:
    """Runs the encoder for one task using the staging protocol.

    Attributes:
        encoder: Encoder describing the command line.
        scratch_root: Parent directory of all staging directories.
        timeout: Per-conversion timeout in seconds.
    """

    def __init__(
        self,
        encoder: BaseEncoder,
        scratch_root: Path,
        *,
        timeout: float = ENCODER_PROCESS_TIMEOUT,
        command_runner: CommandRunner | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            encoder: Encoder to invoke.
            scratch_root: Directory under which staging directories are made.
            timeout: Per-conversion timeout in seconds.
            command_runner: Runner used to spawn the encoder.
        """
        self.encoder = encoder
        self.scratch_root = scratch_root
        self.timeout = timeout
        self._command_runner = command_runner or CommandRunner()

    @classmethod
    def from_config(cls, config: Config) -> ConversionExecutor:
        """Create an executor for the AVIF encoder from configuration.

        Args:
            config: Application configuration.

        Returns:
            Configured ConversionExecutor.
        """
        return cls(
            AvifEncoder(config.encoder),
            scratch_root=config.paths.scratch_dir,
            timeout=config.encoder.timeout,
        )

    async def convert(self, task: ConversionTask) -> Path:
        """Convert one source image to its numbered output.

        Args:
            task: Task with input path, output directory and sequence index.

        Returns:
            Path of the produced output file.

        Raises:
            StagingError: If the source cannot be staged.
            EncoderNotAvailableError: If the encoder is missing or cannot be started.
            EncoderTimeoutError: If the encoder exceeds the timeout.
            EncoderProcessError: If the encoder exits with a non-zero status.
            MissingOutputError: If the encoder produced no output file.
            ConversionError: If the output cannot be moved into place.
        """
        start_time = time.perf_counter()

        try:
            staging_dir = await asyncio.to_thread(create_temp_directory, self.scratch_root)
        except OSError as e:
            raise StagingError(
                f"Cannot create staging directory in '{self.scratch_root}': {e}",
                task.input_path,
            ) from e

        try:
            staged_input = staging_dir / f"{STAGED_INPUT_STEM}{task.input_path.suffix}"
            try:
                await asyncio.to_thread(safe_copy, task.input_path, staged_input)
            except OSError as e:
                raise StagingError(
                    f"Cannot stage '{task.input_path}': {e}", task.input_path
                ) from e

            command = self.encoder.build_command(staged_input, staging_dir)
            logger.debug("Command: %s", " ".join(command))

            try:
                result = await self._command_runner.run_async(command, timeout=self.timeout)
            except (CommandNotFoundError, CommandStartError) as e:
                raise EncoderNotAvailableError(str(e), task.input_path) from e
            except CommandTimeoutError as e:
                raise EncoderTimeoutError(task.input_path, self.timeout) from e

            if isinstance(result, CommandFailure):
                raise EncoderProcessError(
                    task.input_path,
                    staged_input,
                    result.returncode,
                    stderr=result.stderr,
                    stdout=result.stdout,
                )

            produced = self.encoder.expected_output(staged_input, staging_dir)
            if not produced.is_file():
                raise MissingOutputError(task.input_path, produced)

            try:
                output_path = await asyncio.to_thread(
                    safe_move, produced, task.output_path, True
                )
            except OSError as e:
                raise ConversionError(
                    f"Cannot move '{produced}' to '{task.output_path}': {e}",
                    task.input_path,
                ) from e
        finally:
            await asyncio.to_thread(remove_tree, staging_dir)

        logger.info(
            "Converted %s -> %s (%.1fs)",
            task.input_path.name,
            output_path,
            time.perf_counter() - start_time,
        )
        return output_path


__all__ = ["ConversionExecutor"]
