"""Base encoder interface and conversion errors.

This module defines the abstract base class for external image encoders and
the ``ConversionError`` hierarchy raised by the conversion executor. Every
per-file failure the pipeline can recover from is a ``ConversionError``.

Example:
    >>> from avif_converter.converters.base import BaseEncoder
    >>>
    >>> class MyEncoder(BaseEncoder):
    ...     def build_command(self, staged_input, output_dir):
    ...         return ["my-encoder", str(staged_input), str(output_dir)]
    ...
    >>> encoder = MyEncoder()
    >>> encoder.expected_output(Path("/tmp/s/source.png"), Path("/tmp/s"))
    PosixPath('/tmp/s/source.avif')
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from avif_converter.utils.constants import TARGET_EXTENSION


class ConversionError(Exception):
    """Exception raised when converting a single file fails.

    Attributes:
        input_path: Source image that was being converted.
    """

    def __init__(self, message: str, input_path: Path | None = None) -> None:
        self.input_path = input_path
        super().__init__(message)


class StagingError(ConversionError):
    """Exception raised when the input cannot be copied to its staging directory."""

    pass


class EncoderNotAvailableError(ConversionError):
    """Exception raised when the encoder executable cannot be found or started."""

    pass


class EncoderProcessError(ConversionError):
    """Exception raised when the encoder exits with a non-zero status.

    Attributes:
        returncode: Exit code of the encoder.
        stderr: Captured standard error.
        stdout: Captured standard output.
        staged_path: Staged copy passed to the encoder.
    """

    def __init__(
        self,
        input_path: Path,
        staged_path: Path,
        returncode: int,
        stderr: str = "",
        stdout: str = "",
    ) -> None:
        self.staged_path = staged_path
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        detail = stderr.strip() or stdout.strip() or "no output"
        super().__init__(
            f"Encoder exited with code {returncode} for '{input_path}' "
            f"(staged as '{staged_path}'): {detail[-500:]}",
            input_path,
        )


class EncoderTimeoutError(ConversionError):
    """Exception raised when the encoder exceeds the per-conversion timeout.

    Attributes:
        timeout: The timeout value in seconds.
    """

    def __init__(self, input_path: Path, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            f"Encoder timed out after {timeout:.1f} seconds for '{input_path}'",
            input_path,
        )


class MissingOutputError(ConversionError):
    """Exception raised when the encoder succeeded but produced no file.

    Attributes:
        expected_path: Where the encoder output was expected.
    """

    def __init__(self, input_path: Path, expected_path: Path) -> None:
        self.expected_path = expected_path
        super().__init__(
            f"Encoder reported success but '{expected_path}' was not created "
            f"for '{input_path}'",
            input_path,
        )


class BaseEncoder(ABC):
    """Abstract base class for external image encoders.

    Subclasses only describe how the encoder is invoked; staging, process
    execution and output placement are handled by ``ConversionExecutor``.

    Attributes:
        target_extension: Extension of the files the encoder writes.
    """

    target_extension: str = TARGET_EXTENSION

    @property
    def encoder_name(self) -> str:
        """Human-readable encoder name."""
        return type(self).__name__

    @property
    def executable(self) -> str:
        """Program launched by ``build_command``."""
        return self.build_command(Path("input"), Path("."))[0]

    def is_available(self) -> bool:
        """Check if the encoder executable is available on the system.

        Returns:
            True if the executable is found, False otherwise.
        """
        return shutil.which(self.executable) is not None

    @abstractmethod
    def build_command(self, staged_input: Path, output_dir: Path) -> list[str]:
        """Build the encoder command line.

        Args:
            staged_input: Staged copy of the source image.
            output_dir: Directory the encoder writes into.

        Returns:
            List of command arguments.
        """
        ...

    def expected_output(self, staged_input: Path, output_dir: Path) -> Path:
        """Return where the encoder writes its result.

        Args:
            staged_input: Staged copy of the source image.
            output_dir: Directory passed to the encoder.

        Returns:
            ``output_dir / <staged stem>.<target_extension>``.
        """
        return output_dir / f"{staged_input.stem}.{self.target_extension}"


__all__ = [
    "BaseEncoder",
    "ConversionError",
    "EncoderNotAvailableError",
    "EncoderProcessError",
    "EncoderTimeoutError",
    "MissingOutputError",
    "StagingError",
]
