"""Command execution utilities for the external encoder.

This module wraps ``asyncio`` subprocess handling for the AVIF encoder with
timeouts, guaranteed process cleanup and a tagged result type: every run
yields either a ``CommandSuccess`` or a ``CommandFailure``.

Example:
    >>> runner = CommandRunner()
    >>> result = await runner.run_async(["deno", "--version"], timeout=10)
    >>> if isinstance(result, CommandFailure):
    ...     print(result.returncode, result.stderr)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandSuccess:
    """Command exited with status 0.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error output from the command.
    """

    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        """Always True."""
        return True

    @property
    def returncode(self) -> int:
        """Always 0."""
        return 0


@dataclass(frozen=True)
class CommandFailure:
    """Command exited with a non-zero status.

    Attributes:
        returncode: Exit code of the command.
        stderr: Standard error output from the command.
        stdout: Standard output from the command.
    """

    returncode: int
    stderr: str = ""
    stdout: str = ""

    @property
    def success(self) -> bool:
        """Always False."""
        return False


CommandResult = Union[CommandSuccess, CommandFailure]


class CommandNotFoundError(Exception):
    """Raised when required external command is not found.

    This exception provides helpful installation instructions for common tools.

    Attributes:
        command: The command that was not found.
    """

    INSTALL_HINTS = {
        "deno": "Install with: curl -fsSL https://deno.land/install.sh | sh",
        "npx": "Install Node.js from https://nodejs.org",
    }

    def __init__(self, command: str) -> None:
        self.command = command
        hint = self.INSTALL_HINTS.get(command, "")
        msg = f"Command '{command}' not found."
        if hint:
            msg += f" {hint}"
        super().__init__(msg)


class CommandStartError(Exception):
    """Raised when an existing command cannot be started.

    Covers exec format errors, missing permissions and oversized argument
    lists.

    Attributes:
        command: The command that failed to start.
    """

    def __init__(self, command: str, error: OSError) -> None:
        self.command = command
        super().__init__(f"Command '{command}' could not be started: {error}")


class CommandTimeoutError(Exception):
    """Raised when command execution exceeds timeout.

    Attributes:
        command: The command that timed out.
        timeout: The timeout value in seconds.
    """

    def __init__(self, command: str, timeout: float) -> None:
        self.command = command
        self.timeout = timeout
        super().__init__(f"Command '{command}' timed out after {timeout:.1f} seconds.")


class CommandRunner:
    """Asynchronous wrapper for executing external commands.

    Example:
        >>> runner = CommandRunner()
        >>> result = await runner.run_async(["deno", "--version"])
        >>> print(result.stdout)
    """

    @staticmethod
    def check_command_exists(command: str) -> bool:
        """Check if a command exists in PATH.

        Args:
            command: The command name (or absolute path) to check.

        Returns:
            True if the command exists, False otherwise.
        """
        return shutil.which(command) is not None

    @staticmethod
    def ensure_command_exists(command: str) -> None:
        """Ensure a command exists, raising an error if not.

        Args:
            command: The command name to check.

        Raises:
            CommandNotFoundError: If the command is not found.
        """
        if not CommandRunner.check_command_exists(command):
            raise CommandNotFoundError(command)

    async def run_async(
        self,
        args: list[str],
        *,
        timeout: float | None = 60.0,
    ) -> CommandResult:
        """Run a command asynchronously.

        The child process is killed and reaped when the timeout expires or the
        awaiting task is cancelled.

        Args:
            args: Command and arguments to execute.
            timeout: Maximum time to wait for command (seconds).

        Returns:
            CommandSuccess or CommandFailure depending on the exit status.

        Raises:
            CommandNotFoundError: If the command is not found.
            CommandStartError: If the command cannot be started.
            CommandTimeoutError: If the command times out.
            asyncio.CancelledError: If the awaiting task is cancelled.
        """
        command_name = args[0] if args else ""
        self.ensure_command_exists(command_name)

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CommandNotFoundError(command_name) from e
        except OSError as e:
            raise CommandStartError(command_name, e) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError as e:
            await self._kill(process)
            raise CommandTimeoutError(command_name, timeout or 0.0) from e
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace")

        if process.returncode == 0:
            return CommandSuccess(stdout=stdout_text, stderr=stderr_text)
        return CommandFailure(
            returncode=process.returncode if process.returncode is not None else -1,
            stderr=stderr_text,
            stdout=stdout_text,
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill a child process and wait for it to exit."""
        if process.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        logger.debug("Killed process %s", process.pid)


__all__ = [
    "CommandFailure",
    "CommandNotFoundError",
    "CommandResult",
    "CommandRunner",
    "CommandStartError",
    "CommandSuccess",
    "CommandTimeoutError",
]
