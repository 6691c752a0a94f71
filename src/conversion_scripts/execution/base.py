"""Process launcher base types and interfaces."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from conversion_scripts.execution.sinks import OutputSink


class LaunchTimeoutError(RuntimeError):
    """Raised when a launched process outlives its configured timeout."""

    def __init__(self, command: Sequence[str] | str, timeout_s: float) -> None:
        super().__init__(f"Process did not finish within {timeout_s:g}s: {command}")
        self.command = command
        self.timeout_s = timeout_s


class LaunchInterruptedError(RuntimeError):
    """Raised when the caller cancels a process while waiting for it."""

    def __init__(self, command: Sequence[str] | str) -> None:
        super().__init__(f"Waiting for process was interrupted: {command}")
        self.command = command


@dataclass(frozen=True)
class ProcessConfiguration:
    """Settings shared by every process a launcher starts.

    Attributes:
        working_directory: Directory the process is rooted at. Must exist.
        timeout_s: Maximum lifetime of the process in seconds. Must be positive.
        output_sink: Receives standard output line by line.
        error_sink: Receives standard error line by line.
        accept_any_exit_code: Whether any exit status counts as normal
            termination. Interpreting the status is then left to the caller.
    """

    working_directory: Path
    timeout_s: float
    output_sink: OutputSink
    error_sink: OutputSink
    accept_any_exit_code: bool = True

    def __post_init__(self) -> None:
        """Validate the working directory and timeout."""

        if not self.timeout_s > 0:
            raise ValueError(f"Process timeout must be positive, got {self.timeout_s!r}.")
        directory = Path(self.working_directory)
        if not directory.is_dir():
            raise ValueError(f"Working directory does not exist: {directory}")
        object.__setattr__(self, "working_directory", directory)


@dataclass(frozen=True)
class ExecutionResult:
    """Result of a process that terminated on its own.

    Attributes:
        command: The command as handed to the operating system.
        output: Raw bytes captured from standard output.
        exit_status: Exit status reported by the operating system.
        duration_s: Wall-clock duration of the process in seconds.
    """

    command: Sequence[str] | str
    output: bytes
    exit_status: int
    duration_s: float


class ProcessLauncher(ABC):
    """Abstract base class for launching one child process at a time."""

    @abstractmethod
    def launch(
        self,
        command: Sequence[str] | str,
        configuration: ProcessConfiguration,
        cancel_event: threading.Event | None = None,
    ) -> ExecutionResult:
        """Run a command to completion and capture its output.

        Args:
            command: Tokens of the command, or a complete command line.
            configuration: Working directory, timeout and sinks to use.
            cancel_event: Optional event the caller sets to abandon the wait.

        Returns:
            ExecutionResult with the captured output and exit status.

        Raises:
            OSError: If the process cannot be started or read from.
            LaunchTimeoutError: If the timeout elapsed; the process was killed.
            LaunchInterruptedError: If ``cancel_event`` was set; the process
                was killed.
        """
