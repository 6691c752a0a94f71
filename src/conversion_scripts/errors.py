"""Failure taxonomy for running conversion scripts."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import cast

from conversion_scripts.execution.base import LaunchInterruptedError, LaunchTimeoutError
from conversion_scripts.platforms import ExitCodeFormatError, PlatformNotSupportedError
from conversion_scripts.util.logging import get_logger


class FailureKind(str, Enum):
    """Category of a failed script invocation."""

    IO = "io"
    INTERRUPTED = "interrupted"
    TIMEOUT = "timeout"
    PARSE = "parse"
    UNSUPPORTED_PLATFORM = "unsupported_platform"


class ProcessAccessError(RuntimeError):
    """Raised when a script could not be run to a usable exit code.

    Attributes:
        kind: Category of the failure.
        script: Script that was being run.
    """

    kind: FailureKind = FailureKind.IO

    def __init__(self, message: str, script: Path) -> None:
        super().__init__(message)
        self.script = script


class ScriptIOError(ProcessAccessError):
    """The process could not be started or communicated with."""

    kind = FailureKind.IO


class ScriptInterruptedError(ProcessAccessError):
    """Waiting for the process was interrupted."""

    kind = FailureKind.INTERRUPTED


class ScriptTimeoutError(ProcessAccessError):
    """The process did not finish in time and was killed."""

    kind = FailureKind.TIMEOUT


class ExitCodeParseError(ProcessAccessError):
    """The script ran but did not print a readable exit code."""

    kind = FailureKind.PARSE


class UnsupportedPlatformError(ProcessAccessError):
    """No command is known for running scripts on this platform."""

    kind = FailureKind.UNSUPPORTED_PLATFORM


@dataclass(frozen=True)
class ScriptOutcome:
    """Result of one script invocation: an exit code or a failure.

    Attributes:
        script: Script that was run.
        exit_code: Normalized exit code when the invocation succeeded.
        error: Mapped failure when it did not.
    """

    script: Path
    exit_code: int | None = None
    error: ProcessAccessError | None = None

    def __post_init__(self) -> None:
        """Ensure exactly one of exit code and error is set."""

        if (self.exit_code is None) == (self.error is None):
            raise ValueError("ScriptOutcome requires either an exit code or an error.")

    @property
    def ok(self) -> bool:
        """Return whether the script produced an exit code."""

        return self.error is None

    @property
    def kind(self) -> FailureKind | None:
        """Return the failure category, if any."""

        return self.error.kind if self.error is not None else None

    def unwrap(self) -> int:
        """Return the exit code or raise the mapped failure."""

        if self.error is not None:
            raise self.error
        return cast(int, self.exit_code)


class ErrorMapper:
    """Translate launcher and platform failures into ProcessAccessError."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_logger("conversion_scripts.errors")

    def map(self, script: Path, exc: BaseException) -> ProcessAccessError:
        """Map a failure and log it once.

        Args:
            script: Script that was being run.
            exc: Failure raised while running it.

        Returns:
            The domain error, with ``exc`` as its cause.

        Raises:
            TypeError: If ``exc`` is not a failure this mapper knows about.
        """

        error = self._translate(script, exc)
        error.__cause__ = exc
        self._logger.error(str(error), exc_info=exc)
        return error

    def _translate(self, script: Path, exc: BaseException) -> ProcessAccessError:
        if isinstance(exc, LaunchTimeoutError):
            return ScriptTimeoutError(
                f"Thread responsible for running script timed out: {script}", script
            )
        if isinstance(exc, (LaunchInterruptedError, InterruptedError)):
            return ScriptInterruptedError(
                f"Thread responsible for running script was interrupted: {script}", script
            )
        if isinstance(exc, (OSError, subprocess.CalledProcessError)):
            return ScriptIOError(f"Unable to run script: {script}", script)
        if isinstance(exc, ExitCodeFormatError):
            return ExitCodeParseError(f"Unable to read exit code of script: {script}", script)
        if isinstance(exc, PlatformNotSupportedError):
            return UnsupportedPlatformError(
                f"Cannot run script on unsupported platform {exc.platform_name}: {script}",
                script,
            )
        raise TypeError(f"Cannot map failure of type {type(exc).__name__}") from exc


MAPPED_FAILURES: tuple[type[BaseException], ...] = (
    LaunchTimeoutError,
    LaunchInterruptedError,
    OSError,
    subprocess.CalledProcessError,
    ExitCodeFormatError,
    PlatformNotSupportedError,
)
