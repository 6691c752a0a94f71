"""Per-platform command building and exit code extraction."""

from __future__ import annotations

import platform
import re
from abc import ABC, abstractmethod
from pathlib import Path

from conversion_scripts.execution.base import ExecutionResult
from conversion_scripts.quoting import double_quote

DEFAULT_SCRIPTING_HOST = "/usr/bin/osascript"

_EXIT_CODE_PATTERN = re.compile(r"[+-]?[0-9]+")
_EXIT_CODE_MIN = -(2**31)
_EXIT_CODE_MAX = 2**31 - 1


class ExitCodeFormatError(ValueError):
    """Raised when a script's printed exit code cannot be parsed."""


class PlatformNotSupportedError(RuntimeError):
    """Raised when scripts are requested on a platform without a strategy."""

    def __init__(self, platform_name: str) -> None:
        super().__init__(f"Running scripts is not supported on platform {platform_name!r}.")
        self.platform_name = platform_name


class PlatformStrategy(ABC):
    """How scripts are invoked, and their exit codes read, on one platform."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a short name of the platform family."""

    @abstractmethod
    def build_command(self, script: Path) -> list[str]:
        """Return the command tokens that run a no-argument script."""

    def render(self, command: list[str]) -> list[str] | str:
        """Return the command in the form handed to the operating system."""

        return command

    @abstractmethod
    def extract_exit_code(self, result: ExecutionResult) -> int:
        """Return the normalized exit code of a finished script."""


class WindowsStrategy(PlatformStrategy):
    """Run batch files through ``cmd`` and use the native exit status."""

    @property
    def name(self) -> str:
        return "windows"

    def build_command(self, script: Path) -> list[str]:
        return ["cmd", "/S", "/C", double_quote(str(script.absolute()))]

    def render(self, command: list[str]) -> str:
        # cmd.exe parses quotes itself; the pre-quoted tokens must reach it verbatim.
        return " ".join(command)

    def extract_exit_code(self, result: ExecutionResult) -> int:
        return result.exit_status


class AppleDesktopStrategy(PlatformStrategy):
    """Run AppleScripts through a scripting host that prints the exit code.

    ``osascript`` does not report the logical result of a script as its own
    exit status. Scripts therefore print their result as a decimal integer on
    standard output, optionally followed by line breaks.
    """

    def __init__(self, scripting_host: str = DEFAULT_SCRIPTING_HOST) -> None:
        self._scripting_host = scripting_host

    @property
    def name(self) -> str:
        return "macos"

    @property
    def scripting_host(self) -> str:
        """Return the binary used to run scripts."""

        return self._scripting_host

    def build_command(self, script: Path) -> list[str]:
        return [self._scripting_host, str(script.absolute())]

    def extract_exit_code(self, result: ExecutionResult) -> int:
        """Parse the exit code printed by the script.

        Raises:
            ExitCodeFormatError: If the output, with line breaks removed, is not
                exactly one base-10 integer.
        """

        return parse_printed_exit_code(result.output)


class UnsupportedPlatformStrategy(PlatformStrategy):
    """Refuse to run scripts on platforms without a known invocation."""

    def __init__(self, platform_name: str) -> None:
        self._platform_name = platform_name

    @property
    def name(self) -> str:
        return self._platform_name

    def build_command(self, script: Path) -> list[str]:
        raise PlatformNotSupportedError(self._platform_name)

    def extract_exit_code(self, result: ExecutionResult) -> int:
        raise PlatformNotSupportedError(self._platform_name)


def parse_printed_exit_code(output: bytes) -> int:
    """Parse an exit code a script printed as decimal text.

    The output must be one 32-bit integer, optionally preceded or followed by
    line feeds. Carriage returns and any other whitespace are rejected.

    Args:
        output: Raw standard output of the script.

    Returns:
        The printed integer.

    Raises:
        ExitCodeFormatError: If the text is not a single integer.
    """

    try:
        text = output.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ExitCodeFormatError("Script output is not valid UTF-8.") from exc
    stripped = text.strip("\n")
    if not _EXIT_CODE_PATTERN.fullmatch(stripped):
        raise ExitCodeFormatError(f"Script did not print an exit code: {text!r}")
    exit_code = int(stripped)
    if not _EXIT_CODE_MIN <= exit_code <= _EXIT_CODE_MAX:
        raise ExitCodeFormatError(f"Printed exit code is out of range: {exit_code}")
    return exit_code


def select_platform_strategy(
    system: str | None = None,
    scripting_host: str = DEFAULT_SCRIPTING_HOST,
) -> PlatformStrategy:
    """Select the strategy for a platform.

    Args:
        system: Platform name as reported by :func:`platform.system`, or one of
            the strategy names. Defaults to the host platform.
        scripting_host: Binary that runs scripts on macOS.

    Returns:
        The matching strategy. Unknown platforms get a strategy that refuses to
        run anything.
    """

    system_name = system if system is not None else platform.system()
    normalized = system_name.strip().lower()
    if normalized.startswith("windows"):
        return WindowsStrategy()
    if normalized in {"darwin", "macos"} or normalized.startswith("mac"):
        return AppleDesktopStrategy(scripting_host)
    return UnsupportedPlatformStrategy(system_name)
