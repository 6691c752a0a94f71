"""Run scripts that drive an external document conversion engine."""

from conversion_scripts.errors import (
    ExitCodeParseError,
    FailureKind,
    ProcessAccessError,
    ScriptInterruptedError,
    ScriptIOError,
    ScriptOutcome,
    ScriptTimeoutError,
    UnsupportedPlatformError,
)
from conversion_scripts.quoting import double_quote, quote
from conversion_scripts.runner import ScriptRunner

__all__ = [
    "ExitCodeParseError",
    "FailureKind",
    "ProcessAccessError",
    "ScriptIOError",
    "ScriptInterruptedError",
    "ScriptOutcome",
    "ScriptRunner",
    "ScriptTimeoutError",
    "UnsupportedPlatformError",
    "double_quote",
    "quote",
]
