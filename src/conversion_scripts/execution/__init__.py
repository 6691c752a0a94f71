"""Process execution package."""

from conversion_scripts.execution.base import (
    ExecutionResult,
    LaunchInterruptedError,
    LaunchTimeoutError,
    ProcessConfiguration,
    ProcessLauncher,
)
from conversion_scripts.execution.local_exec import SubprocessLauncher
from conversion_scripts.execution.sinks import (
    CollectingSink,
    EventSink,
    LoggerSink,
    OutputSink,
    TeeSink,
)

__all__ = [
    "CollectingSink",
    "EventSink",
    "ExecutionResult",
    "LaunchInterruptedError",
    "LaunchTimeoutError",
    "LoggerSink",
    "OutputSink",
    "ProcessConfiguration",
    "ProcessLauncher",
    "SubprocessLauncher",
    "TeeSink",
]
