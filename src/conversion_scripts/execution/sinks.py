"""Line-oriented destinations for the output of launched processes."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from conversion_scripts.util.observability import EventLogger


class OutputSink(Protocol):
    """Receives the output of a process one line at a time."""

    def write_line(self, line: str) -> None:
        """Consume one line of output without its line terminator."""


class LoggerSink:
    """Forward each line to a standard library logger."""

    def __init__(self, logger: logging.Logger, level: int = logging.INFO) -> None:
        self._logger = logger
        self._level = level

    def write_line(self, line: str) -> None:
        self._logger.log(self._level, line)


class EventSink:
    """Emit each line as a ``script.output`` JSON event."""

    def __init__(self, events: EventLogger, stream: str) -> None:
        self._events = events
        self._stream = stream

    def write_line(self, line: str) -> None:
        self._events.log("script.output", {"stream": self._stream, "line": line})


class CollectingSink:
    """Keep every line in memory."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def write_line(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)

    @property
    def lines(self) -> list[str]:
        """Return a copy of the collected lines."""

        with self._lock:
            return list(self._lines)


class TeeSink:
    """Forward each line to several sinks in order."""

    def __init__(self, *sinks: OutputSink) -> None:
        self._sinks = sinks

    def write_line(self, line: str) -> None:
        for sink in self._sinks:
            sink.write_line(line)
