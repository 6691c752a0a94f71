"""Local process launcher implementation."""

from __future__ import annotations

import os
import selectors
import signal
import subprocess
import threading
import time
from typing import IO, Any, Sequence

from conversion_scripts.execution.base import (
    ExecutionResult,
    LaunchInterruptedError,
    LaunchTimeoutError,
    ProcessConfiguration,
    ProcessLauncher,
)
from conversion_scripts.execution.sinks import OutputSink
from conversion_scripts.util.logging import get_logger

DEFAULT_POLL_INTERVAL_S = 0.1
DEFAULT_GRACE_PERIOD_S = 5.0
_CHUNK_SIZE = 65536
_DRAIN_LIMIT_S = 1.0


class SubprocessLauncher(ProcessLauncher):
    """Launch processes on the local host with :mod:`subprocess`.

    Children are started in their own session (POSIX) or process group
    (Windows) so that signals aimed at the host do not reach them, and no exit
    hook is ever installed to kill them. A script that shuts the conversion
    engine down therefore runs to completion even while the host is exiting.
    The only ways a child is ended early are the timeout and the caller's
    cancel event.
    """

    def __init__(
        self,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        grace_period_s: float = DEFAULT_GRACE_PERIOD_S,
    ) -> None:
        """Initialize the launcher.

        Args:
            poll_interval_s: How often the cancel event is checked while waiting.
            grace_period_s: How long to wait for output readers after the
                process has ended or was killed.
        """

        self._poll_interval_s = poll_interval_s
        self._grace_period_s = grace_period_s
        self._logger = get_logger(self.__class__.__name__)

    def launch(
        self,
        command: Sequence[str] | str,
        configuration: ProcessConfiguration,
        cancel_event: threading.Event | None = None,
    ) -> ExecutionResult:
        """Run a command locally and stream its output into the sinks.

        Args:
            command: Tokens of the command, or a complete command line.
            configuration: Working directory, timeout and sinks to use.
            cancel_event: Optional event the caller sets to abandon the wait.

        Returns:
            ExecutionResult with the captured standard output and exit status.
        """

        if not command:
            raise ValueError("Command must contain at least one argument.")

        start = time.monotonic()
        self._logger.debug("Starting process: %s", command)
        process = subprocess.Popen(
            command if isinstance(command, str) else list(command),
            cwd=str(configuration.working_directory),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            **_detached_options(),
        )
        captured: list[bytes] = []
        readers = [
            _OutputReader(process.stdout, configuration.output_sink, captured, self._poll_interval_s),
            _OutputReader(process.stderr, configuration.error_sink, None, self._poll_interval_s),
        ]
        for reader in readers:
            reader.start()

        deadline = start + configuration.timeout_s
        while True:
            if cancel_event is not None and cancel_event.is_set():
                self._kill(process, readers)
                raise LaunchInterruptedError(command)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._kill(process, readers)
                raise LaunchTimeoutError(command, configuration.timeout_s)
            try:
                exit_status = process.wait(timeout=min(remaining, self._poll_interval_s))
                break
            except subprocess.TimeoutExpired:
                continue

        self._finish(readers)
        duration = time.monotonic() - start
        self._logger.debug(
            "Process finished with exit status %s in %.2fs.", exit_status, duration
        )

        output = b"".join(captured)
        if exit_status != 0 and not configuration.accept_any_exit_code:
            raise subprocess.CalledProcessError(exit_status, command, output=output)

        return ExecutionResult(
            command=command,
            output=output,
            exit_status=exit_status,
            duration_s=duration,
        )

    def _kill(self, process: subprocess.Popen[bytes], readers: list[_OutputReader]) -> None:
        self._logger.warning("Killing process %s", process.pid)
        if os.name == "posix":
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            except PermissionError:
                process.kill()
        else:
            process.kill()
        process.wait()
        self._finish(readers)

    def _finish(self, readers: list[_OutputReader]) -> None:
        deadline = time.monotonic() + self._grace_period_s
        for reader in readers:
            reader.finish()
        for reader in readers:
            reader.join(timeout=max(0.0, deadline - time.monotonic()))
            if reader.is_alive():
                self._logger.warning("Output of process is still open after exit.")


class _OutputReader:
    """Copy one output pipe of a process into a sink, line by line.

    On POSIX the pipe is polled, and once :meth:`finish` is called only the
    output already buffered is read before the pipe is closed. Background
    processes that inherited the pipe therefore cannot keep the reader alive.
    Windows pipes cannot be polled; there the reader runs until end of file.
    """

    def __init__(
        self,
        stream: IO[bytes] | None,
        sink: OutputSink,
        captured: list[bytes] | None,
        poll_interval_s: float,
    ) -> None:
        self._stream = stream
        self._sink = sink
        self._captured = captured
        self._poll_interval_s = poll_interval_s
        self._finished = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name="process-output-reader",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def finish(self) -> None:
        """Stop reading once the output buffered so far has been consumed."""

        self._finished.set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        if self._stream is None:
            return
        with self._stream:
            if os.name == "posix":
                self._poll_lines(self._stream)
            else:
                for raw_line in iter(self._stream.readline, b""):
                    self._emit(raw_line)

    def _poll_lines(self, stream: IO[bytes]) -> None:
        fd = stream.fileno()
        pending = b""
        drain_deadline: float | None = None
        with selectors.DefaultSelector() as selector:
            selector.register(fd, selectors.EVENT_READ)
            while True:
                if drain_deadline is None and self._finished.is_set():
                    drain_deadline = time.monotonic() + _DRAIN_LIMIT_S
                draining = drain_deadline is not None
                if draining and time.monotonic() > drain_deadline:
                    break
                ready = selector.select(timeout=0 if draining else self._poll_interval_s)
                if not ready:
                    if draining:
                        break
                    continue
                chunk = os.read(fd, _CHUNK_SIZE)
                if not chunk:
                    break
                *lines, pending = (pending + chunk).split(b"\n")
                for line in lines:
                    self._emit(line + b"\n")
        if pending:
            self._emit(pending)

    def _emit(self, raw_line: bytes) -> None:
        if self._captured is not None:
            self._captured.append(raw_line)
        self._sink.write_line(raw_line.decode("utf-8", errors="replace").rstrip("\r\n"))


def _detached_options() -> dict[str, Any]:
    if os.name == "posix":
        return {"start_new_session": True}
    return {"creationflags": getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)}
