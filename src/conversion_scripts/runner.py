"""Run no-argument conversion scripts and normalize their exit codes."""

from __future__ import annotations

import threading
import time
from pathlib import Path

from conversion_scripts.config import timeout_to_seconds
from conversion_scripts.errors import MAPPED_FAILURES, ErrorMapper, ScriptOutcome
from conversion_scripts.execution.base import ProcessConfiguration, ProcessLauncher
from conversion_scripts.execution.local_exec import SubprocessLauncher
from conversion_scripts.execution.sinks import LoggerSink, OutputSink
from conversion_scripts.platforms import PlatformStrategy, select_platform_strategy
from conversion_scripts.util.logging import SCRIPT_OUTPUT_LOGGER, get_logger
from conversion_scripts.util.observability import ObservabilityManager


class ScriptRunner:
    """Run scripts that drive an external conversion engine.

    A runner owns one process configuration (working directory, timeout and
    output sinks) and one platform strategy, both fixed at construction.
    Every call runs exactly one child process; nothing is retried. Calls may
    be made concurrently from several threads.
    """

    def __init__(
        self,
        base_folder: Path,
        process_timeout: float,
        timeout_unit: str = "seconds",
        *,
        strategy: PlatformStrategy | None = None,
        launcher: ProcessLauncher | None = None,
        output_sink: OutputSink | None = None,
        error_sink: OutputSink | None = None,
        observability: ObservabilityManager | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            base_folder: Existing directory scripts are run in.
            process_timeout: Maximum script lifetime in ``timeout_unit``.
            timeout_unit: One of milliseconds, seconds, minutes or hours.
            strategy: Platform strategy; selected from the host when omitted.
            launcher: Process launcher; a SubprocessLauncher when omitted.
            output_sink: Destination of script standard output.
            error_sink: Destination of script standard error.
            observability: Optional event logger and metrics collector.

        Raises:
            ValueError: If the folder does not exist or the timeout is invalid.
        """

        self._logger = get_logger(self.__class__.__name__)
        script_sink = LoggerSink(get_logger(SCRIPT_OUTPUT_LOGGER))
        self._configuration = ProcessConfiguration(
            working_directory=Path(base_folder),
            timeout_s=timeout_to_seconds(process_timeout, timeout_unit),
            output_sink=output_sink or script_sink,
            error_sink=error_sink or script_sink,
        )
        self._strategy = strategy or select_platform_strategy()
        self._launcher = launcher or SubprocessLauncher()
        self._errors = ErrorMapper(self._logger)
        self._observability = observability

    @property
    def base_folder(self) -> Path:
        """Return the working directory of launched scripts."""

        return self._configuration.working_directory

    @property
    def process_timeout_s(self) -> float:
        """Return the process timeout in seconds."""

        return self._configuration.timeout_s

    @property
    def strategy(self) -> PlatformStrategy:
        """Return the platform strategy chosen at construction."""

        return self._strategy

    @property
    def configuration(self) -> ProcessConfiguration:
        """Return the preset process configuration."""

        return self._configuration

    def make_configuration(self, output_sink: OutputSink | None = None) -> ProcessConfiguration:
        """Return the preset configuration, optionally with another output sink."""

        if output_sink is None:
            return self._configuration
        return ProcessConfiguration(
            working_directory=self._configuration.working_directory,
            timeout_s=self._configuration.timeout_s,
            output_sink=output_sink,
            error_sink=self._configuration.error_sink,
            accept_any_exit_code=self._configuration.accept_any_exit_code,
        )

    def execute(
        self,
        script: Path,
        cancel_event: threading.Event | None = None,
        output_sink: OutputSink | None = None,
    ) -> ScriptOutcome:
        """Run a no-argument script and return its outcome.

        Args:
            script: Script to run.
            cancel_event: Optional event that abandons the run when set.
            output_sink: Optional destination of standard output for this run.

        Returns:
            ScriptOutcome holding the exit code or the mapped failure.
        """

        script = Path(script)
        self._logger.debug("Execute no-argument script %s", script)
        start = time.monotonic()
        try:
            command = self._strategy.build_command(script)
            result = self._launcher.launch(
                self._strategy.render(command),
                self.make_configuration(output_sink),
                cancel_event=cancel_event,
            )
            exit_code = self._strategy.extract_exit_code(result)
        except MAPPED_FAILURES as exc:
            outcome = ScriptOutcome(script=script, error=self._errors.map(script, exc))
        else:
            self._logger.debug("Got exit code %s for command %s", exit_code, command)
            outcome = ScriptOutcome(script=script, exit_code=exit_code)
        self._record(outcome, time.monotonic() - start)
        return outcome

    def run_no_argument_script(
        self,
        script: Path,
        cancel_event: threading.Event | None = None,
    ) -> int:
        """Run a no-argument script and return its normalized exit code.

        Raises:
            ProcessAccessError: If the script could not be run, timed out, was
                interrupted or did not report a readable exit code.
        """

        return self.execute(script, cancel_event=cancel_event).unwrap()

    def try_delete(self, path: Path) -> None:
        """Delete a file, logging a warning instead of raising on failure."""

        try:
            Path(path).unlink()
        except OSError:
            self._logger.warning("Cannot delete file: %s", path)

    def _record(self, outcome: ScriptOutcome, duration_s: float) -> None:
        if self._observability is None:
            return
        metrics = self._observability.metrics
        metrics.increment("scripts.run")
        metrics.record_duration("scripts.duration", duration_s)
        if outcome.kind is not None:
            metrics.increment("scripts.failed")
            metrics.increment(f"scripts.failed.{outcome.kind.value}")
        self._observability.log_event(
            "script.finished",
            {
                "script": str(outcome.script),
                "platform": self._strategy.name,
                "exit_code": outcome.exit_code,
                "failure": outcome.kind.value if outcome.kind is not None else None,
                "duration_s": round(duration_s, 3),
            },
        )
