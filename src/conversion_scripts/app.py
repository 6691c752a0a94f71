"""Application wiring for CLI-friendly script runs."""

from __future__ import annotations

import json
from pathlib import Path

from conversion_scripts.config import (
    CONFIG_FILE_NAMES,
    AppConfig,
    RunnerConfig,
    config_to_dict,
    load_config,
)
from conversion_scripts.execution.sinks import OutputSink
from conversion_scripts.platforms import select_platform_strategy
from conversion_scripts.runner import ScriptRunner
from conversion_scripts.util.logging import get_logger
from conversion_scripts.util.observability import ObservabilityManager, create_observability_manager


class AppConfigError(RuntimeError):
    """Raised when configuration or runtime setup fails."""


_LOGGER = get_logger("conversion_scripts.app")


def initialize_config(folder: Path) -> Path:
    """Create a default configuration file in a folder.

    Args:
        folder: Directory where the config should be written. It also becomes
            the base folder of the runner.

    Returns:
        Path to the generated configuration file.

    Raises:
        AppConfigError: If the config file already exists.
    """

    folder = folder.resolve()
    config_path = folder / CONFIG_FILE_NAMES[0]
    if config_path.exists():
        raise AppConfigError(
            f"Config file already exists at {config_path}. Remove it or choose another "
            "folder."
        )
    config = AppConfig(runner=RunnerConfig(base_folder=folder))
    config_path.write_text(json.dumps(config_to_dict(config), indent=2), encoding="utf-8")
    _LOGGER.info("Initialized configuration at %s", config_path)
    return config_path


def build_runner(
    config: RunnerConfig,
    output_sink: OutputSink | None = None,
    observability: ObservabilityManager | None = None,
) -> ScriptRunner:
    """Create a ScriptRunner from runner configuration.

    Raises:
        AppConfigError: If the configuration is invalid.
    """

    try:
        return ScriptRunner(
            config.base_folder,
            config.process_timeout,
            config.timeout_unit,
            strategy=select_platform_strategy(config.platform, config.scripting_host),
            output_sink=output_sink,
            observability=observability or create_observability_manager(),
        )
    except ValueError as exc:
        raise AppConfigError(str(exc)) from exc


def load_app_config(config_path: Path | None) -> AppConfig:
    """Load configuration, wrapping parse failures in AppConfigError."""

    try:
        return load_config(config_path)
    except (OSError, ValueError) as exc:
        raise AppConfigError(f"Cannot load configuration: {exc}") from exc


def run_script(script: Path, config: RunnerConfig, output_sink: OutputSink | None = None) -> int:
    """Run one no-argument script with a runner built from ``config``.

    Returns:
        The normalized exit code of the script.

    Raises:
        AppConfigError: If the runner cannot be configured.
        ProcessAccessError: If the script could not be run to an exit code.
    """

    runner = build_runner(config, output_sink=output_sink)
    return runner.run_no_argument_script(script)


def delete_file(path: Path, config: RunnerConfig) -> None:
    """Delete a file on a best-effort basis."""

    build_runner(config).try_delete(path)
