"""CLI entrypoints for conversion-scripts."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from conversion_scripts.app import (
    AppConfigError,
    delete_file,
    initialize_config,
    load_app_config,
    run_script,
)
from conversion_scripts.config import RunnerConfig, update_runner
from conversion_scripts.errors import ProcessAccessError
from conversion_scripts.quoting import double_quote, quote
from conversion_scripts.util.logging import configure_logging

app = typer.Typer(help="Run scripts that drive an external document conversion engine.")


@app.callback()
def main(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
) -> None:
    """Configure CLI-level options."""

    configure_logging(log_level)


@app.command()
def init(folder: Path = typer.Argument(Path("."))) -> None:
    """Write a default configuration file into a folder."""

    try:
        config_path = initialize_config(folder)
    except AppConfigError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(f"Created configuration at {config_path}")


@app.command("run")
def run_command(
    script: Path = typer.Argument(..., help="Script to run."),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file or directory containing one.",
    ),
    base_folder: Optional[Path] = typer.Option(
        None, "--base-folder", "-b", help="Working directory of the script."
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Process timeout."),
    unit: Optional[str] = typer.Option(None, "--unit", help="Unit of --timeout."),
    platform_name: Optional[str] = typer.Option(
        None, "--platform", help="Platform override: windows|macos."
    ),
) -> None:
    """Run a no-argument script and report its exit code."""

    try:
        runner_config = _runner_config(config_path, base_folder, timeout, unit, platform_name)
        exit_code = run_script(script, runner_config)
    except (AppConfigError, ProcessAccessError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(f"Script {script} exited with code {exit_code}")


@app.command("delete")
def delete_command(
    path: Path = typer.Argument(..., help="File to delete."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
) -> None:
    """Delete a file, warning instead of failing when it cannot be removed."""

    try:
        runner_config = _runner_config(config_path, None, None, None, None)
        delete_file(path, runner_config)
    except AppConfigError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc


@app.command("quote")
def quote_command(
    args: list[str] = typer.Argument(..., help="Arguments to quote."),
    double: bool = typer.Option(False, "--double", help="Wrap in a second pair of quotes."),
) -> None:
    """Print arguments quoted for cmd.exe."""

    typer.echo(double_quote(args) if double else quote(args))


def _runner_config(
    config_path: Path | None,
    base_folder: Path | None,
    timeout: float | None,
    unit: str | None,
    platform_name: str | None,
) -> RunnerConfig:
    config = load_app_config(config_path)
    overrides = {
        "base_folder": base_folder,
        "process_timeout": timeout,
        "timeout_unit": unit,
        "platform": platform_name,
    }
    changes = {key: value for key, value in overrides.items() if value is not None}
    return update_runner(config, **changes).runner
