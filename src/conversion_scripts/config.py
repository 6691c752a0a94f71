"""Configuration models and loaders for conversion-scripts."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from conversion_scripts.platforms import DEFAULT_SCRIPTING_HOST

CONFIG_FILE_NAMES: tuple[str, ...] = ("conversion_scripts.yaml", "conversion_scripts.yml")
_SECONDS_PER_UNIT: dict[str, float] = {
    "milliseconds": 0.001,
    "seconds": 1.0,
    "minutes": 60.0,
    "hours": 3600.0,
}
_UNIT_ALIASES: dict[str, str] = {
    "ms": "milliseconds",
    "millis": "milliseconds",
    "s": "seconds",
    "sec": "seconds",
    "m": "minutes",
    "min": "minutes",
    "h": "hours",
}


@dataclass(frozen=True)
class RunnerConfig:
    """Configuration for the script runner.

    Attributes:
        base_folder: Working directory of every launched script.
        process_timeout: Maximum script lifetime, in ``timeout_unit``.
        timeout_unit: Unit of ``process_timeout``.
        scripting_host: Binary that runs AppleScripts on macOS.
        platform: Optional platform override; the host platform when unset.
    """

    base_folder: Path = Path(".")
    process_timeout: float = 120.0
    timeout_unit: str = "seconds"
    scripting_host: str = DEFAULT_SCRIPTING_HOST
    platform: str | None = None


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration for the application."""

    runner: RunnerConfig = field(default_factory=lambda: RunnerConfig())
    log_level: str = "INFO"


def timeout_to_seconds(value: float, unit: str = "seconds") -> float:
    """Convert a timeout in the given unit to seconds.

    Args:
        value: Timeout amount. Must be positive.
        unit: One of milliseconds, seconds, minutes or hours (or a short alias).

    Returns:
        The timeout in seconds.

    Raises:
        ValueError: If the unit is unknown or the timeout is not positive.
    """

    normalized = unit.strip().lower()
    normalized = _UNIT_ALIASES.get(normalized, normalized)
    if normalized not in _SECONDS_PER_UNIT:
        raise ValueError(f"Unknown timeout unit: {unit}")
    seconds = float(value) * _SECONDS_PER_UNIT[normalized]
    if not seconds > 0:
        raise ValueError(f"Process timeout must be positive, got {value!r} {unit}.")
    return seconds


def load_config(path: Path | None = None) -> AppConfig:
    """Load application configuration from disk.

    Args:
        path: Optional path to a configuration file or directory.

    Returns:
        Parsed AppConfig with defaults applied when no config exists.
    """

    config_path = _resolve_config_path(path)
    if config_path is None:
        return AppConfig()

    if config_path.suffix in {".yaml", ".yml"}:
        raw_data = _load_yaml(config_path)
    elif config_path.name == "pyproject.toml" or config_path.suffix == ".toml":
        raw_data = _load_toml(config_path)
    else:
        raise ValueError(f"Unsupported config file type: {config_path}")

    return _parse_app_config(raw_data, base_path=config_path.parent)


def config_to_dict(config: AppConfig) -> dict[str, Any]:
    """Serialize an AppConfig into a JSON-compatible dictionary."""

    return {
        "log_level": config.log_level,
        "runner": {
            "base_folder": str(config.runner.base_folder),
            "process_timeout": config.runner.process_timeout,
            "timeout_unit": config.runner.timeout_unit,
            "scripting_host": config.runner.scripting_host,
            "platform": config.runner.platform,
        },
    }


def update_runner(config: AppConfig, **changes: Any) -> AppConfig:
    """Return a config copy with updated runner settings."""

    return replace(config, runner=replace(config.runner, **changes))


def _resolve_config_path(path: Path | None) -> Path | None:
    candidate_paths: list[Path] = []
    if path is None:
        candidate_paths.extend(Path(name) for name in CONFIG_FILE_NAMES)
        candidate_paths.append(Path("pyproject.toml"))
    elif path.is_dir():
        candidate_paths.extend(path / name for name in CONFIG_FILE_NAMES)
        candidate_paths.append(path / "pyproject.toml")
    else:
        candidate_paths.append(path)

    for candidate in candidate_paths:
        if candidate.exists():
            return candidate
    return None


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get("conversion_scripts", {})
        if not isinstance(tool_config, dict):
            raise ValueError("tool.conversion_scripts must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("YAML configuration must be a mapping.")
    return data


def _parse_app_config(raw_data: dict[str, Any], base_path: Path) -> AppConfig:
    runner_config = _parse_runner_config(raw_data.get("runner", {}), base_path)
    return AppConfig(
        runner=runner_config,
        log_level=str(raw_data.get("log_level", "INFO")),
    )


def _parse_runner_config(raw: Any, base_path: Path) -> RunnerConfig:
    if not isinstance(raw, dict):
        return RunnerConfig(base_folder=base_path.resolve())
    base_folder = Path(raw.get("base_folder", "."))
    if not base_folder.is_absolute():
        base_folder = (base_path / base_folder).resolve()
    timeout_unit = str(raw.get("timeout_unit", "seconds"))
    process_timeout = float(raw.get("process_timeout", 120.0))
    timeout_to_seconds(process_timeout, timeout_unit)
    return RunnerConfig(
        base_folder=base_folder,
        process_timeout=process_timeout,
        timeout_unit=timeout_unit,
        scripting_host=str(raw.get("scripting_host", DEFAULT_SCRIPTING_HOST)),
        platform=_optional_str(raw.get("platform")),
    )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
