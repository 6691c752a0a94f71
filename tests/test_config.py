from __future__ import annotations

from pathlib import Path

import pytest

from conversion_scripts.config import (
    AppConfig,
    RunnerConfig,
    config_to_dict,
    load_config,
    timeout_to_seconds,
    update_runner,
)


def test_app_config_defaults() -> None:
    config = AppConfig()

    assert config.runner.base_folder == Path(".")
    assert config.runner.process_timeout == 120.0
    assert config.runner.timeout_unit == "seconds"
    assert config.runner.scripting_host == "/usr/bin/osascript"
    assert config.runner.platform is None
    assert config.log_level == "INFO"


def test_load_config_from_pyproject(tmp_path: Path) -> None:
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(
        """
[tool.conversion_scripts]
log_level = "DEBUG"

[tool.conversion_scripts.runner]
base_folder = "scripts"
process_timeout = 90
timeout_unit = "minutes"
platform = "windows"
""",
        encoding="utf-8",
    )

    config = load_config(pyproject)

    assert config.log_level == "DEBUG"
    assert config.runner.base_folder == (tmp_path / "scripts").resolve()
    assert config.runner.process_timeout == 90.0
    assert config.runner.timeout_unit == "minutes"
    assert config.runner.platform == "windows"


def test_load_config_from_json_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "conversion_scripts.yaml"
    config_path.write_text(
        '{"runner": {"base_folder": "/opt/conversion", "scripting_host": "/bin/osa"}}',
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.runner.base_folder == Path("/opt/conversion")
    assert config.runner.scripting_host == "/bin/osa"


def test_load_config_from_non_json_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "conversion_scripts.yml"
    config_path.write_text(
        """
runner:
  process_timeout: 1500
  timeout_unit: milliseconds
""",
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.runner.process_timeout == 1500.0
    assert config.runner.timeout_unit == "milliseconds"
    assert config.runner.base_folder == tmp_path.resolve()


def test_load_config_rejects_invalid_timeout(tmp_path: Path) -> None:
    config_path = tmp_path / "conversion_scripts.yaml"
    config_path.write_text('{"runner": {"process_timeout": 0}}', encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(config_path)


def test_load_config_without_files_returns_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path) == AppConfig()


def test_load_config_rejects_unknown_file_type(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.ini"
    config_path.write_text("[runner]", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(config_path)


@pytest.mark.parametrize(
    ("value", "unit", "expected"),
    [
        (250, "milliseconds", 0.25),
        (250, "ms", 0.25),
        (2, "seconds", 2.0),
        (2, "minutes", 120.0),
        (1, "HOURS", 3600.0),
    ],
)
def test_timeout_to_seconds(value: float, unit: str, expected: float) -> None:
    assert timeout_to_seconds(value, unit) == pytest.approx(expected)


@pytest.mark.parametrize(("value", "unit"), [(0, "seconds"), (-1, "seconds"), (1, "days")])
def test_timeout_to_seconds_rejects_invalid_values(value: float, unit: str) -> None:
    with pytest.raises(ValueError):
        timeout_to_seconds(value, unit)


def test_config_round_trips_through_dict(tmp_path: Path) -> None:
    config = update_runner(AppConfig(), base_folder=tmp_path, platform="macos")

    data = config_to_dict(config)

    assert data["runner"]["base_folder"] == str(tmp_path)
    assert data["runner"]["platform"] == "macos"
    assert config.runner == RunnerConfig(base_folder=tmp_path, platform="macos")
