from __future__ import annotations

import os
import signal
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from conversion_scripts.execution.base import (
    LaunchInterruptedError,
    LaunchTimeoutError,
    ProcessConfiguration,
)
from conversion_scripts.execution.local_exec import SubprocessLauncher
from conversion_scripts.execution.sinks import CollectingSink

posix_only = pytest.mark.skipif(os.name != "posix", reason="uses POSIX process groups")


def _configuration(
    tmp_path: Path,
    timeout_s: float = 10.0,
    accept_any_exit_code: bool = True,
) -> tuple[ProcessConfiguration, CollectingSink, CollectingSink]:
    out, err = CollectingSink(), CollectingSink()
    configuration = ProcessConfiguration(
        working_directory=tmp_path,
        timeout_s=timeout_s,
        output_sink=out,
        error_sink=err,
        accept_any_exit_code=accept_any_exit_code,
    )
    return configuration, out, err


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def test_configuration_rejects_non_positive_timeout(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _configuration(tmp_path, timeout_s=0)
    with pytest.raises(ValueError):
        _configuration(tmp_path, timeout_s=-1)


def test_configuration_requires_existing_directory(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _configuration(tmp_path / "missing")


def test_launcher_captures_output_and_exit_status(tmp_path: Path) -> None:
    configuration, out, err = _configuration(tmp_path)

    result = SubprocessLauncher().launch(
        _python("import sys; print('hello'); print('oops', file=sys.stderr); sys.exit(3)"),
        configuration,
    )

    assert result.exit_status == 3
    assert result.output.decode().splitlines() == ["hello"]
    assert result.duration_s >= 0
    assert out.lines == ["hello"]
    assert err.lines == ["oops"]


def test_launcher_runs_in_working_directory(tmp_path: Path) -> None:
    configuration, out, _ = _configuration(tmp_path)

    SubprocessLauncher().launch(_python("import os; print(os.getcwd())"), configuration)

    assert Path(out.lines[0]).resolve() == tmp_path.resolve()


def test_launcher_rejects_empty_command(tmp_path: Path) -> None:
    configuration, _, _ = _configuration(tmp_path)

    with pytest.raises(ValueError):
        SubprocessLauncher().launch([], configuration)


def test_launcher_propagates_start_failure(tmp_path: Path) -> None:
    configuration, _, _ = _configuration(tmp_path)

    with pytest.raises(OSError):
        SubprocessLauncher().launch([str(tmp_path / "no-such-binary")], configuration)


def test_launcher_can_require_zero_exit_status(tmp_path: Path) -> None:
    configuration, _, _ = _configuration(tmp_path, accept_any_exit_code=False)

    with pytest.raises(subprocess.CalledProcessError) as excinfo:
        SubprocessLauncher().launch(_python("raise SystemExit(2)"), configuration)

    assert excinfo.value.returncode == 2


@posix_only
def test_launcher_kills_process_on_timeout(tmp_path: Path) -> None:
    configuration, out, _ = _configuration(tmp_path, timeout_s=1.0)
    code = "import os, sys, time; print(os.getpid()); sys.stdout.flush(); time.sleep(30)"

    start = time.monotonic()
    with pytest.raises(LaunchTimeoutError) as excinfo:
        SubprocessLauncher(grace_period_s=1.0).launch(_python(code), configuration)
    elapsed = time.monotonic() - start

    assert excinfo.value.timeout_s == 1.0
    assert elapsed < 10
    pid = int(out.lines[0])
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


@posix_only
def test_launcher_kills_process_when_cancelled(tmp_path: Path) -> None:
    configuration, _, _ = _configuration(tmp_path, timeout_s=30.0)
    cancel = threading.Event()
    timer = threading.Timer(0.5, cancel.set)
    timer.start()

    start = time.monotonic()
    try:
        with pytest.raises(LaunchInterruptedError):
            SubprocessLauncher(poll_interval_s=0.05).launch(
                _python("import time; time.sleep(30)"), configuration, cancel_event=cancel
            )
    finally:
        timer.cancel()

    assert time.monotonic() - start < 10


@posix_only
def test_launcher_starts_child_in_its_own_session(tmp_path: Path) -> None:
    configuration, out, _ = _configuration(tmp_path)

    SubprocessLauncher().launch(
        _python("import os; print(os.getsid(0) == os.getpid())"), configuration
    )

    assert out.lines == ["True"]


def test_launcher_passes_detach_options_to_popen(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: dict[str, object] = {}
    real_popen = subprocess.Popen

    def fake_popen(*args: object, **kwargs: object) -> subprocess.Popen[bytes]:
        calls["kwargs"] = kwargs
        return real_popen(*args, **kwargs)  # type: ignore[call-overload]

    monkeypatch.setattr(subprocess, "Popen", fake_popen)
    configuration, _, _ = _configuration(tmp_path)

    SubprocessLauncher().launch(_python("pass"), configuration)

    kwargs = calls["kwargs"]
    assert isinstance(kwargs, dict)
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["stdin"] == subprocess.DEVNULL
    if os.name == "posix":
        assert kwargs["start_new_session"] is True
    else:
        assert "creationflags" in kwargs


@posix_only
def test_launcher_returns_while_background_child_holds_output(tmp_path: Path) -> None:
    configuration, out, _ = _configuration(tmp_path)
    code = (
        "import subprocess, sys\n"
        "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(20)'])\n"
        "print(child.pid)\n"
    )

    start = time.monotonic()
    result = SubprocessLauncher(poll_interval_s=0.05).launch(_python(code), configuration)
    elapsed = time.monotonic() - start

    background_pid = int(out.lines[0])
    try:
        assert result.exit_status == 0
        assert result.output == f"{background_pid}\n".encode()
        assert elapsed < 3
        readers = [
            thread
            for thread in threading.enumerate()
            if thread.name == "process-output-reader" and thread.is_alive()
        ]
        assert readers == []
        os.kill(background_pid, 0)
    finally:
        try:
            os.kill(background_pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

@posix_only
def test_launcher_keeps_partial_last_line(tmp_path: Path) -> None:
    configuration, out, _ = _configuration(tmp_path)

    result = SubprocessLauncher().launch(
        _python("import sys; sys.stdout.write('one\\ntwo')"), configuration
    )

    assert result.output == b"one\ntwo"
    assert out.lines == ["one", "two"]
