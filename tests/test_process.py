"""Tests for the operatorcollectionsdk.process module."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from operatorcollectionsdk.exceptions import CommandError, CommandSpawnError
from operatorcollectionsdk.process import build_environment, run_command


def test_run_command_collects_output(tmp_path: Path) -> None:
    output: list[str] = []
    log_path = tmp_path / "ocsdk.log"
    log_path.write_text("previous\n")

    returncode = run_command(
        sys.executable,
        ["-c", "import sys; print('out'); print('err', file=sys.stderr)"],
        log_path=log_path,
        on_output=output.append,
    )

    assert returncode == 0
    assert sorted(output[0].splitlines()) == ["err", "out"]
    assert log_path.read_text().startswith("previous\n")
    assert "out\n" in log_path.read_text()


def test_run_command_environment_is_per_call(tmp_path: Path) -> None:
    output: list[str] = []
    script = (
        "import os; "
        "print(os.environ['OCSDK_TEST_VALUE'], os.environ['PWD'], os.getcwd())"
    )

    run_command(
        sys.executable,
        ["-c", script],
        cwd=tmp_path,
        env={"OCSDK_TEST_VALUE": "native"},
        on_output=output.append,
    )

    value, pwd, cwd = output[0].split()
    assert value == "native"
    assert pwd == str(tmp_path)
    assert Path(cwd).resolve() == tmp_path.resolve()
    assert "OCSDK_TEST_VALUE" not in os.environ


def test_build_environment_copies() -> None:
    env = build_environment({"OCSDK_OTHER": "1"}, cwd="/work")
    assert env["OCSDK_OTHER"] == "1"
    assert env["PWD"] == "/work"
    assert "OCSDK_OTHER" not in os.environ


def test_run_command_failure() -> None:
    output: list[str] = []

    with pytest.raises(CommandError) as excinfo:
        run_command(
            sys.executable,
            ["-c", "import sys; sys.exit(3)"],
            on_output=output.append,
        )

    assert excinfo.value.returncode == 3
    assert excinfo.value.command == sys.executable
    assert output == []


def test_run_command_missing_executable(tmp_path: Path) -> None:
    missing = str(tmp_path / "no-such-command")

    with pytest.raises(CommandSpawnError) as excinfo:
        run_command(missing, ["login"])

    assert excinfo.value.returncode == -1
    assert excinfo.value.args_list == ["login"]


def test_unwritable_log_file_does_not_start_command(tmp_path: Path) -> None:
    marker = tmp_path / "ran"
    log_path = tmp_path / "missing-dir" / "ocsdk.log"

    with pytest.raises(CommandSpawnError) as excinfo:
        run_command(
            sys.executable,
            ["-c", f"open({str(marker)!r}, 'w').close()"],
            log_path=log_path,
        )

    assert "cannot open log file" in str(excinfo.value)
    assert not marker.exists()
