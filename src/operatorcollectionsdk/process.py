"""Run external command-line tools such as ``oc`` and ``ansible-playbook``."""

from __future__ import annotations

__all__ = ("run_command",)

import os
import subprocess
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import structlog

from operatorcollectionsdk.exceptions import CommandError, CommandSpawnError


def build_environment(
    env: Mapping[str, str] | None = None, cwd: str | Path | None = None
) -> dict[str, str]:
    """Build the environment of a child process.

    The child inherits a copy of this process's environment, updated with
    ``env``. ``PWD`` is set to ``cwd`` when one is given. The environment of
    the current process is never modified.
    """
    child_env = dict(os.environ)
    if env:
        child_env.update(env)
    if cwd is not None:
        child_env["PWD"] = str(cwd)
    return child_env


def run_command(
    command: str,
    args: Sequence[str] | None = None,
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    log_path: str | Path | None = None,
    logger: Any | None = None,
    on_output: Callable[[str], None] | None = None,
) -> int:
    """Run a command, streaming its output to the logger.

    Parameters
    ----------
    command : `str`
        The executable to run, such as ``oc``.
    args : sequence of `str`, optional
        Arguments passed to the command.
    cwd : `str` or `pathlib.Path`, optional
        Working directory of the command.
    env : mapping, optional
        Variables added to the inherited environment for this call only.
    log_path : `str` or `pathlib.Path`, optional
        If set, the command's output is appended to this file.
    logger : optional
        Logger; a module logger is used if not provided.
    on_output : callable, optional
        Called with the command's complete output when it succeeds.

    Returns
    -------
    returncode : `int`
        Always ``0``; failures raise.

    Raises
    ------
    operatorcollectionsdk.exceptions.CommandSpawnError
        Raised if the command cannot be started or the log file cannot be
        opened. The command is not run in either case.
    operatorcollectionsdk.exceptions.CommandError
        Raised if the command exits with a non-zero status.
    """
    if logger is None:
        logger = structlog.getLogger(__name__)
    args = list(args or [])

    try:
        log_file = open(log_path, "a") if log_path is not None else None
    except OSError as e:
        logger.error(f"Could not open log file {log_path}: {e}")
        raise CommandSpawnError(
            command, args, f"cannot open log file {log_path}: {e}"
        ) from e

    logger.debug(f"Running {command} {' '.join(args)}")
    output: list[str] = []
    try:
        try:
            proc = subprocess.Popen(
                [command, *args],
                cwd=cwd,
                env=build_environment(env, cwd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            logger.error(f"Could not run {command}: {e}")
            raise CommandSpawnError(command, args, str(e)) from e

        with proc:
            try:
                for line in proc.stdout:
                    output.append(line)
                    if log_file is not None:
                        log_file.write(line)
                    logger.info(line.rstrip("\n"))
            except BaseException:
                proc.kill()
                raise
            returncode = proc.wait()
    finally:
        if log_file is not None:
            log_file.close()

    if returncode != 0:
        logger.error(f"{command} exited with status {returncode}")
        raise CommandError(command, args, returncode)

    if on_output is not None:
        on_output("".join(output))
    return returncode
