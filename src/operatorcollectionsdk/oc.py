"""Wrappers for the OpenShift ``oc`` command-line tool."""

from __future__ import annotations

__all__ = ("copy_verbose_logs", "login", "project", "verbose_log_path")

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from operatorcollectionsdk.process import run_command
from operatorcollectionsdk.resources import SUBOPERATOR_GROUP, VERBOSE_LOG_ROOT


def login(
    args: Sequence[str],
    *,
    log_path: str | Path | None = None,
    logger: Any | None = None,
) -> int:
    """Run ``oc login <args>``."""
    return run_command(
        "oc", ["login", *args], log_path=log_path, logger=logger
    )


def project(
    name: str,
    *,
    log_path: str | Path | None = None,
    logger: Any | None = None,
) -> int:
    """Run ``oc project <name>`` to switch the active namespace."""
    return run_command(
        "oc", ["project", name], log_path=log_path, logger=logger
    )


def verbose_log_path(
    *, namespace: str, api_version: str, kind: str, instance: str
) -> str:
    """Path, inside an operator container, of the Ansible Runner output for
    the latest reconcile of a custom resource instance.
    """
    return (
        f"{VERBOSE_LOG_ROOT}/{SUBOPERATOR_GROUP}/{api_version}/{kind}/"
        f"{namespace}/{instance}/artifacts/latest/stdout"
    )


def copy_verbose_logs(
    *,
    pod: str,
    namespace: str,
    container: str,
    api_version: str,
    kind: str,
    instance: str,
    local_path: str | Path,
    log_path: str | Path | None = None,
    logger: Any | None = None,
) -> int:
    """Copy the Ansible Runner output of a custom resource instance out of an
    operator container with ``oc cp``.
    """
    remote = verbose_log_path(
        namespace=namespace,
        api_version=api_version,
        kind=kind,
        instance=instance,
    )
    return run_command(
        "oc",
        [
            "cp",
            f"{namespace}/{pod}:{remote}",
            str(local_path),
            "-c",
            container,
        ],
        log_path=log_path,
        logger=logger,
    )
