"""Read Operator Collection projects from the local workspace."""

from __future__ import annotations

__all__ = (
    "OperatorConfig",
    "find_operator_config",
    "find_operators",
    "load_extra_vars",
    "load_operator_config",
)

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from operatorcollectionsdk.exceptions import ConfigurationError

CONFIG_FILENAMES = ("operator-config.yml", "operator-config.yaml")

EXTRA_VARS_FILENAMES = ("ocsdk-extra-vars.yml", "ocsdk-extra-vars.yaml")


@dataclass(frozen=True)
class OperatorConfig:
    """The fields of an ``operator-config.yml`` file used by the tooling."""

    name: str
    version: str
    domain: str
    kinds: tuple[str, ...] = field(default_factory=tuple)
    path: Path | None = None

    @property
    def api_version(self) -> str | None:
        """The Kubernetes API version the operator's kinds are served at.

        ``1.2.3`` becomes ``v1minor2patch3`` and ``1.2.3.4`` becomes
        ``v1minor2patch3-4``.
        """
        parts = self.version.split(".")
        if len(parts) == 3:
            return f"v{parts[0]}minor{parts[1]}patch{parts[2]}"
        if len(parts) == 4:
            return f"v{parts[0]}minor{parts[1]}patch{parts[2]}-{parts[3]}"
        return None

    @property
    def csv_name(self) -> str:
        """Name of the ClusterServiceVersion the broker creates for the
        operator.
        """
        return (
            f"{self.domain.lower()}-{self.name.lower()}-operator."
            f"v{self.version}"
        )


def find_operator_config(directory: str | Path) -> Path | None:
    """Find the operator-config file in a directory."""
    for filename in CONFIG_FILENAMES:
        path = Path(directory) / filename
        if path.is_file():
            return path
    return None


def _parse_operator_config(path: Path) -> OperatorConfig:
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{path} is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} is not an operator-config mapping")
    missing = [key for key in ("name", "version", "domain") if key not in data]
    if missing:
        raise ConfigurationError(
            f"{path} is missing required fields: {', '.join(missing)}"
        )

    kinds = tuple(
        str(resource["kind"])
        for resource in data.get("resources") or []
        if isinstance(resource, dict) and "kind" in resource
    )
    return OperatorConfig(
        name=str(data["name"]),
        version=str(data["version"]),
        domain=str(data["domain"]),
        kinds=kinds,
        path=path,
    )


def load_operator_config(directory: str | Path) -> OperatorConfig:
    """Load the operator-config file of an operator directory.

    Raises
    ------
    operatorcollectionsdk.exceptions.ConfigurationError
        Raised if the file does not exist or lacks ``name``, ``version`` or
        ``domain``.
    """
    path = find_operator_config(directory)
    if path is None:
        raise ConfigurationError(
            f"operator-config file doesn't exist in {directory}"
        )
    return _parse_operator_config(path)


def find_operators(workspace: str | Path) -> dict[str, Path]:
    """Map the name of every valid operator in a workspace to its
    operator-config file.
    """
    logger = structlog.getLogger(__name__)
    operators: dict[str, Path] = {}
    for filename in CONFIG_FILENAMES:
        for path in sorted(Path(workspace).rglob(filename)):
            try:
                config = _parse_operator_config(path)
            except ConfigurationError as e:
                logger.warning(f"Skipping {path}: {e}")
                continue
            operators[config.name] = path
    return operators


def load_extra_vars(directory: str | Path) -> list[str]:
    """Turn the ``ocsdk-extra-vars.yml`` file of an operator directory into
    ``ansible-playbook`` ``-e`` arguments.

    Returns an empty list if the file does not exist.
    """
    for filename in EXTRA_VARS_FILENAMES:
        path = Path(directory) / filename
        if path.is_file():
            break
    else:
        return []

    data: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} is not a mapping of variables")

    args: list[str] = []
    for key, value in data.items():
        if value is None:
            value = ""
        args.extend(["-e", f"{key}={value}"])
    return args
