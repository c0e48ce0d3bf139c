"""Configuration read from the environment.

Values are looked up each time one of the ``get_*`` functions is called, so
tests and callers can pass their own environment mapping.
"""

from __future__ import annotations

__all__ = (
    "CatalogSource",
    "ClusterLogin",
    "GalaxySettings",
    "PollSettings",
    "get_catalog_source",
    "get_cluster_login",
    "get_galaxy_settings",
)

import os
from collections.abc import Mapping
from dataclasses import dataclass

from operatorcollectionsdk.exceptions import ConfigurationError

DEFAULT_CATALOG_SOURCE_NAME = "ibm-operator-catalog"
"""Default CatalogSource that provides the ibm-zoscb package."""

DEFAULT_CATALOG_SOURCE_NAMESPACE = "openshift-marketplace"
"""Default namespace of the CatalogSource."""

DEFAULT_BROKER_CSV = "ibm-zoscb.v2.2.2"
"""Default starting ClusterServiceVersion of the ZosCloudBroker."""

DEFAULT_GALAXY_URL = "https://galaxy.ansible.com"

DEFAULT_GALAXY_NAMESPACE = "ibm"


@dataclass(frozen=True)
class CatalogSource:
    """Where the ZosCloudBroker operator is installed from."""

    name: str = DEFAULT_CATALOG_SOURCE_NAME
    namespace: str = DEFAULT_CATALOG_SOURCE_NAMESPACE
    starting_csv: str = DEFAULT_BROKER_CSV


@dataclass(frozen=True)
class ClusterLogin:
    """Credentials used to log into an OpenShift cluster."""

    server_url: str
    token: str
    namespace: str

    def login_args(self) -> list[str]:
        """Arguments for ``oc login``."""
        return [f"--server={self.server_url}", f"--token={self.token}"]


@dataclass(frozen=True)
class PollSettings:
    """Timing of the reconciliation poll loops.

    ``attempts_per_step`` is added to the install budget for every resource
    that the install actually creates, so later conditions get the
    cumulative time of the earlier ones.
    """

    interval: float = 5.0
    attempts_per_step: int = 25
    endpoint_delete_attempts: int = 10
    cleanup_attempts: int = 30


@dataclass(frozen=True)
class GalaxySettings:
    """Ansible Galaxy server the Operator Collection SDK is fetched from."""

    url: str = DEFAULT_GALAXY_URL
    namespace: str = DEFAULT_GALAXY_NAMESPACE

    @property
    def sdk_collection(self) -> str:
        return f"{self.namespace}.operator_collection_sdk"


def get_catalog_source(
    environ: Mapping[str, str] | None = None,
) -> CatalogSource:
    """Read the CatalogSource settings from ``CATALOGSOURCE_*`` variables."""
    if environ is None:
        environ = os.environ
    return CatalogSource(
        name=environ.get("CATALOGSOURCE_NAME", DEFAULT_CATALOG_SOURCE_NAME),
        namespace=environ.get(
            "CATALOGSOURCE_NAMESPACE", DEFAULT_CATALOG_SOURCE_NAMESPACE
        ),
        starting_csv=environ.get("CATALOGSOURCE_CSV", DEFAULT_BROKER_CSV),
    )


def get_cluster_login(
    environ: Mapping[str, str] | None = None,
) -> ClusterLogin:
    """Read the cluster login from ``OCP_SERVER_URL``, ``OCP_TOKEN`` and
    ``OCP_NAMESPACE``.

    Raises
    ------
    ConfigurationError
        Raised if any of the variables is unset. Every missing variable is
        listed in the message.
    """
    if environ is None:
        environ = os.environ

    missing = [
        key
        for key in ("OCP_SERVER_URL", "OCP_TOKEN", "OCP_NAMESPACE")
        if key not in environ
    ]
    if missing:
        raise ConfigurationError(
            "\n".join(
                f"Please set the {key} environment variable, or login to an "
                "OCP cluster"
                for key in missing
            )
        )

    return ClusterLogin(
        server_url=environ["OCP_SERVER_URL"],
        token=environ["OCP_TOKEN"],
        namespace=environ["OCP_NAMESPACE"].lower(),
    )


def get_galaxy_settings(
    environ: Mapping[str, str] | None = None,
) -> GalaxySettings:
    """Read the Ansible Galaxy server settings."""
    if environ is None:
        environ = os.environ
    return GalaxySettings(
        url=environ.get("ANSIBLE_GALAXY_URL", DEFAULT_GALAXY_URL).rstrip("/"),
        namespace=environ.get(
            "ANSIBLE_GALAXY_NAMESPACE", DEFAULT_GALAXY_NAMESPACE
        ),
    )
