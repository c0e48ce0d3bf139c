"""Resource identities and manifests for the ZosCloudBroker and the OLM
objects that install it.
"""

from __future__ import annotations

__all__ = (
    "BROKER_INSTANCE_NAME",
    "BrokerKind",
    "ResourcePhase",
    "create_broker_instance_body",
    "create_operator_group_body",
    "create_subscription_body",
    "operator_label_selector",
)

from enum import Enum
from typing import Any

from operatorcollectionsdk.config import CatalogSource

ZOSCB_GROUP = "zoscb.ibm.com"
"""API group of the broker resources."""

ZOSCB_VERSION = "v2beta2"
"""API version of ZosEndpoint, SubOperatorConfig and OperatorCollection."""

ZOSCLOUDBROKER_VERSION = "v2beta1"
"""API version of the ZosCloudBroker instance."""

SUBOPERATOR_GROUP = "suboperator.zoscb.ibm.com"
"""API group of the custom resources provided by sub-operators."""

OLM_GROUP = "operators.coreos.com"
OPERATOR_GROUP_VERSION = "v1"
SUBSCRIPTION_VERSION = "v1alpha1"
CSV_VERSION = "v1alpha1"

ROUTE_GROUP = "route.openshift.io"
ROUTE_VERSION = "v1"

BROKER_INSTANCE_NAME = "zoscloudbroker"
"""The ZosCloudBroker is a singleton per namespace with this name."""

BROKER_PACKAGE = "ibm-zoscb"
"""OLM package name of the broker; also the Subscription name."""

BROKER_CHANNEL = "v2.2"

DEFAULT_ENDPOINT_NAME = "zos-lpar"

VERBOSE_LOG_ROOT = "/tmp/ansible-operator/runner"


class BrokerKind(str, Enum):
    """Kinds of resource managed by the ZosCloudBroker."""

    ZOS_ENDPOINT = "ZosEndpoint"
    SUB_OPERATOR_CONFIG = "SubOperatorConfig"
    OPERATOR_COLLECTION = "OperatorCollection"

    @property
    def plural(self) -> str:
        return f"{self.value.lower()}s"


class ResourcePhase(str, Enum):
    """Values of ``status.phase`` reported by broker and OLM resources."""

    SUCCESSFUL = "Successful"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    PENDING = "Pending"


def operator_label_selector(operator_name: str) -> str:
    return f"operator-name={operator_name}"


def custom_resource_plural(kind: str) -> str:
    """Plural resource name of a sub-operator custom resource kind."""
    return f"{kind.lower()}s"


def create_operator_group_body(*, namespace: str) -> dict[str, Any]:
    """Create an OperatorGroup that targets only its own namespace.

    Parameters
    ----------
    namespace : `str`
        The namespace the OperatorGroup is created in and targets. It is
        also used as the OperatorGroup's name.

    Returns
    -------
    operatorgroup : `dict`
        The OperatorGroup resource.
    """
    return {
        "apiVersion": f"{OLM_GROUP}/{OPERATOR_GROUP_VERSION}",
        "kind": "OperatorGroup",
        "metadata": {"name": namespace, "namespace": namespace},
        "spec": {
            "targetNamespaces": [namespace],
            "upgradeStrategy": "Default",
        },
    }


def create_subscription_body(
    *, namespace: str, catalog_source: CatalogSource
) -> dict[str, Any]:
    """Create the Subscription that installs the ZosCloudBroker operator.

    Parameters
    ----------
    namespace : `str`
        The namespace the operator is installed into.
    catalog_source : `operatorcollectionsdk.config.CatalogSource`
        The CatalogSource and starting CSV to install from.

    Returns
    -------
    subscription : `dict`
        The Subscription resource.
    """
    return {
        "apiVersion": f"{OLM_GROUP}/{SUBSCRIPTION_VERSION}",
        "kind": "Subscription",
        "metadata": {"name": BROKER_PACKAGE, "namespace": namespace},
        "spec": {
            "name": BROKER_PACKAGE,
            "channel": BROKER_CHANNEL,
            "installPlanApproval": "Automatic",
            "source": catalog_source.name,
            "sourceNamespace": catalog_source.namespace,
            "startingCSV": catalog_source.starting_csv,
        },
    }


def create_broker_instance_body(*, namespace: str) -> dict[str, Any]:
    """Create the singleton ZosCloudBroker instance for a namespace."""
    return {
        "apiVersion": f"{ZOSCB_GROUP}/{ZOSCLOUDBROKER_VERSION}",
        "kind": "ZosCloudBroker",
        "metadata": {"name": BROKER_INSTANCE_NAME, "namespace": namespace},
        "spec": {
            "catalogResources": {},
            "license": {"accept": True},
            "logLevel": "trace",
            "managerResources": {},
            "multiNamespace": True,
            "storage": {
                "configure": False,
                "enabled": False,
                "size": "5Gi",
                "volumeMode": "Filesystem",
            },
            "uiResources": {},
        },
    }


def get_phase(obj: dict[str, Any] | None) -> str | None:
    """Get ``status.phase`` from a resource, or `None`."""
    if not obj:
        return None
    return (obj.get("status") or {}).get("phase")


def get_name(obj: dict[str, Any]) -> str:
    return obj["metadata"]["name"]
