"""Namespaced access to the ZosCloudBroker, its OLM install objects, and the
operator pods it runs.
"""

from __future__ import annotations

__all__ = (
    "ClusterClient",
    "broker_installed",
    "csv_installed",
    "subscription_installed",
)

import copy
from pathlib import Path
from typing import Any

import structlog
from kubernetes.client.exceptions import ApiException

from operatorcollectionsdk import k8s
from operatorcollectionsdk.config import CatalogSource
from operatorcollectionsdk.exceptions import (
    ClusterMutationError,
    OperatorGroupConflictError,
)
from operatorcollectionsdk.k8s import Absent, Failed, Found, Lookup
from operatorcollectionsdk.resources import (
    BROKER_INSTANCE_NAME,
    BROKER_PACKAGE,
    CSV_VERSION,
    DEFAULT_ENDPOINT_NAME,
    OLM_GROUP,
    OPERATOR_GROUP_VERSION,
    ROUTE_GROUP,
    ROUTE_VERSION,
    SUBOPERATOR_GROUP,
    SUBSCRIPTION_VERSION,
    ZOSCB_GROUP,
    ZOSCB_VERSION,
    ZOSCLOUDBROKER_VERSION,
    BrokerKind,
    ResourcePhase,
    create_broker_instance_body,
    create_operator_group_body,
    create_subscription_body,
    custom_resource_plural,
    get_name,
    get_phase,
    operator_label_selector,
)


def subscription_installed(subscription: dict[str, Any] | None) -> bool:
    """A Subscription is installed once OLM has populated both
    ``status.installedCSV`` and ``status.currentCSV``.
    """
    if not subscription:
        return False
    status = subscription.get("status") or {}
    return bool(status.get("installedCSV") and status.get("currentCSV"))


def csv_installed(csv: dict[str, Any] | None) -> bool:
    return get_phase(csv) == ResourcePhase.SUCCEEDED.value


def broker_installed(broker: dict[str, Any] | None) -> bool:
    return get_phase(broker) == ResourcePhase.SUCCESSFUL.value


def _require(lookup: Lookup[Any], operation: str) -> Any:
    """Collapse a lookup for a check-then-create step.

    Returns the found value or `None` when absent. A failed read raises, so
    that a broken API server never leads to a blind create.
    """
    if isinstance(lookup, Failed):
        error = lookup.error
        status = error.status if isinstance(error, ApiException) else None
        raise ClusterMutationError(
            operation, status=status, detail=str(error)
        ) from error
    return lookup.value_or_none()


class ClusterClient:
    """Operations on one namespace of an OpenShift cluster.

    Parameters
    ----------
    namespace : `str`
        The namespace the broker and operators live in.
    k8s_client
        A Kubernetes client (see
        `operatorcollectionsdk.k8s.create_k8sclient`).
    catalog_source : `operatorcollectionsdk.config.CatalogSource`, optional
        Where the broker is installed from. Defaults to the IBM operator
        catalog.
    logger : optional
        Logger; a module logger is used if not provided.
    """

    def __init__(
        self,
        namespace: str,
        k8s_client: Any,
        *,
        catalog_source: CatalogSource | None = None,
        logger: Any | None = None,
    ) -> None:
        self.namespace = namespace
        self.k8s_client = k8s_client
        self.catalog_source = catalog_source or CatalogSource()
        self.logger = logger or structlog.getLogger(__name__)

    # Pods and logs

    def is_logged_in(self) -> bool:
        """Check that the client can list pods in the namespace."""
        return isinstance(self._list_pods(), Found)

    def _list_pods(
        self, label_selector: str | None = None
    ) -> Lookup[list[dict[str, Any]]]:
        return k8s.list_pods(
            namespace=self.namespace,
            k8s_client=self.k8s_client,
            label_selector=label_selector,
            logger=self.logger,
        )

    def get_operator_pods(
        self, operator_name: str
    ) -> list[dict[str, Any]] | None:
        """Get the pods labelled with ``operator-name=<operator_name>``."""
        return self._list_pods(
            operator_label_selector(operator_name)
        ).value_or_none()

    def get_operator_containers(
        self, operator_name: str
    ) -> list[dict[str, Any]] | None:
        """Get the init containers and containers of an operator's pods."""
        pods = self.get_operator_pods(operator_name)
        if pods is None:
            return None
        containers: list[dict[str, Any]] = []
        for pod in pods:
            spec = pod.get("spec") or {}
            containers.extend(spec.get("initContainers") or [])
            containers.extend(spec.get("containers") or [])
        return containers

    def get_container_statuses(
        self, pod: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Get the init container and container statuses of a pod.

        Containers of a terminating pod (``metadata.deletionTimestamp`` set)
        are reported as waiting.
        """
        status = pod.get("status") or {}
        terminating = bool(
            (pod.get("metadata") or {}).get("deletionTimestamp")
        )
        statuses = []
        for container_status in (status.get("initContainerStatuses") or []) + (
            status.get("containerStatuses") or []
        ):
            container_status = copy.deepcopy(container_status)
            if terminating and container_status.get("state"):
                container_status["state"] = {"waiting": {}}
            statuses.append(container_status)
        return statuses

    def read_container_log(self, pod_name: str, container: str) -> str | None:
        lookup = k8s.read_pod_log(
            name=pod_name,
            namespace=self.namespace,
            container=container,
            k8s_client=self.k8s_client,
            logger=self.logger,
        )
        if isinstance(lookup, Failed) and "PodInitializing" in str(
            lookup.error
        ):
            self.logger.warning(
                "Unable to retrieve logs for this container while the Pod "
                "is initializing. Try again after Pod initialization "
                "completes."
            )
        return lookup.value_or_none()

    def download_container_log(
        self, pod_name: str, container: str, directory: Path
    ) -> Path | None:
        """Write a container's log to
        ``<directory>/.openshiftLogs/<pod>-<container>.log``.

        Returns
        -------
        path : `pathlib.Path` or `None`
            The path of the written log, or `None` if the log could not be
            retrieved.
        """
        log = self.read_container_log(pod_name, container)
        if log is None:
            return None
        logs_dir = Path(directory) / ".openshiftLogs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_path = logs_dir / f"{pod_name}-{container}.log"
        log_path.write_text(log)
        self.logger.info(f"Downloaded container log to {log_path}")
        return log_path

    # Namespaces

    def list_namespaces(self) -> list[str] | None:
        namespaces = k8s.list_namespaces(
            k8s_client=self.k8s_client, logger=self.logger
        ).value_or_none()
        if namespaces is None:
            return None
        return [get_name(namespace) for namespace in namespaces]

    def namespace_exists(self, name: str | None = None) -> bool | None:
        """Check a namespace (the client's own by default) is in the
        namespace list. Returns `None` if the list cannot be read.
        """
        names = self.list_namespaces()
        if names is None:
            return None
        return (name or self.namespace) in names

    def get_namespace(self, name: str | None = None) -> Lookup[dict[str, Any]]:
        return k8s.read_namespace(
            name=name or self.namespace,
            k8s_client=self.k8s_client,
            logger=self.logger,
        )

    def create_namespace(self, name: str | None = None) -> dict[str, Any] | None:
        """Create a namespace unless it already exists.

        Returns the created Namespace, or `None` if it already existed.
        """
        name = name or self.namespace
        if self.namespace_exists(name):
            return None
        return k8s.create_namespace(name=name, k8s_client=self.k8s_client)

    def delete_namespace(self, name: str | None = None) -> None:
        k8s.delete_namespace(
            name=name or self.namespace, k8s_client=self.k8s_client
        )

    def namespace_deleted(self, name: str | None = None) -> bool:
        """A namespace is deleted once reading it returns 404."""
        return isinstance(self.get_namespace(name), Absent)

    # Broker resources

    def _list_broker_objects(
        self, kind: BrokerKind, operator_name: str | None = None
    ) -> Lookup[list[dict[str, Any]]]:
        label_selector = None
        if kind is not BrokerKind.ZOS_ENDPOINT and operator_name:
            label_selector = operator_label_selector(operator_name)
        return k8s.list_custom_objects(
            group=ZOSCB_GROUP,
            version=ZOSCB_VERSION,
            namespace=self.namespace,
            plural=kind.plural,
            k8s_client=self.k8s_client,
            label_selector=label_selector,
            logger=self.logger,
        )

    def get_zos_endpoints(self) -> list[dict[str, Any]] | None:
        return self._list_broker_objects(BrokerKind.ZOS_ENDPOINT).value_or_none()

    def get_sub_operator_configs(
        self, operator_name: str
    ) -> list[dict[str, Any]] | None:
        return self._list_broker_objects(
            BrokerKind.SUB_OPERATOR_CONFIG, operator_name
        ).value_or_none()

    def get_operator_collections(
        self, operator_name: str
    ) -> list[dict[str, Any]] | None:
        return self._list_broker_objects(
            BrokerKind.OPERATOR_COLLECTION, operator_name
        ).value_or_none()

    def get_custom_resources(
        self, api_version: str, kind: str
    ) -> list[dict[str, Any]] | None:
        """List the instances of a sub-operator custom resource kind."""
        return k8s.list_custom_objects(
            group=SUBOPERATOR_GROUP,
            version=api_version,
            namespace=self.namespace,
            plural=custom_resource_plural(kind),
            k8s_client=self.k8s_client,
            logger=self.logger,
        ).value_or_none()

    def list_custom_resource_names(
        self, api_version: str, kind: str
    ) -> list[str] | None:
        """Names of the instances of a sub-operator custom resource kind, or
        `None` if there are none.
        """
        items = self.get_custom_resources(api_version, kind)
        if not items:
            return None
        return [get_name(item) for item in items]

    def get_custom_resource(
        self, kind: str, name: str, group: str, version: str
    ) -> dict[str, Any] | None:
        return k8s.get_custom_object(
            group=group,
            version=version,
            namespace=self.namespace,
            plural=custom_resource_plural(kind),
            name=name,
            k8s_client=self.k8s_client,
            logger=self.logger,
        ).value_or_none()

    def delete_custom_resource(
        self, name: str, api_version: str, kind: str
    ) -> bool:
        """Delete a sub-operator custom resource instance.

        Returns `False` rather than raising if the delete fails.
        """
        try:
            k8s.delete_custom_object(
                group=SUBOPERATOR_GROUP,
                version=api_version,
                namespace=self.namespace,
                plural=custom_resource_plural(kind),
                name=name,
                k8s_client=self.k8s_client,
            )
        except ClusterMutationError as e:
            if e.status != 404:
                self.logger.error(str(e))
            return False
        return True

    def delete_zos_endpoint(self, name: str = DEFAULT_ENDPOINT_NAME) -> bool:
        """Request deletion of a ZosEndpoint.

        Returns `True` if the delete request was accepted, `False` on any
        failure, including the endpoint not existing.
        """
        try:
            k8s.delete_custom_object(
                group=ZOSCB_GROUP,
                version=ZOSCB_VERSION,
                namespace=self.namespace,
                plural=BrokerKind.ZOS_ENDPOINT.plural,
                name=name,
                k8s_client=self.k8s_client,
            )
        except ClusterMutationError as e:
            self.logger.info(f"ZosEndpoint {name} not deleted: {e}")
            return False
        return True

    def zos_endpoint_deleted(self, name: str = DEFAULT_ENDPOINT_NAME) -> bool:
        """A ZosEndpoint is deleted once it is missing from the endpoint
        list. A failed list does not count as deleted.
        """
        lookup = self._list_broker_objects(BrokerKind.ZOS_ENDPOINT)
        if isinstance(lookup, Failed):
            return False
        endpoints = lookup.value_or_none() or []
        return all(get_name(endpoint) != name for endpoint in endpoints)

    def zos_endpoint_installed(self, name: str = DEFAULT_ENDPOINT_NAME) -> bool:
        return any(
            get_name(endpoint) == name and broker_installed(endpoint)
            for endpoint in self.get_zos_endpoints() or []
        )

    # OLM objects

    def get_operator_group(self) -> Lookup[dict[str, Any] | None]:
        """Look up the namespace's OperatorGroup.

        Raises
        ------
        operatorcollectionsdk.exceptions.OperatorGroupConflictError
            Raised if more than one OperatorGroup exists.
        """
        lookup = k8s.list_custom_objects(
            group=OLM_GROUP,
            version=OPERATOR_GROUP_VERSION,
            namespace=self.namespace,
            plural="operatorgroups",
            k8s_client=self.k8s_client,
            logger=self.logger,
        )
        if not isinstance(lookup, Found):
            return lookup
        if len(lookup.value) > 1:
            raise OperatorGroupConflictError(self.namespace, len(lookup.value))
        if not lookup.value:
            return Absent()
        return Found(lookup.value[0])

    def create_operator_group(self) -> dict[str, Any] | None:
        """Create the OperatorGroup unless one already exists.

        Returns the created OperatorGroup, or `None` if one already existed.
        """
        existing = _require(self.get_operator_group(), "creating OperatorGroup")
        if existing:
            self.logger.info("OperatorGroup already exists")
            return None
        body = create_operator_group_body(namespace=self.namespace)
        created = k8s.create_custom_object(
            group=OLM_GROUP,
            version=OPERATOR_GROUP_VERSION,
            namespace=self.namespace,
            plural="operatorgroups",
            body=body,
            k8s_client=self.k8s_client,
        )
        self.logger.info("Created OperatorGroup")
        return created

    def get_broker_subscription(self) -> Lookup[dict[str, Any]]:
        return k8s.get_custom_object(
            group=OLM_GROUP,
            version=SUBSCRIPTION_VERSION,
            namespace=self.namespace,
            plural="subscriptions",
            name=BROKER_PACKAGE,
            k8s_client=self.k8s_client,
            logger=self.logger,
        )

    def create_broker_subscription(self) -> dict[str, Any] | None:
        """Create the broker Subscription unless it already exists.

        Returns the created Subscription, or `None` if it already existed.
        """
        existing = _require(
            self.get_broker_subscription(), "creating Subscription"
        )
        if existing:
            self.logger.info("Subscription already exists")
            return None
        body = create_subscription_body(
            namespace=self.namespace, catalog_source=self.catalog_source
        )
        created = k8s.create_custom_object(
            group=OLM_GROUP,
            version=SUBSCRIPTION_VERSION,
            namespace=self.namespace,
            plural="subscriptions",
            body=body,
            k8s_client=self.k8s_client,
        )
        self.logger.info(
            f"Created Subscription to {self.catalog_source.starting_csv}"
        )
        return created

    def subscription_installed(self) -> bool:
        return subscription_installed(
            self.get_broker_subscription().value_or_none()
        )

    def get_broker_csv(self) -> Lookup[dict[str, Any]]:
        return k8s.get_custom_object(
            group=OLM_GROUP,
            version=CSV_VERSION,
            namespace=self.namespace,
            plural="clusterserviceversions",
            name=self.catalog_source.starting_csv,
            k8s_client=self.k8s_client,
            logger=self.logger,
        )

    def csv_installed(self) -> bool:
        return csv_installed(self.get_broker_csv().value_or_none())

    def is_csv_installed(self, csv_name: str) -> bool:
        """Check a ClusterServiceVersion exists in the namespace."""
        return isinstance(
            k8s.get_custom_object(
                group=OLM_GROUP,
                version=CSV_VERSION,
                namespace=self.namespace,
                plural="clusterserviceversions",
                name=csv_name,
                k8s_client=self.k8s_client,
                logger=self.logger,
            ),
            Found,
        )

    def get_zos_cloud_broker_csv(self) -> dict[str, Any] | None:
        """Find the broker's CSV by the label OLM puts on it."""
        csvs = k8s.list_custom_objects(
            group=OLM_GROUP,
            version=CSV_VERSION,
            namespace=self.namespace,
            plural="clusterserviceversions",
            label_selector=(
                f"operators.coreos.com/{BROKER_PACKAGE}.{self.namespace}="
            ),
            k8s_client=self.k8s_client,
            logger=self.logger,
        ).value_or_none()
        if not csvs:
            return None
        return csvs[0]

    def get_zos_cloud_broker_release(self) -> str | None:
        """Get the installed broker release, such as ``v2.2.2``."""
        csv = self.get_zos_cloud_broker_csv()
        if csv is None:
            return None
        _, _, release = get_name(csv).partition(f"{BROKER_PACKAGE}.")
        return release or None

    # Broker instance

    def get_broker_instance(self) -> Lookup[dict[str, Any]]:
        return k8s.get_custom_object(
            group=ZOSCB_GROUP,
            version=ZOSCLOUDBROKER_VERSION,
            namespace=self.namespace,
            plural="zoscloudbrokers",
            name=BROKER_INSTANCE_NAME,
            k8s_client=self.k8s_client,
            logger=self.logger,
        )

    def create_broker_instance(self) -> dict[str, Any] | None:
        """Create the ZosCloudBroker instance unless it already exists.

        Returns the created instance, or `None` if it already existed.
        """
        existing = _require(
            self.get_broker_instance(), "creating ZosCloudBroker"
        )
        if existing:
            self.logger.info("ZosCloudBroker instance already exists")
            return None
        created = k8s.create_custom_object(
            group=ZOSCB_GROUP,
            version=ZOSCLOUDBROKER_VERSION,
            namespace=self.namespace,
            plural="zoscloudbrokers",
            body=create_broker_instance_body(namespace=self.namespace),
            k8s_client=self.k8s_client,
        )
        self.logger.info("Created ZosCloudBroker instance")
        return created

    def delete_broker_instance(self) -> None:
        k8s.delete_custom_object(
            group=ZOSCB_GROUP,
            version=ZOSCLOUDBROKER_VERSION,
            namespace=self.namespace,
            plural="zoscloudbrokers",
            name=BROKER_INSTANCE_NAME,
            k8s_client=self.k8s_client,
        )

    def broker_installed(self) -> bool:
        return broker_installed(self.get_broker_instance().value_or_none())

    def broker_deleted(self) -> bool:
        return isinstance(self.get_broker_instance(), Absent)

    def zos_cloud_broker_instance_ready(self) -> bool:
        """Check that a ZosCloudBroker instance of any name exists and has
        installed successfully.
        """
        brokers = k8s.list_custom_objects(
            group=ZOSCB_GROUP,
            version=ZOSCLOUDBROKER_VERSION,
            namespace=self.namespace,
            plural="zoscloudbrokers",
            k8s_client=self.k8s_client,
            logger=self.logger,
        ).value_or_none()
        if not brokers:
            return False
        return broker_installed(brokers[0])

    # Console links

    def get_console_url(self) -> str | None:
        """Get the host of the OpenShift web console route."""
        route = k8s.get_custom_object(
            group=ROUTE_GROUP,
            version=ROUTE_VERSION,
            namespace="openshift-console",
            plural="routes",
            name="console",
            k8s_client=self.k8s_client,
            logger=self.logger,
        ).value_or_none()
        if route is None:
            return None
        return (route.get("spec") or {}).get("host")

    def get_resource_url(
        self,
        kind: str,
        group: str,
        version: str,
        name: str,
        operator_csv_name: str | None = None,
    ) -> str | None:
        """Build the OpenShift console URL of a resource.

        Broker kinds link through the broker's CSV page and sub-operator
        kinds through their operator's CSV page when it is installed;
        otherwise the link opens the resource's YAML view.
        """
        console = self.get_console_url()
        if console is None:
            return None
        base = f"https://{console}/k8s/ns/{self.namespace}"
        resource = f"{group}~{version}~{kind}/{name}"

        csv_name = None
        if kind in {k.value for k in BrokerKind}:
            csv = self.get_zos_cloud_broker_csv()
            if csv is not None:
                csv_name = get_name(csv)
        elif operator_csv_name and self.is_csv_installed(operator_csv_name):
            csv_name = operator_csv_name

        if csv_name:
            return f"{base}/clusterserviceversions/{csv_name}/{resource}"
        return f"{base}/{resource}/yaml"
