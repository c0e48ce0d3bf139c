"""Helpers for interacting with Kubernetes APIs.

Reads return a `Lookup` instead of raising: `Found` with the raw manifest,
`Absent` when the API server answers 404 (a CRD or API version may not exist
yet), or `Failed` for any other error, which is logged. Mutations raise
`~operatorcollectionsdk.exceptions.ClusterMutationError` wrapping the
upstream failure.
"""

from __future__ import annotations

__all__ = (
    "Absent",
    "Failed",
    "Found",
    "Lookup",
    "create_custom_object",
    "create_k8sclient",
    "create_namespace",
    "delete_custom_object",
    "delete_namespace",
    "get_custom_object",
    "list_custom_objects",
    "list_namespaces",
    "list_pods",
    "read_namespace",
    "read_pod_log",
)

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

import kubernetes
import structlog
from kubernetes.client.exceptions import ApiException

from operatorcollectionsdk.exceptions import ClusterMutationError

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    """The object was read successfully."""

    value: T

    found = True

    def value_or_none(self) -> T:
        return self.value


@dataclass(frozen=True)
class Absent:
    """The API server answered 404."""

    found = False

    def value_or_none(self) -> None:
        return None


@dataclass(frozen=True)
class Failed:
    """The read failed for a reason other than 404."""

    error: Exception

    found = False

    def value_or_none(self) -> None:
        return None


Lookup = Union[Found[T], Absent, Failed]


def create_k8sclient() -> kubernetes.client:
    """Get a Kubernetes client configured with available cluster
    authentication.

    If in-cluster authentication is available, that is used. Otherwise
    this function falls-back to using a kubectl config file, which is
    what a developer logged in with ``oc login`` has.
    """
    try:
        kubernetes.config.load_incluster_config()
    except Exception:
        kubernetes.config.load_kube_config()
    return kubernetes.client


def current_namespace() -> str | None:
    """Get the namespace of the active kube config context, if any."""
    try:
        _, context = kubernetes.config.list_kube_config_contexts()
    except Exception:
        return None
    if not context:
        return None
    return context.get("context", {}).get("namespace")


def _lookup(
    call: Callable[[], T], *, description: str, logger: Any | None
) -> Lookup[T]:
    if logger is None:
        logger = structlog.getLogger(__name__)
    try:
        return Found(call())
    except ApiException as e:
        if e.status == 404:
            logger.debug(f"{description}: not found")
            return Absent()
        logger.error(
            f"Failure {description}: HTTP {e.status} {e.reason} {e.body}"
        )
        return Failed(e)
    except Exception as e:
        logger.exception(f"Failure {description}")
        return Failed(e)


def _mutate(call: Callable[[], T], *, description: str) -> T:
    try:
        return call()
    except ApiException as e:
        raise ClusterMutationError(
            description, status=e.status, detail=str(e.body or e.reason)
        ) from e
    except Exception as e:
        raise ClusterMutationError(description, detail=str(e)) from e


def _raw(result: Any) -> Any:
    """Decode a response fetched with ``_preload_content=False``."""
    return json.loads(result.data)


def get_custom_object(
    *,
    group: str,
    version: str,
    namespace: str,
    plural: str,
    name: str,
    k8s_client: Any,
    logger: Any | None = None,
) -> Lookup[dict[str, Any]]:
    """Get a namespaced custom resource.

    Parameters
    ----------
    group : `str`
        API group of the resource, such as ``zoscb.ibm.com``.
    version : `str`
        API version within the group, such as ``v2beta2``.
    namespace : `str`
        The Kubernetes namespace of the resource.
    plural : `str`
        The plural resource name, such as ``zosendpoints``.
    name : `str`
        The name of the resource.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    logger : optional
        Logger for failures other than 404.

    Returns
    -------
    lookup : `Lookup`
        `Found` with the resource manifest as a `dict`, `Absent`, or
        `Failed`.
    """
    api = k8s_client.CustomObjectsApi()
    return _lookup(
        lambda: api.get_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            name=name,
        ),
        description=f"retrieving {plural} {name}",
        logger=logger,
    )


def list_custom_objects(
    *,
    group: str,
    version: str,
    namespace: str,
    plural: str,
    k8s_client: Any,
    label_selector: str | None = None,
    logger: Any | None = None,
) -> Lookup[list[dict[str, Any]]]:
    """List namespaced custom resources, optionally filtered by label.

    Returns
    -------
    lookup : `Lookup`
        `Found` with the list of resource manifests, `Absent`, or `Failed`.
    """
    api = k8s_client.CustomObjectsApi()
    kwargs: dict[str, Any] = {}
    if label_selector is not None:
        kwargs["label_selector"] = label_selector

    def call() -> list[dict[str, Any]]:
        response = api.list_namespaced_custom_object(
            group, version, namespace, plural, **kwargs
        )
        return list(response.get("items", []))

    return _lookup(
        call, description=f"retrieving {plural} list", logger=logger
    )


def create_custom_object(
    *,
    group: str,
    version: str,
    namespace: str,
    plural: str,
    body: dict[str, Any],
    k8s_client: Any,
) -> dict[str, Any]:
    """Create a namespaced custom resource.

    Raises
    ------
    operatorcollectionsdk.exceptions.ClusterMutationError
        Raised if the API server rejects the request.
    """
    api = k8s_client.CustomObjectsApi()
    return _mutate(
        lambda: api.create_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            body=body,
        ),
        description=f"creating {body.get('kind', plural)}",
    )


def delete_custom_object(
    *,
    group: str,
    version: str,
    namespace: str,
    plural: str,
    name: str,
    k8s_client: Any,
) -> None:
    """Delete a namespaced custom resource.

    Raises
    ------
    operatorcollectionsdk.exceptions.ClusterMutationError
        Raised if the API server rejects the request, including with 404.
    """
    api = k8s_client.CustomObjectsApi()
    _mutate(
        lambda: api.delete_namespaced_custom_object(
            group=group,
            version=version,
            namespace=namespace,
            plural=plural,
            name=name,
        ),
        description=f"deleting {plural} {name}",
    )


def read_namespace(
    *, name: str, k8s_client: Any, logger: Any | None = None
) -> Lookup[dict[str, Any]]:
    """Get a Namespace resource as a raw manifest."""
    api = k8s_client.CoreV1Api()
    return _lookup(
        lambda: _raw(api.read_namespace(name=name, _preload_content=False)),
        description=f"retrieving Namespace {name}",
        logger=logger,
    )


def list_namespaces(
    *, k8s_client: Any, logger: Any | None = None
) -> Lookup[list[dict[str, Any]]]:
    """List the Namespace resources visible to the client."""
    api = k8s_client.CoreV1Api()
    return _lookup(
        lambda: _raw(api.list_namespace(_preload_content=False))["items"],
        description="retrieving Namespace list",
        logger=logger,
    )


def create_namespace(*, name: str, k8s_client: Any) -> dict[str, Any]:
    """Create a Namespace."""
    api = k8s_client.CoreV1Api()
    body = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name}}
    return _mutate(
        lambda: _raw(api.create_namespace(body=body, _preload_content=False)),
        description="creating Namespace",
    )


def delete_namespace(*, name: str, k8s_client: Any) -> None:
    """Delete a Namespace."""
    api = k8s_client.CoreV1Api()
    _mutate(
        lambda: api.delete_namespace(name=name),
        description=f"deleting Namespace {name}",
    )


def list_pods(
    *,
    namespace: str,
    k8s_client: Any,
    label_selector: str | None = None,
    logger: Any | None = None,
) -> Lookup[list[dict[str, Any]]]:
    """List the Pods in a namespace as raw manifests."""
    api = k8s_client.CoreV1Api()
    kwargs: dict[str, Any] = {"_preload_content": False}
    if label_selector is not None:
        kwargs["label_selector"] = label_selector
    return _lookup(
        lambda: _raw(api.list_namespaced_pod(namespace, **kwargs))["items"],
        description=f"retrieving Pods in namespace {namespace}",
        logger=logger,
    )


def read_pod_log(
    *,
    name: str,
    namespace: str,
    container: str,
    k8s_client: Any,
    logger: Any | None = None,
) -> Lookup[str]:
    """Read the log of one container in a Pod."""
    api = k8s_client.CoreV1Api()
    return _lookup(
        lambda: api.read_namespaced_pod_log(
            name=name, namespace=namespace, container=container
        ),
        description=f"retrieving logs of {name}/{container}",
        logger=logger,
    )
