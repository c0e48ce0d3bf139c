"""Shared fixtures: an in-memory stand-in for the Kubernetes client."""

from __future__ import annotations

import copy
import json
from typing import Any

import pytest
from kubernetes.client.exceptions import ApiException


class FakeResponse:
    """Mimics the urllib3 response returned with ``_preload_content=False``."""

    def __init__(self, payload: Any) -> None:
        self.data = json.dumps(payload).encode("utf-8")


def _matches(obj: dict[str, Any], label_selector: str | None) -> bool:
    if not label_selector:
        return True
    key, _, value = label_selector.partition("=")
    labels = obj.get("metadata", {}).get("labels") or {}
    return key in labels and labels[key] == value


class FakeCluster:
    """Cluster state shared by the fake API classes.

    Custom objects are keyed by ``(group, version, namespace, plural)``.
    ``failures`` maps an API method name to the exception it raises.
    Plurals listed in ``held_deletes`` (``"namespaces"`` for namespaces) are
    only marked with a ``deletionTimestamp`` when deleted, until
    `finish_delete` removes them.
    """

    def __init__(self) -> None:
        self.custom: dict[tuple[str, str, str, str], dict[str, Any]] = {}
        self.namespaces: dict[str, dict[str, Any]] = {}
        self.pods: dict[str, list[dict[str, Any]]] = {}
        self.pod_logs: dict[tuple[str, str, str], str] = {}
        self.failures: dict[str, Exception] = {}
        self.held_deletes: set[str] = set()
        self.created: list[dict[str, Any]] = []
        self.deleted: list[tuple[str, str]] = []

    # kubernetes.client interface

    def CoreV1Api(self) -> FakeCoreV1Api:
        return FakeCoreV1Api(self)

    def CustomObjectsApi(self) -> FakeCustomObjectsApi:
        return FakeCustomObjectsApi(self)

    # Test helpers

    def fail(self, method: str, status: int = 500) -> None:
        self.failures[method] = ApiException(status=status, reason="Boom")

    def check(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    def add_namespace(self, name: str) -> None:
        self.namespaces[name] = {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": name},
        }

    def add_object(
        self,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        obj: dict[str, Any],
    ) -> dict[str, Any]:
        store = self.custom.setdefault((group, version, namespace, plural), {})
        store[obj["metadata"]["name"]] = obj
        return obj

    def get_object(
        self, group: str, version: str, namespace: str, plural: str, name: str
    ) -> dict[str, Any] | None:
        return self.custom.get((group, version, namespace, plural), {}).get(
            name
        )

    def add_pod(self, namespace: str, pod: dict[str, Any]) -> None:
        self.pods.setdefault(namespace, []).append(pod)

    def finish_delete(self, plural: str, name: str) -> None:
        if plural == "namespaces":
            self.namespaces.pop(name, None)
            return
        for key, store in self.custom.items():
            if key[3] == plural:
                store.pop(name, None)


class FakeCoreV1Api:
    def __init__(self, cluster: FakeCluster) -> None:
        self.cluster = cluster

    def read_namespace(self, name: str, _preload_content: bool = True) -> Any:
        self.cluster.check("read_namespace")
        if name not in self.cluster.namespaces:
            raise ApiException(status=404, reason="Not Found")
        return FakeResponse(self.cluster.namespaces[name])

    def list_namespace(self, _preload_content: bool = True) -> Any:
        self.cluster.check("list_namespace")
        return FakeResponse({"items": list(self.cluster.namespaces.values())})

    def create_namespace(
        self, body: dict[str, Any], _preload_content: bool = True
    ) -> Any:
        self.cluster.check("create_namespace")
        name = body["metadata"]["name"]
        if name in self.cluster.namespaces:
            raise ApiException(status=409, reason="Conflict")
        self.cluster.namespaces[name] = copy.deepcopy(body)
        self.cluster.created.append(body)
        return FakeResponse(body)

    def delete_namespace(self, name: str) -> None:
        self.cluster.check("delete_namespace")
        if name not in self.cluster.namespaces:
            raise ApiException(status=404, reason="Not Found")
        self.cluster.deleted.append(("namespaces", name))
        if "namespaces" in self.cluster.held_deletes:
            metadata = self.cluster.namespaces[name]["metadata"]
            metadata["deletionTimestamp"] = "2024-01-01T00:00:00Z"
        else:
            del self.cluster.namespaces[name]

    def list_namespaced_pod(
        self,
        namespace: str,
        _preload_content: bool = True,
        label_selector: str | None = None,
    ) -> Any:
        self.cluster.check("list_namespaced_pod")
        pods = [
            pod
            for pod in self.cluster.pods.get(namespace, [])
            if _matches(pod, label_selector)
        ]
        return FakeResponse({"items": pods})

    def read_namespaced_pod_log(
        self, name: str, namespace: str, container: str
    ) -> str:
        self.cluster.check("read_namespaced_pod_log")
        try:
            return self.cluster.pod_logs[(namespace, name, container)]
        except KeyError:
            raise ApiException(status=404, reason="Not Found")


class FakeCustomObjectsApi:
    def __init__(self, cluster: FakeCluster) -> None:
        self.cluster = cluster

    def get_namespaced_custom_object(
        self, group: str, version: str, namespace: str, plural: str, name: str
    ) -> dict[str, Any]:
        self.cluster.check("get_namespaced_custom_object")
        obj = self.cluster.get_object(group, version, namespace, plural, name)
        if obj is None:
            raise ApiException(status=404, reason="Not Found")
        return copy.deepcopy(obj)

    def list_namespaced_custom_object(
        self,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        label_selector: str | None = None,
    ) -> dict[str, Any]:
        self.cluster.check("list_namespaced_custom_object")
        store = self.cluster.custom.get((group, version, namespace, plural), {})
        items = [
            copy.deepcopy(obj)
            for obj in store.values()
            if _matches(obj, label_selector)
        ]
        return {"items": items}

    def create_namespaced_custom_object(
        self,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        self.cluster.check("create_namespaced_custom_object")
        name = body["metadata"]["name"]
        if self.cluster.get_object(group, version, namespace, plural, name):
            raise ApiException(status=409, reason="Conflict")
        self.cluster.add_object(
            group, version, namespace, plural, copy.deepcopy(body)
        )
        self.cluster.created.append(body)
        return body

    def delete_namespaced_custom_object(
        self, group: str, version: str, namespace: str, plural: str, name: str
    ) -> dict[str, Any]:
        self.cluster.check("delete_namespaced_custom_object")
        store = self.cluster.custom.get((group, version, namespace, plural), {})
        if name not in store:
            raise ApiException(status=404, reason="Not Found")
        self.cluster.deleted.append((plural, name))
        if plural in self.cluster.held_deletes:
            store[name]["metadata"]["deletionTimestamp"] = (
                "2024-01-01T00:00:00Z"
            )
        else:
            del store[name]
        return {"status": "Success"}


@pytest.fixture
def cluster() -> FakeCluster:
    fake = FakeCluster()
    fake.add_namespace("test-ns")
    return fake

