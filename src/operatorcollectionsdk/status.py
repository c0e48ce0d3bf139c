"""Display status of custom resources, pods and containers."""

from __future__ import annotations

__all__ = (
    "ResourceStatus",
    "container_status",
    "custom_resource_status",
    "pod_status",
)

from collections.abc import Iterable
from enum import Enum
from typing import Any

from operatorcollectionsdk.resources import ResourcePhase, get_phase


class ResourceStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    PENDING = "pending"


_PHASE_STATUS = {
    ResourcePhase.SUCCESSFUL.value: ResourceStatus.PASS,
    ResourcePhase.SUCCEEDED.value: ResourceStatus.PASS,
    ResourcePhase.FAILED.value: ResourceStatus.FAIL,
    ResourcePhase.PENDING.value: ResourceStatus.PENDING,
}


def custom_resource_status(obj: dict[str, Any]) -> ResourceStatus:
    """Map a custom resource's ``status.phase`` to a display status.

    A missing or unrecognized phase is reported as `ResourceStatus.FAIL`,
    not pending. A resource with a recognized phase that is being deleted
    (``metadata.deletionTimestamp`` set) is reported as pending.
    """
    status = _PHASE_STATUS.get(get_phase(obj) or "")
    if status is None:
        return ResourceStatus.FAIL
    if (obj.get("metadata") or {}).get("deletionTimestamp"):
        return ResourceStatus.PENDING
    return status


def container_status(status: dict[str, Any]) -> ResourceStatus:
    """Display status of a single container from its ``containerStatuses``
    entry.

    Init containers (named ``init*``) are expected to terminate, so a
    terminated init container passes.
    """
    state = status.get("state") or {}
    if state.get("running") is not None:
        return ResourceStatus.PASS
    if state.get("waiting") is not None:
        return ResourceStatus.PENDING
    if state.get("terminated") is not None:
        if status.get("name", "").startswith("init"):
            return ResourceStatus.PASS
        return ResourceStatus.FAIL
    return ResourceStatus.PENDING


def pod_status(statuses: Iterable[dict[str, Any]]) -> ResourceStatus | None:
    """Aggregate container statuses into a pod status.

    Returns `None` if the pod has no containers to report on.
    """
    results = [container_status(status) for status in statuses]
    if ResourceStatus.PENDING in results:
        return ResourceStatus.PENDING
    if ResourceStatus.FAIL in results:
        return ResourceStatus.FAIL
    if ResourceStatus.PASS in results:
        return ResourceStatus.PASS
    return None
