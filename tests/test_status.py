"""Tests for the operatorcollectionsdk.status module."""

from __future__ import annotations

import pytest
import yaml

from operatorcollectionsdk.status import (
    ResourceStatus,
    container_status,
    custom_resource_status,
    pod_status,
)


@pytest.mark.parametrize(
    "phase,expected",
    [
        ("Successful", ResourceStatus.PASS),
        ("Succeeded", ResourceStatus.PASS),
        ("Failed", ResourceStatus.FAIL),
        ("Pending", ResourceStatus.PENDING),
        ("Installing", ResourceStatus.FAIL),
    ],
)
def test_custom_resource_status(phase: str, expected: ResourceStatus) -> None:
    obj = {"metadata": {"name": "x"}, "status": {"phase": phase}}
    assert custom_resource_status(obj) == expected


def test_custom_resource_without_status_fails() -> None:
    assert custom_resource_status({"metadata": {"name": "x"}}) == (
        ResourceStatus.FAIL
    )


def test_deleting_custom_resource_is_pending() -> None:
    manifest = """
apiVersion: zoscb.ibm.com/v2beta2
kind: ZosEndpoint
metadata:
  name: zos-lpar
  deletionTimestamp: "2024-01-01T00:00:00Z"
status:
  phase: Successful
"""
    obj = yaml.safe_load(manifest)
    assert custom_resource_status(obj) == ResourceStatus.PENDING


def test_container_status() -> None:
    assert container_status(
        {"name": "operator", "state": {"running": {}}}
    ) == ResourceStatus.PASS
    assert container_status(
        {"name": "operator", "state": {"waiting": {"reason": "Pulling"}}}
    ) == ResourceStatus.PENDING
    assert container_status(
        {"name": "operator", "state": {"terminated": {"exitCode": 1}}}
    ) == ResourceStatus.FAIL
    assert container_status(
        {"name": "init-collection", "state": {"terminated": {"exitCode": 0}}}
    ) == ResourceStatus.PASS
    assert container_status({"name": "operator"}) == ResourceStatus.PENDING


def test_pod_status_precedence() -> None:
    running = {"name": "a", "state": {"running": {}}}
    waiting = {"name": "b", "state": {"waiting": {}}}
    crashed = {"name": "c", "state": {"terminated": {}}}

    assert pod_status([running, crashed, waiting]) == ResourceStatus.PENDING
    assert pod_status([running, crashed]) == ResourceStatus.FAIL
    assert pod_status([running]) == ResourceStatus.PASS
    assert pod_status([]) is None
