"""Install and clean up the ZosCloudBroker, and wait on operator lifecycle
changes.

Every step is sequential. Each "ensure" step checks for the resource before
creating it, and each wait re-reads live cluster state on every poll tick.
"""

from __future__ import annotations

__all__ = (
    "cleanup_namespace",
    "install_zos_cloud_broker",
    "wait_for_operator_delete",
    "wait_for_operator_install",
    "wait_for_pod_restart",
)

import time
from collections.abc import Callable
from typing import Any

import structlog

from operatorcollectionsdk.cluster import ClusterClient, broker_installed
from operatorcollectionsdk.config import PollSettings
from operatorcollectionsdk.exceptions import (
    CleanupError,
    ClusterMutationError,
    InstallError,
    OperatorCollectionSdkError,
)
from operatorcollectionsdk.polling import Condition, poll_until
from operatorcollectionsdk.resources import DEFAULT_ENDPOINT_NAME


def install_zos_cloud_broker(
    client: ClusterClient,
    *,
    poll_settings: PollSettings | None = None,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any | None = None,
) -> int:
    """Install the ZosCloudBroker operator and a broker instance.

    The OperatorGroup, Subscription and ZosCloudBroker instance are each
    created only if absent. Every Subscription or instance actually created
    adds ``poll_settings.attempts_per_step`` to the attempt budget, and if
    the budget is positive the install is polled until the Subscription,
    then the CSV, then the instance report success.

    Parameters
    ----------
    client : `operatorcollectionsdk.cluster.ClusterClient`
        Client bound to the namespace to install into.
    poll_settings : `operatorcollectionsdk.config.PollSettings`, optional
        Poll interval and per-step budget.
    sleep : callable
        Function used to wait between poll ticks.
    logger : optional
        Logger; a module logger is used if not provided.

    Returns
    -------
    attempts : `int`
        The attempt budget that was used for polling (``0`` if nothing was
        created and no polling was needed).

    Raises
    ------
    operatorcollectionsdk.exceptions.InstallError
        Raised if any creation fails or the poll budget is exhausted.
    """
    if poll_settings is None:
        poll_settings = PollSettings()
    if logger is None:
        logger = structlog.getLogger(__name__)

    attempts = 0
    try:
        client.create_operator_group()
        if client.create_broker_subscription() is not None:
            attempts += poll_settings.attempts_per_step
        if client.create_broker_instance() is not None:
            attempts += poll_settings.attempts_per_step

        if attempts > 0:
            poll_until(
                [
                    Condition(
                        "Subscription",
                        client.subscription_installed,
                        "Waiting for Subscription to install successfully...",
                    ),
                    Condition(
                        "ClusterServiceVersion",
                        client.csv_installed,
                        "Waiting for CSV to install successfully...",
                    ),
                    Condition(
                        "ZosCloudBroker",
                        client.broker_installed,
                        "Waiting for ZosCloudBroker to install "
                        "successfully...",
                    ),
                ],
                attempts=attempts,
                interval=poll_settings.interval,
                name="Install",
                logger=logger,
                sleep=sleep,
            )
    except OperatorCollectionSdkError as e:
        raise InstallError(f"Failure installing ZosCloudBroker: {e}") from e

    logger.info(f"ZosCloudBroker installed in namespace {client.namespace}")
    return attempts


def cleanup_namespace(
    client: ClusterClient,
    namespace: str | None = None,
    *,
    endpoint_name: str = DEFAULT_ENDPOINT_NAME,
    poll_settings: PollSettings | None = None,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any | None = None,
) -> None:
    """Tear down the ZosEndpoint, the broker instance and the namespace.

    Deleting the endpoint and the broker instance is best-effort: if the
    endpoint delete is refused its deletion is not polled, and broker delete
    errors are ignored. Deleting the namespace is the only step whose
    failure is raised. The cleanup completes once the broker instance and
    the namespace are both gone.

    Parameters
    ----------
    client : `operatorcollectionsdk.cluster.ClusterClient`
        Client bound to the namespace holding the broker.
    namespace : `str`, optional
        Namespace to delete; defaults to the client's namespace.
    endpoint_name : `str`
        Name of the ZosEndpoint to delete.

    Raises
    ------
    operatorcollectionsdk.exceptions.CleanupError
        Raised if the namespace cannot be deleted or a poll budget is
        exhausted.
    """
    if poll_settings is None:
        poll_settings = PollSettings()
    if logger is None:
        logger = structlog.getLogger(__name__)
    namespace = namespace or client.namespace

    try:
        if client.delete_zos_endpoint(endpoint_name):
            poll_until(
                [
                    Condition(
                        "ZosEndpoint",
                        lambda: client.zos_endpoint_deleted(endpoint_name),
                        "Waiting for ZosEndpoint to delete successfully...",
                    )
                ],
                attempts=poll_settings.endpoint_delete_attempts,
                interval=poll_settings.interval,
                name="ZosEndpoint delete",
                logger=logger,
                sleep=sleep,
            )

        try:
            client.delete_broker_instance()
        except ClusterMutationError as e:
            logger.debug(f"Ignoring ZosCloudBroker delete failure: {e}")

        client.delete_namespace(namespace)

        poll_until(
            [
                Condition(
                    "ZosCloudBroker",
                    client.broker_deleted,
                    "Waiting for ZosCloudBroker to delete successfully...",
                ),
                Condition(
                    "Namespace",
                    lambda: client.namespace_deleted(namespace),
                    "Waiting for Namespace to delete successfully...",
                ),
            ],
            attempts=poll_settings.cleanup_attempts,
            interval=poll_settings.interval,
            name="Cleanup",
            logger=logger,
            sleep=sleep,
        )
    except OperatorCollectionSdkError as e:
        raise CleanupError(f"Failure cleaning up namespace: {e}") from e

    logger.info(f"Namespace {namespace} cleaned up")


def wait_for_operator_install(
    client: ClusterClient,
    operator_name: str,
    *,
    attempts: int,
    endpoint_name: str = DEFAULT_ENDPOINT_NAME,
    interval: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any | None = None,
) -> int:
    """Wait for a created operator's ZosEndpoint, OperatorCollection and
    SubOperatorConfig to report success, in that order.

    The endpoint must succeed within the first third of the budget and the
    OperatorCollection within the first two thirds.
    """
    per_task = attempts // 3

    def collection_installed() -> bool:
        return _single_successful(
            client.get_operator_collections(operator_name)
        )

    def config_installed() -> bool:
        return _single_successful(
            client.get_sub_operator_configs(operator_name)
        )

    return poll_until(
        [
            Condition(
                "ZosEndpoint",
                lambda: client.zos_endpoint_installed(endpoint_name),
                "Waiting for ZosEndpoint to install successfully...",
                max_attempt=per_task or None,
            ),
            Condition(
                "OperatorCollection",
                collection_installed,
                "Waiting for OperatorCollection to install successfully...",
                max_attempt=per_task * 2 or None,
            ),
            Condition(
                "SubOperatorConfig",
                config_installed,
                "Waiting for SubOperatorConfig to install successfully...",
            ),
        ],
        attempts=attempts,
        interval=interval,
        name="Install",
        logger=logger,
        sleep=sleep,
    )


def wait_for_operator_delete(
    client: ClusterClient,
    operator_name: str,
    *,
    attempts: int,
    interval: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any | None = None,
) -> int:
    """Wait for an operator's OperatorCollection and SubOperatorConfig to
    disappear.
    """
    return poll_until(
        [
            Condition(
                "OperatorCollection",
                lambda: client.get_operator_collections(operator_name) == [],
                "Waiting for OperatorCollection to delete successfully...",
            ),
            Condition(
                "SubOperatorConfig",
                lambda: client.get_sub_operator_configs(operator_name) == [],
                "Waiting for SubOperatorConfig to delete successfully...",
            ),
        ],
        attempts=attempts,
        interval=interval,
        name="Delete",
        logger=logger,
        sleep=sleep,
    )


def wait_for_pod_restart(
    client: ClusterClient,
    operator_name: str,
    old_pod_name: str,
    *,
    attempts: int,
    interval: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
    logger: Any | None = None,
) -> int:
    """Wait until the operator runs exactly one pod that is not
    ``old_pod_name``.
    """

    def restarted() -> bool:
        pods = client.get_operator_pods(operator_name) or []
        return len(pods) == 1 and pods[0]["metadata"]["name"] != old_pod_name

    return poll_until(
        [
            Condition(
                "Pod",
                restarted,
                "Waiting for operator Pod to restart successfully...",
            )
        ],
        attempts=attempts,
        interval=interval,
        name="Pod status poll",
        logger=logger,
        sleep=sleep,
    )


def _single_successful(items: list[dict[str, Any]] | None) -> bool:
    return (
        items is not None
        and len(items) == 1
        and broker_installed(items[0])
    )
