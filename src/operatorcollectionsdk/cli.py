"""Command-line interface for managing Operator Collections."""

from __future__ import annotations

import os
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any, Optional

import typer

from operatorcollectionsdk import k8s, oc
from operatorcollectionsdk.cluster import ClusterClient
from operatorcollectionsdk.config import (
    get_catalog_source,
    get_cluster_login,
    get_galaxy_settings,
)
from operatorcollectionsdk.exceptions import (
    ConfigurationError,
    OperatorCollectionSdkError,
)
from operatorcollectionsdk.logconfig import configure_logging
from operatorcollectionsdk.orchestration import (
    cleanup_namespace,
    install_zos_cloud_broker,
    wait_for_operator_delete,
    wait_for_operator_install,
    wait_for_pod_restart,
)
from operatorcollectionsdk.resources import (
    DEFAULT_ENDPOINT_NAME,
    ZOSCB_GROUP,
    ZOSCB_VERSION,
    BrokerKind,
)
from operatorcollectionsdk.sdk import SdkCommands
from operatorcollectionsdk.status import custom_resource_status, pod_status
from operatorcollectionsdk.workspace import load_extra_vars, load_operator_config

app = typer.Typer(
    name="ocsdk",
    help="Manage IBM z/OS Cloud Broker Operator Collections on OpenShift",
    add_completion=False,
)

_state: dict[str, Any] = {"namespace": None}


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn package errors into a one-line message and exit status 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except OperatorCollectionSdkError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    return wrapper


def resolve_namespace() -> str:
    """The namespace to operate on: ``--namespace``, then ``OCP_NAMESPACE``,
    then the namespace of the current kube config context.
    """
    namespace = (
        _state["namespace"]
        or os.environ.get("OCP_NAMESPACE")
        or k8s.current_namespace()
    )
    if not namespace:
        raise ConfigurationError(
            "No namespace selected. Pass --namespace, set OCP_NAMESPACE, "
            "or run 'ocsdk project <name>'."
        )
    return namespace.lower()


def get_client() -> ClusterClient:
    return ClusterClient(
        resolve_namespace(),
        k8s.create_k8sclient(),
        catalog_source=get_catalog_source(),
    )


def get_sdk(operator_dir: Path, log_path: Optional[Path] = None) -> SdkCommands:
    return SdkCommands(
        operator_dir, galaxy=get_galaxy_settings(), log_path=log_path
    )


@app.callback()
def main(
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Namespace to operate on"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logs"),
) -> None:
    configure_logging("DEBUG" if verbose else "INFO")
    _state["namespace"] = namespace


@app.command()
@handle_errors
def login(
    server: Optional[str] = typer.Option(None, help="OpenShift API server URL"),
    token: Optional[str] = typer.Option(None, help="OpenShift API token"),
    log_file: Optional[Path] = typer.Option(None, help="Append output here"),
) -> None:
    """Log into OpenShift and switch to the selected namespace."""
    if server and token:
        args = [f"--server={server}", f"--token={token}"]
        namespace = _state["namespace"]
    else:
        cluster_login = get_cluster_login()
        args = cluster_login.login_args()
        namespace = _state["namespace"] or cluster_login.namespace
    oc.login(args, log_path=log_file)
    if namespace:
        oc.project(namespace, log_path=log_file)
    typer.echo("Logged in")


@app.command()
@handle_errors
def project(name: str = typer.Argument(..., help="Namespace to switch to")) -> None:
    """Switch the active OpenShift project."""
    oc.project(name)


@app.command("install-broker")
@handle_errors
def install_broker() -> None:
    """Install the ZosCloudBroker operator and instance in the namespace."""
    client = get_client()
    client.create_namespace()
    install_zos_cloud_broker(client)
    typer.echo(f"ZosCloudBroker installed in {client.namespace}")


@app.command()
@handle_errors
def cleanup(
    endpoint: str = typer.Option(
        DEFAULT_ENDPOINT_NAME, help="Name of the ZosEndpoint to delete"
    ),
) -> None:
    """Delete the ZosEndpoint, the ZosCloudBroker and the namespace."""
    client = get_client()
    cleanup_namespace(client, endpoint_name=endpoint)
    typer.echo(f"Namespace {client.namespace} deleted")


@app.command("create-operator")
@handle_errors
def create_operator(
    operator_dir: Path = typer.Argument(Path("."), help="Operator directory"),
    wait: bool = typer.Option(False, help="Wait for the operator to install"),
    attempts: int = typer.Option(60, help="Poll attempts when waiting"),
    endpoint: str = typer.Option(DEFAULT_ENDPOINT_NAME, help="ZosEndpoint name"),
    log_file: Optional[Path] = typer.Option(None, help="Append output here"),
) -> None:
    """Create the operator with the create_operator playbook."""
    config = load_operator_config(operator_dir)
    get_sdk(operator_dir, log_file).create_operator(
        load_extra_vars(operator_dir)
    )
    if wait:
        wait_for_operator_install(
            get_client(), config.name, attempts=attempts, endpoint_name=endpoint
        )
    typer.echo(f"Operator {config.name} created")


@app.command("delete-operator")
@handle_errors
def delete_operator(
    operator_dir: Path = typer.Argument(Path("."), help="Operator directory"),
    wait: bool = typer.Option(False, help="Wait for the operator to delete"),
    attempts: int = typer.Option(30, help="Poll attempts when waiting"),
    log_file: Optional[Path] = typer.Option(None, help="Append output here"),
) -> None:
    """Delete the operator with the delete_operator playbook."""
    config = load_operator_config(operator_dir)
    get_sdk(operator_dir, log_file).delete_operator()
    if wait:
        wait_for_operator_delete(get_client(), config.name, attempts=attempts)
    typer.echo(f"Operator {config.name} deleted")


@app.command("redeploy-collection")
@handle_errors
def redeploy_collection(
    operator_dir: Path = typer.Argument(Path("."), help="Operator directory"),
    log_file: Optional[Path] = typer.Option(None, help="Append output here"),
) -> None:
    """Redeploy the operator's collection."""
    get_sdk(operator_dir, log_file).redeploy_collection()
    typer.echo("Collection redeployed")


@app.command("redeploy-operator")
@handle_errors
def redeploy_operator(
    operator_dir: Path = typer.Argument(Path("."), help="Operator directory"),
    wait: bool = typer.Option(False, help="Wait for the new operator pod"),
    attempts: int = typer.Option(30, help="Poll attempts when waiting"),
    log_file: Optional[Path] = typer.Option(None, help="Append output here"),
) -> None:
    """Redeploy the operator and optionally wait for its pod to restart."""
    config = load_operator_config(operator_dir)
    old_pod = None
    client = None
    if wait:
        client = get_client()
        pods = client.get_operator_pods(config.name) or []
        if pods:
            old_pod = pods[0]["metadata"]["name"]
    get_sdk(operator_dir, log_file).redeploy_operator()
    if client is not None and old_pod is not None:
        wait_for_pod_restart(client, config.name, old_pod, attempts=attempts)
    typer.echo(f"Operator {config.name} redeployed")


@app.command("install-sdk")
@handle_errors
def install_sdk(
    upgrade: bool = typer.Option(False, help="Upgrade to the latest version"),
) -> None:
    """Install the Operator Collection SDK and its dependencies."""
    sdk = get_sdk(Path.cwd())
    if not sdk.install_dependencies():
        raise OperatorCollectionSdkError(
            "Failed to install the kubernetes.core collection"
        )
    if upgrade:
        sdk.upgrade_collection()
    else:
        sdk.install_collection()
    typer.echo("Operator Collection SDK installed")


@app.command("sdk-status")
@handle_errors
def sdk_status() -> None:
    """Show the installed and latest Operator Collection SDK versions."""
    sdk = get_sdk(Path.cwd())
    installed = sdk.installed_collection_version()
    latest = sdk.latest_collection_version()
    typer.echo(f"Installed: {installed or 'not installed'}")
    typer.echo(f"Latest: {latest or 'unknown'}")
    if installed and latest and installed != latest:
        typer.echo("An update is available: run 'ocsdk install-sdk --upgrade'")


@app.command("download-logs")
@handle_errors
def download_logs(
    pod: str = typer.Argument(..., help="Pod name"),
    container: str = typer.Argument(..., help="Container name"),
    directory: Path = typer.Option(Path("."), help="Workspace directory"),
) -> None:
    """Download a container's log into <directory>/.openshiftLogs."""
    path = get_client().download_container_log(pod, container, directory)
    if path is None:
        raise OperatorCollectionSdkError(
            f"Failure retrieving logs for {pod}/{container}"
        )
    typer.echo(str(path))


@app.command("verbose-logs")
@handle_errors
def verbose_logs(
    pod: str = typer.Argument(..., help="Operator pod name"),
    container: str = typer.Argument(..., help="Operator container name"),
    kind: str = typer.Argument(..., help="Custom resource kind"),
    instance: str = typer.Argument(..., help="Custom resource instance"),
    api_version: str = typer.Option(..., help="Custom resource API version"),
    output: Path = typer.Option(Path("."), help="Local destination"),
) -> None:
    """Copy the Ansible Runner output of a custom resource instance."""
    oc.copy_verbose_logs(
        pod=pod,
        namespace=resolve_namespace(),
        container=container,
        api_version=api_version,
        kind=kind,
        instance=instance,
        local_path=output,
    )
    typer.echo(str(output))


@app.command("resource-status")
@handle_errors
def resource_status(
    operator_name: str = typer.Argument(..., help="Operator name"),
    links: bool = typer.Option(False, help="Show OpenShift console links"),
) -> None:
    """Show the status of an operator's broker resources and pods."""
    client = get_client()
    groups = [
        (BrokerKind.ZOS_ENDPOINT, client.get_zos_endpoints()),
        (
            BrokerKind.OPERATOR_COLLECTION,
            client.get_operator_collections(operator_name),
        ),
        (
            BrokerKind.SUB_OPERATOR_CONFIG,
            client.get_sub_operator_configs(operator_name),
        ),
    ]
    for kind, items in groups:
        for item in items or []:
            name = item["metadata"]["name"]
            line = f"{kind.value}/{name}: {custom_resource_status(item).value}"
            if links:
                url = client.get_resource_url(
                    kind.value, ZOSCB_GROUP, ZOSCB_VERSION, name
                )
                if url:
                    line += f" {url}"
            typer.echo(line)
    for pod in client.get_operator_pods(operator_name) or []:
        status = pod_status(client.get_container_statuses(pod))
        value = status.value if status is not None else "unknown"
        typer.echo(f"Pod/{pod['metadata']['name']}: {value}")
