"""Wrappers for the IBM Operator Collection SDK Ansible collection, run
through ``ansible-galaxy`` and ``ansible-playbook``.
"""

from __future__ import annotations

__all__ = ("SdkCommands", "parse_latest_version")

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import httpx
import structlog

from operatorcollectionsdk.config import GalaxySettings
from operatorcollectionsdk.exceptions import (
    CommandError,
    OperatorCollectionSdkError,
)
from operatorcollectionsdk.process import run_command

PLAYBOOK_PREFIX = "ibm.operator_collection_sdk"


def parse_latest_version(data: Any) -> str | None:
    """Get the latest collection version from a Galaxy API response.

    Handles both the legacy ``repo-or-collection-detail`` response and the
    v3 ``versions`` listing, whose first entry is the newest.
    """
    if not isinstance(data, dict):
        return None
    payload = data.get("data")
    if isinstance(payload, dict):
        latest = (payload.get("collection") or {}).get("latest_version") or {}
        return latest.get("version")
    if isinstance(payload, list) and payload:
        return payload[0].get("version")
    return None


class SdkCommands:
    """Operator Collection SDK commands run against one operator directory.

    Parameters
    ----------
    pwd : `str` or `pathlib.Path`, optional
        The operator directory, used as the working directory of every
        command.
    galaxy : `operatorcollectionsdk.config.GalaxySettings`, optional
        The Galaxy server and namespace the collection comes from.
    log_path : `str` or `pathlib.Path`, optional
        File that command output is appended to.
    logger : optional
        Logger; a module logger is used if not provided.
    """

    def __init__(
        self,
        pwd: str | Path | None = None,
        *,
        galaxy: GalaxySettings | None = None,
        log_path: str | Path | None = None,
        logger: Any | None = None,
    ) -> None:
        self.pwd = pwd
        self.galaxy = galaxy or GalaxySettings()
        self.log_path = log_path
        self.logger = logger or structlog.getLogger(__name__)

    def _run(
        self,
        command: str,
        args: Sequence[str],
        *,
        env: dict[str, str] | None = None,
        on_output: Any | None = None,
    ) -> int:
        return run_command(
            command,
            args,
            cwd=self.pwd,
            env=env,
            log_path=self.log_path,
            logger=self.logger,
            on_output=on_output,
        )

    # Collection management

    def verify_collection(
        self,
        namespace: str | None = None,
        collection: str = "operator_collection_sdk",
    ) -> int:
        """Run ``ansible-galaxy collection verify`` for a collection."""
        namespace = namespace or self.galaxy.namespace
        return self._run(
            "ansible-galaxy",
            [
                "collection",
                "verify",
                "-s",
                self.galaxy.url,
                f"{namespace}.{collection}",
            ],
        )

    def install_collection(self) -> int:
        """Force-install the Operator Collection SDK collection."""
        return self._run(
            "ansible-galaxy",
            [
                "collection",
                "install",
                "-f",
                "-s",
                self.galaxy.url,
                self.galaxy.sdk_collection,
            ],
        )

    def upgrade_collection(self) -> int:
        """Upgrade the Operator Collection SDK to the latest version."""
        return self._run(
            "ansible-galaxy",
            [
                "collection",
                "install",
                "-s",
                self.galaxy.url,
                self.galaxy.sdk_collection,
                "--upgrade",
            ],
        )

    def install_dependencies(self) -> bool:
        """Install the ``kubernetes.core`` collection if it is missing.

        Returns
        -------
        installed : `bool`
            `True` if the collection was present or installed successfully.
        """
        try:
            self.verify_collection("kubernetes", "core")
            return True
        except CommandError:
            self.logger.info("kubernetes.core is not installed; installing")

        try:
            self._run(
                "ansible-galaxy",
                [
                    "collection",
                    "install",
                    "-f",
                    "-s",
                    self.galaxy.url,
                    "kubernetes.core",
                ],
            )
        except CommandError as e:
            self.logger.error(f"Failed to install kubernetes.core: {e}")
            return False
        return True

    def installed_collection_version(self) -> str | None:
        """Get the installed Operator Collection SDK version, if any."""
        output: list[str] = []
        try:
            self._run(
                "ansible-galaxy",
                ["collection", "list", self.galaxy.sdk_collection],
                on_output=output.append,
            )
        except CommandError:
            return None
        for line in "".join(output).splitlines():
            fields = line.split()
            if len(fields) >= 2 and fields[0] == self.galaxy.sdk_collection:
                return fields[1]
        return None

    def latest_collection_version(
        self, http_client: httpx.Client | None = None
    ) -> str | None:
        """Ask the Galaxy server for the newest Operator Collection SDK
        version, trying the v3 API before the legacy one.
        """
        base = self.galaxy.url
        namespace = self.galaxy.namespace
        urls = [
            f"{base}/api/v3/plugin/ansible/content/published/collections/"
            f"index/{namespace}/operator_collection_sdk/versions/",
            f"{base}/api/internal/ui/repo-or-collection-detail/"
            f"?namespace={namespace}&name=operator_collection_sdk",
        ]
        client = http_client or httpx.Client(
            timeout=30.0, follow_redirects=True
        )
        try:
            for url in urls:
                try:
                    response = client.get(url)
                except httpx.HTTPError as e:
                    self.logger.warning(f"Failure querying {url}: {e}")
                    continue
                if response.status_code != 200:
                    continue
                version = parse_latest_version(response.json())
                if version:
                    return version
        finally:
            if http_client is None:
                client.close()
        return None

    def is_collection_outdated(
        self, http_client: httpx.Client | None = None
    ) -> bool:
        """Check whether a newer Operator Collection SDK is available.

        Raises
        ------
        operatorcollectionsdk.exceptions.OperatorCollectionSdkError
            Raised if the latest version cannot be determined.
        """
        latest = self.latest_collection_version(http_client)
        if latest is None:
            raise OperatorCollectionSdkError(
                "Unable to locate latest Operator Collection SDK version"
            )
        return self.installed_collection_version() != latest

    # Playbooks

    def create_operator(self, extra_args: Sequence[str] = ()) -> int:
        """Run the ``create_operator`` playbook.

        Parameters
        ----------
        extra_args : sequence of `str`
            Extra ``ansible-playbook`` arguments, typically ``-e key=value``
            pairs (see `operatorcollectionsdk.workspace.load_extra_vars`).
        """
        return self._run(
            "ansible-playbook",
            [*extra_args, f"{PLAYBOOK_PREFIX}.create_operator"],
            env={"ANSIBLE_JINJA2_NATIVE": "true"},
        )

    def delete_operator(self) -> int:
        return self._run_playbook("delete_operator")

    def redeploy_collection(self) -> int:
        return self._run_playbook("redeploy_collection")

    def redeploy_operator(self) -> int:
        return self._run_playbook("redeploy_operator")

    def _run_playbook(self, playbook: str) -> int:
        return self._run("ansible-playbook", [f"{PLAYBOOK_PREFIX}.{playbook}"])
