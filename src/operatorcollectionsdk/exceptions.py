"""Exception types raised by operatorcollectionsdk."""

from __future__ import annotations

__all__ = (
    "CleanupError",
    "ClusterMutationError",
    "CommandError",
    "CommandSpawnError",
    "ConfigurationError",
    "InstallError",
    "OperatorCollectionSdkError",
    "OperatorGroupConflictError",
    "PollTimeoutError",
)

from collections.abc import Sequence


class OperatorCollectionSdkError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(OperatorCollectionSdkError):
    """Raised when required configuration is missing or invalid."""


class ClusterMutationError(OperatorCollectionSdkError):
    """Raised when a create or delete call against the cluster fails.

    Parameters
    ----------
    operation : `str`
        Human-readable description of the mutation, such as
        ``"creating Subscription"``.
    status : `int`, optional
        The HTTP status of the upstream failure, if there was one.
    detail : `str`, optional
        The upstream error body or message, preserved as text.
    """

    def __init__(
        self,
        operation: str,
        *,
        status: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.operation = operation
        self.status = status
        self.detail = detail
        message = f"Failure {operation}"
        if status is not None:
            message += f" (HTTP {status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class OperatorGroupConflictError(ClusterMutationError):
    """Raised when more than one OperatorGroup exists in a namespace."""

    def __init__(self, namespace: str, count: int) -> None:
        super().__init__(
            "reading OperatorGroup",
            detail=(
                f"Multiple Operator Groups exist in namespace {namespace} "
                f"({count} found)"
            ),
        )
        self.namespace = namespace
        self.count = count


class PollTimeoutError(OperatorCollectionSdkError):
    """Raised when a poll loop exhausts its attempt budget."""

    def __init__(
        self, name: str, attempts: int, pending: Sequence[str]
    ) -> None:
        self.name = name
        self.attempts = attempts
        self.pending = tuple(pending)
        super().__init__(
            f"{name} did not complete after {attempts} attempts; still "
            f"waiting for: {', '.join(self.pending) or 'nothing'}"
        )


class CommandError(OperatorCollectionSdkError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        command: str,
        args: Sequence[str],
        returncode: int,
        message: str | None = None,
    ) -> None:
        self.command = command
        self.args_list = list(args)
        self.returncode = returncode
        if message is None:
            message = f"{command} exited with status {returncode}"
        super().__init__(message)


class CommandSpawnError(CommandError):
    """Raised when an external command cannot be started at all."""

    def __init__(self, command: str, args: Sequence[str], reason: str) -> None:
        self.reason = reason
        super().__init__(
            command, args, -1, message=f"Could not run {command}: {reason}"
        )


class InstallError(OperatorCollectionSdkError):
    """Raised when installing the ZosCloudBroker fails."""


class CleanupError(OperatorCollectionSdkError):
    """Raised when cleaning up a namespace fails."""
