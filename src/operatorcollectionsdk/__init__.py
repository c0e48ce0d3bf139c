"""Manage IBM z/OS Cloud Broker Operator Collections on OpenShift."""

from operatorcollectionsdk.version import __version__

__all__ = ("__version__",)
