"""Cluster state providers."""

from kubediag.provider.base import (
    ALL_NAMESPACES,
    ClusterStateProvider,
    is_system_namespace,
    list_scoped_pods,
    resolve_scope,
)
from kubediag.provider.demo import DemoStateProvider

__all__ = [
    "ALL_NAMESPACES",
    "ClusterStateProvider",
    "DemoStateProvider",
    "is_system_namespace",
    "list_scoped_pods",
    "resolve_scope",
]
