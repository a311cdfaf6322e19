"""ClusterStateProvider protocol and namespace scoping helpers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from kubediag.models.snapshots import (
    DeploymentSnapshot,
    EventRecord,
    NodeSnapshot,
    PodSnapshot,
)

ALL_NAMESPACES = "all"

_SYSTEM_NAMESPACES: frozenset[str] = frozenset({"kube-system", "kube-public", "kube-node-lease"})
_SYSTEM_PREFIX = "kube-"


@runtime_checkable
class ClusterStateProvider(Protocol):
    """Read-only accessor for cluster state.

    ``namespace=None`` means every namespace.  Implementations raise
    ``NotFoundError`` for a missing pod and ``ProviderError`` for any
    transport or API failure.
    """

    async def get_pod(self, namespace: str, name: str) -> PodSnapshot: ...

    async def list_pods(self, namespace: str | None = None) -> list[PodSnapshot]: ...

    async def list_nodes(self) -> list[NodeSnapshot]: ...

    async def list_namespaces(self) -> list[str]: ...

    async def list_deployments(self, namespace: str | None = None) -> list[DeploymentSnapshot]: ...

    async def list_pod_events(self, namespace: str, pod_name: str) -> list[EventRecord]: ...

    async def read_pod_logs(
        self,
        namespace: str,
        pod_name: str,
        container: str | None = None,
        tail_lines: int = 100,
    ) -> str: ...


def is_system_namespace(namespace: str) -> bool:
    return namespace in _SYSTEM_NAMESPACES or namespace.startswith(_SYSTEM_PREFIX)


def resolve_scope(namespace: str) -> tuple[str | None, bool]:
    """Translate a caller-supplied namespace into ``(list_namespace, exclude_system)``.

    ``""``    -> whole cluster, system namespaces excluded.
    ``"all"`` -> whole cluster, nothing excluded.
    other     -> that namespace only.
    """
    if not namespace:
        return None, True
    if namespace == ALL_NAMESPACES:
        return None, False
    return namespace, False


async def list_scoped_pods(provider: ClusterStateProvider, namespace: str) -> list[PodSnapshot]:
    """List pods for ``namespace`` after applying ``resolve_scope``."""
    list_ns, exclude_system = resolve_scope(namespace)
    pods = await provider.list_pods(list_ns)
    if exclude_system:
        pods = [p for p in pods if not is_system_namespace(p.namespace)]
    return pods
