"""Read-only cluster state snapshots supplied by a ClusterStateProvider.

Providers translate their transport objects into these types; the engines
never see a Kubernetes client model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ResourceRequirements:
    """Requests/limits block of a container spec.

    ``None`` means the block is absent from the spec, which is distinct from
    an empty mapping.
    """

    requests: dict[str, str] | None = None
    limits: dict[str, str] | None = None

    @property
    def is_unset(self) -> bool:
        return self.requests is None and self.limits is None


@dataclass(frozen=True)
class ContainerSpec:
    """Declared configuration of one container in a pod or pod template."""

    name: str
    resources: ResourceRequirements = field(default_factory=ResourceRequirements)
    has_liveness_probe: bool = False
    has_readiness_probe: bool = False


@dataclass(frozen=True)
class ContainerStatus:
    """Runtime status of one container."""

    name: str
    ready: bool
    restart_count: int = 0
    waiting_reason: str | None = None


@dataclass(frozen=True)
class PodSnapshot:
    name: str
    namespace: str
    phase: str
    labels: dict[str, str] = field(default_factory=dict)
    container_statuses: tuple[ContainerStatus, ...] = ()
    containers: tuple[ContainerSpec, ...] = ()
    created_at: datetime | None = None

    @property
    def total_restarts(self) -> int:
        return sum(cs.restart_count for cs in self.container_statuses)


@dataclass(frozen=True)
class EventRecord:
    """A control-plane event about ``subject``.

    ``timestamp`` is the last time the event was observed, or ``None`` when
    the API object carried no usable timestamp.
    """

    reason: str
    message: str
    timestamp: datetime | None
    subject: str


@dataclass(frozen=True)
class NodeSnapshot:
    name: str
    ready: bool


@dataclass(frozen=True)
class DeploymentSnapshot:
    name: str
    namespace: str
    replicas: int | None
    containers: tuple[ContainerSpec, ...] = ()
