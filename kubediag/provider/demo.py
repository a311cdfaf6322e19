"""Offline ClusterStateProvider serving a fixed demo cluster.

Every operation runs the real engines against this canned state, so demo
output has exactly the same schema as live output.  Timestamps are
expressed relative to a clock so event windows and pod ages stay
meaningful whenever the demo runs.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from kubediag.errors import NotFoundError
from kubediag.models.snapshots import (
    ContainerSpec,
    ContainerStatus,
    DeploymentSnapshot,
    EventRecord,
    NodeSnapshot,
    PodSnapshot,
    ResourceRequirements,
)

_SMALL = ResourceRequirements(
    requests={"cpu": "100m", "memory": "128Mi"},
    limits={"cpu": "200m", "memory": "256Mi"},
)
_LARGE = ResourceRequirements(
    requests={"cpu": "500m", "memory": "512Mi"},
    limits={"cpu": "1", "memory": "1Gi"},
)
_REQUESTS_ONLY = ResourceRequirements(requests={"cpu": "50m", "memory": "64Mi"})

_DEMO_APP_LOGS = """\
2024-05-01T10:00:00Z INFO Starting demo-app v1.4.2
2024-05-01T10:00:01Z INFO Loading configuration from /etc/demo/config.yaml
2024-05-01T10:00:02Z WARN Config key 'cache.ttl' is deprecated, use 'cache.expiry'
2024-05-01T10:00:03Z ERROR Database connection timeout after 5s
2024-05-01T10:00:08Z WARN Retrying database connection (attempt 2)
2024-05-01T10:00:13Z ERROR Database connection timeout after 5s
2024-05-01T10:00:14Z ERROR dial tcp 10.0.3.7:5432: connection refused
2024-05-01T10:00:14Z FATAL Unable to initialise storage backend, exiting
"""

_DEMO_DB_LOGS = """\
2024-05-01T09:15:00Z LOG: database system is ready to accept connections
2024-05-01T09:45:00Z LOG: checkpoint complete
"""


def _now() -> datetime:
    return datetime.now(tz=UTC)


class DemoStateProvider:
    """Canned three-node cluster with a handful of healthy and broken pods.

    Args:
        clock: Returns the current time; defaults to ``datetime.now(UTC)``.
    """

    def __init__(self, clock: Callable[[], datetime] = _now) -> None:
        self._clock = clock

    # ------------------------------------------------------------------
    # Canned state
    # ------------------------------------------------------------------

    def _pods(self) -> list[PodSnapshot]:
        now = self._clock()
        return [
            PodSnapshot(
                name="demo-app-pod",
                namespace="default",
                phase="Running",
                labels={"app": "demo-app", "tier": "backend"},
                container_statuses=(
                    ContainerStatus(
                        name="app-container",
                        ready=False,
                        restart_count=6,
                        waiting_reason="CrashLoopBackOff",
                    ),
                ),
                containers=(ContainerSpec(name="app-container"),),
                created_at=now - timedelta(hours=2, minutes=30),
            ),
            PodSnapshot(
                name="demo-db-pod",
                namespace="default",
                phase="Running",
                labels={"app": "demo-db", "tier": "database"},
                container_statuses=(ContainerStatus(name="postgres", ready=True),),
                containers=(
                    ContainerSpec(
                        name="postgres",
                        resources=_LARGE,
                        has_liveness_probe=True,
                        has_readiness_probe=True,
                    ),
                ),
                created_at=now - timedelta(hours=1, minutes=45),
            ),
            PodSnapshot(
                name="demo-web-pod",
                namespace="default",
                phase="Pending",
                labels={"app": "demo-web", "tier": "frontend"},
                container_statuses=(
                    ContainerStatus(name="web", ready=False, waiting_reason="ImagePullBackOff"),
                ),
                containers=(ContainerSpec(name="web", resources=_SMALL, has_liveness_probe=True),),
                created_at=now - timedelta(minutes=5),
            ),
            PodSnapshot(
                name="metrics-agent-x7k2p",
                namespace="monitoring",
                phase="Running",
                labels={"app": "metrics-agent"},
                container_statuses=(ContainerStatus(name="agent", ready=True, restart_count=4),),
                containers=(
                    ContainerSpec(
                        name="agent",
                        resources=_REQUESTS_ONLY,
                        has_liveness_probe=True,
                        has_readiness_probe=True,
                    ),
                ),
                created_at=now - timedelta(days=3, hours=4),
            ),
            PodSnapshot(
                name="report-job-28h4s",
                namespace="staging",
                phase="Succeeded",
                labels={"job-name": "report-job"},
                container_statuses=(ContainerStatus(name="report", ready=False),),
                containers=(ContainerSpec(name="report", resources=_SMALL),),
                created_at=now - timedelta(hours=6),
            ),
            PodSnapshot(
                name="coredns-5d78c9869d-q8j2n",
                namespace="kube-system",
                phase="Running",
                labels={"k8s-app": "kube-dns"},
                container_statuses=(ContainerStatus(name="coredns", ready=True, restart_count=1),),
                containers=(
                    ContainerSpec(
                        name="coredns",
                        resources=ResourceRequirements(
                            requests={"cpu": "100m", "memory": "70Mi"},
                            limits={"memory": "170Mi"},
                        ),
                        has_liveness_probe=True,
                        has_readiness_probe=True,
                    ),
                ),
                created_at=now - timedelta(days=12),
            ),
        ]

    def _events(self) -> list[tuple[str, EventRecord]]:
        now = self._clock()
        return [
            (
                "default",
                EventRecord(
                    reason="BackOff",
                    message="Back-off restarting failed container app-container",
                    timestamp=now - timedelta(minutes=10),
                    subject="demo-app-pod",
                ),
            ),
            (
                "default",
                EventRecord(
                    reason="Pulled",
                    message='Container image "demo/app:1.4.2" already present on machine',
                    timestamp=now - timedelta(hours=2, minutes=29),
                    subject="demo-app-pod",
                ),
            ),
            (
                "default",
                EventRecord(
                    reason="Scheduled",
                    message="Successfully assigned default/demo-app-pod to demo-node-1",
                    timestamp=now - timedelta(days=2),
                    subject="demo-app-pod",
                ),
            ),
            (
                "default",
                EventRecord(
                    reason="Failed",
                    message='Failed to pull image "demo/web:latest": not found',
                    timestamp=now - timedelta(minutes=4),
                    subject="demo-web-pod",
                ),
            ),
        ]

    # ------------------------------------------------------------------
    # ClusterStateProvider
    # ------------------------------------------------------------------

    async def get_pod(self, namespace: str, name: str) -> PodSnapshot:
        for pod in self._pods():
            if pod.namespace == namespace and pod.name == name:
                return pod
        raise NotFoundError("Pod", namespace, name)

    async def list_pods(self, namespace: str | None = None) -> list[PodSnapshot]:
        pods = self._pods()
        if namespace:
            return [p for p in pods if p.namespace == namespace]
        return pods

    async def list_nodes(self) -> list[NodeSnapshot]:
        return [
            NodeSnapshot(name="demo-node-1", ready=True),
            NodeSnapshot(name="demo-node-2", ready=True),
            NodeSnapshot(name="demo-node-3", ready=False),
        ]

    async def list_namespaces(self) -> list[str]:
        return ["default", "kube-node-lease", "kube-public", "kube-system", "monitoring", "staging"]

    async def list_deployments(self, namespace: str | None = None) -> list[DeploymentSnapshot]:
        deployments = [
            DeploymentSnapshot(
                name="demo-app",
                namespace="default",
                replicas=1,
                containers=(ContainerSpec(name="app-container"),),
            ),
            DeploymentSnapshot(
                name="demo-db",
                namespace="default",
                replicas=2,
                containers=(
                    ContainerSpec(
                        name="postgres",
                        resources=_LARGE,
                        has_liveness_probe=True,
                        has_readiness_probe=True,
                    ),
                ),
            ),
            DeploymentSnapshot(
                name="demo-web",
                namespace="default",
                replicas=2,
                containers=(ContainerSpec(name="web", resources=_SMALL, has_liveness_probe=True),),
            ),
            DeploymentSnapshot(
                name="metrics-agent",
                namespace="monitoring",
                replicas=1,
                containers=(
                    ContainerSpec(
                        name="agent",
                        resources=_REQUESTS_ONLY,
                        has_liveness_probe=True,
                        has_readiness_probe=True,
                    ),
                ),
            ),
        ]
        if namespace:
            return [d for d in deployments if d.namespace == namespace]
        return deployments

    async def list_pod_events(self, namespace: str, pod_name: str) -> list[EventRecord]:
        return [evt for ns, evt in self._events() if ns == namespace and evt.subject == pod_name]

    async def read_pod_logs(
        self,
        namespace: str,
        pod_name: str,
        container: str | None = None,
        tail_lines: int = 100,
    ) -> str:
        await self.get_pod(namespace, pod_name)
        if pod_name == "demo-app-pod":
            text = _DEMO_APP_LOGS
        elif pod_name == "demo-db-pod":
            text = _DEMO_DB_LOGS
        else:
            text = ""
        lines = text.splitlines()
        return "\n".join(lines[-tail_lines:]) if tail_lines > 0 else text
