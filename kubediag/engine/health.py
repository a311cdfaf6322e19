"""Fleet-wide cluster health aggregation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from kubediag.engine.collect import DEFAULT_MAX_CONCURRENCY, diagnose_all
from kubediag.engine.diagnosis import PodDiagnosisEngine
from kubediag.errors import ProviderError
from kubediag.models.diagnostics import ClusterHealth, UsageSummary
from kubediag.models.snapshots import NodeSnapshot, PodSnapshot
from kubediag.observability.logging import get_logger
from kubediag.provider.base import ClusterStateProvider, is_system_namespace

_log = get_logger("engine.health")

SCAN_RESTART_THRESHOLD = 3
HEALTHY_NODE_RATIO = 0.8
MANY_PROBLEM_PODS = 10
PROBLEM_POD_RATIO = 0.2

_SETTLED_PHASES = frozenset({"Running", "Succeeded"})


def pod_has_issues(pod: PodSnapshot) -> bool:
    """Scan-level problem test: restarts > 3, any container not ready, or an unsettled phase."""
    if pod.phase not in _SETTLED_PHASES:
        return True
    return any(cs.restart_count > SCAN_RESTART_THRESHOLD or not cs.ready for cs in pod.container_statuses)


def build_recommendations(
    node_count: int,
    unhealthy_nodes: list[str],
    total_pods: int,
    problem_pods: int,
) -> list[str]:
    recommendations: list[str] = []
    healthy = node_count - len(unhealthy_nodes)
    if node_count > 0 and healthy / node_count < HEALTHY_NODE_RATIO:
        recommendations.append(
            f"Cluster has {len(unhealthy_nodes)} unhealthy nodes: {', '.join(unhealthy_nodes)}"
        )
    if problem_pods > MANY_PROBLEM_PODS:
        recommendations.append(
            "High number of problematic pods detected - investigate cluster resource constraints"
        )
    if total_pods > 0 and problem_pods / total_pods > PROBLEM_POD_RATIO:
        recommendations.append("More than 20% of pods have issues - consider cluster-wide investigation")
    return recommendations


class ClusterHealthAggregator:
    """Scans nodes, namespaces and pods into a ClusterHealth summary.

    The node and pod listings are mandatory: if either fails the whole
    analysis fails.  The namespace count is best-effort.  Flagged pods whose
    diagnosis fails are skipped and are not counted as problem pods.
    """

    def __init__(
        self,
        provider: ClusterStateProvider,
        diagnosis: PodDiagnosisEngine,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._diagnosis = diagnosis
        self._max_concurrency = max_concurrency
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    async def analyze_cluster_health(self, include_system: bool = False) -> ClusterHealth:
        timestamp = self._clock()

        nodes = await self._provider.list_nodes()
        unhealthy_nodes = [n.name for n in nodes if not n.ready]

        namespace_count = await self._count_namespaces()

        pods = await self._provider.list_pods(None)
        scanned = [
            p
            for p in pods
            if p.phase != "Succeeded" and (include_system or not is_system_namespace(p.namespace))
        ]
        flagged = [p for p in scanned if pod_has_issues(p)]

        batch = await diagnose_all(
            self._diagnosis,
            flagged,
            operation="analyze_cluster_health",
            max_concurrency=self._max_concurrency,
        )

        total_pods = len(scanned)
        problem_pods = len(batch)
        percentage = problem_pods / total_pods * 100 if total_pods else 0.0

        _log.info(
            "cluster_health_analyzed",
            nodes=len(nodes),
            unhealthy_nodes=len(unhealthy_nodes),
            total_pods=total_pods,
            problem_pods=problem_pods,
            skipped=batch.skipped,
        )

        return ClusterHealth(
            node_count=len(nodes),
            healthy_nodes=_count_ready(nodes),
            namespace_count=namespace_count,
            pod_issues=batch.diagnostics,
            resource_usage=UsageSummary(
                total_pods=total_pods,
                problem_pods=problem_pods,
                problem_percentage=percentage,
                skipped_pods=batch.skipped,
            ),
            recommendations=tuple(
                build_recommendations(len(nodes), unhealthy_nodes, total_pods, problem_pods)
            ),
            timestamp=timestamp,
        )

    async def _count_namespaces(self) -> int:
        try:
            return len(await self._provider.list_namespaces())
        except ProviderError as exc:
            _log.warning("namespace_count_unavailable", error=str(exc))
            return 0


def _count_ready(nodes: list[NodeSnapshot]) -> int:
    return sum(1 for n in nodes if n.ready)
