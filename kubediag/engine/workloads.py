"""Deployment best-practice audit."""

from __future__ import annotations

from kubediag.models.snapshots import DeploymentSnapshot
from kubediag.observability.logging import get_logger
from kubediag.provider.base import ALL_NAMESPACES, ClusterStateProvider

_log = get_logger("engine.workloads")


def audit_deployment(deployment: DeploymentSnapshot) -> list[str]:
    """Recommendations for one deployment.

    Limits (or requests) count as missing only when no container of the
    deployment declares them.
    """
    ref = f"{deployment.namespace}/{deployment.name}"
    recommendations: list[str] = []

    if not any(c.resources.limits is not None for c in deployment.containers):
        recommendations.append(f"Deployment {ref} should have resource limits")
    if not any(c.resources.requests is not None for c in deployment.containers):
        recommendations.append(f"Deployment {ref} should have resource requests")

    if deployment.replicas == 1:
        recommendations.append(f"Deployment {ref} has only 1 replica - consider scaling for HA")

    for container in deployment.containers:
        if not container.has_liveness_probe:
            recommendations.append(f"Container {container.name} in deployment {ref} missing liveness probe")
        if not container.has_readiness_probe:
            recommendations.append(f"Container {container.name} in deployment {ref} missing readiness probe")

    return recommendations


class WorkloadAdvisor:
    def __init__(self, provider: ClusterStateProvider) -> None:
        self._provider = provider

    async def get_workload_recommendations(self, namespace: str = "default") -> list[str]:
        """Audit every deployment in ``namespace`` (``"all"`` or ``""`` for the whole cluster)."""
        list_ns = None if namespace in ("", ALL_NAMESPACES) else namespace
        deployments = await self._provider.list_deployments(list_ns)

        recommendations: list[str] = []
        for deployment in deployments:
            recommendations.extend(audit_deployment(deployment))

        _log.debug(
            "workloads_audited",
            namespace=namespace,
            deployments=len(deployments),
            recommendations=len(recommendations),
        )
        return recommendations
