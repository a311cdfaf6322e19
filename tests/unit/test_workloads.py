"""Tests for kubediag.engine.workloads: deployment audit."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from kubediag.engine.workloads import WorkloadAdvisor, audit_deployment
from kubediag.models.snapshots import ContainerSpec, DeploymentSnapshot, ResourceRequirements

_FULL = ResourceRequirements(requests={"cpu": "100m"}, limits={"cpu": "200m"})


def _make_deployment(
    name: str = "api",
    namespace: str = "default",
    replicas: int = 3,
    containers: tuple[ContainerSpec, ...] | None = None,
) -> DeploymentSnapshot:
    if containers is None:
        containers = (ContainerSpec("app", resources=_FULL, has_liveness_probe=True, has_readiness_probe=True),)
    return DeploymentSnapshot(name=name, namespace=namespace, replicas=replicas, containers=containers)


class TestAuditDeployment:
    def test_well_configured_deployment_has_no_findings(self) -> None:
        assert audit_deployment(_make_deployment()) == []

    def test_bare_single_replica_deployment(self) -> None:
        deployment = _make_deployment("demo-app", replicas=1, containers=(ContainerSpec("app"),))
        assert audit_deployment(deployment) == [
            "Deployment default/demo-app should have resource limits",
            "Deployment default/demo-app should have resource requests",
            "Deployment default/demo-app has only 1 replica - consider scaling for HA",
            "Container app in deployment default/demo-app missing liveness probe",
            "Container app in deployment default/demo-app missing readiness probe",
        ]

    def test_one_container_with_limits_satisfies_the_deployment(self) -> None:
        containers = (
            ContainerSpec("app", resources=_FULL, has_liveness_probe=True, has_readiness_probe=True),
            ContainerSpec("sidecar", has_liveness_probe=True, has_readiness_probe=True),
        )
        assert audit_deployment(_make_deployment(containers=containers)) == []

    def test_requests_only(self) -> None:
        containers = (
            ContainerSpec(
                "agent",
                resources=ResourceRequirements(requests={"cpu": "50m"}),
                has_liveness_probe=True,
                has_readiness_probe=True,
            ),
        )
        assert audit_deployment(_make_deployment("agent", "monitoring", containers=containers)) == [
            "Deployment monitoring/agent should have resource limits",
        ]

    def test_zero_replicas_not_flagged(self) -> None:
        assert audit_deployment(_make_deployment(replicas=0)) == []


class TestWorkloadAdvisor:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("namespace,expected", [("default", "default"), ("all", None), ("", None)])
    async def test_namespace_scope(self, namespace: str, expected: str | None) -> None:
        provider = MagicMock()
        provider.list_deployments = AsyncMock(return_value=[])
        await WorkloadAdvisor(provider).get_workload_recommendations(namespace)
        provider.list_deployments.assert_awaited_once_with(expected)

    @pytest.mark.asyncio
    async def test_findings_concatenated_in_listing_order(self) -> None:
        provider = MagicMock()
        provider.list_deployments = AsyncMock(
            return_value=[_make_deployment("one", replicas=1), _make_deployment("two", replicas=1)]
        )
        recs = await WorkloadAdvisor(provider).get_workload_recommendations()
        assert recs == [
            "Deployment default/one has only 1 replica - consider scaling for HA",
            "Deployment default/two has only 1 replica - consider scaling for HA",
        ]
