"""Tests for kubediag.engine.health: cluster health aggregation."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from kubediag.engine.health import ClusterHealthAggregator, build_recommendations, pod_has_issues
from kubediag.errors import NotFoundError, ProviderError
from kubediag.models.diagnostics import PodDiagnostic
from kubediag.models.snapshots import ContainerStatus, NodeSnapshot, PodSnapshot

_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _make_pod(
    name: str,
    namespace: str = "default",
    phase: str = "Running",
    *,
    ready: bool = True,
    restarts: int = 0,
) -> PodSnapshot:
    return PodSnapshot(
        name=name,
        namespace=namespace,
        phase=phase,
        container_statuses=(ContainerStatus("main", ready=ready, restart_count=restarts),),
    )


def _make_provider(
    nodes: list[NodeSnapshot] | None = None,
    pods: list[PodSnapshot] | None = None,
    namespaces: list[str] | None = None,
) -> MagicMock:
    provider = MagicMock()
    provider.list_nodes = AsyncMock(return_value=nodes or [])
    provider.list_pods = AsyncMock(return_value=pods or [])
    provider.list_namespaces = AsyncMock(return_value=namespaces or [])
    return provider


def _make_diagnosis(fail_for: set[str] | None = None) -> MagicMock:
    failing = fail_for or set()

    def _diagnose(namespace: str, name: str) -> PodDiagnostic:
        if name in failing:
            raise NotFoundError("Pod", namespace, name)
        return PodDiagnostic(
            name=name,
            namespace=namespace,
            status="Running",
            restart_count=0,
            issues=(),
            suggestions=(),
            recent_events=(),
            resources={},
            created_at=_NOW,
        )

    engine = MagicMock()
    engine.diagnose_pod = AsyncMock(side_effect=_diagnose)
    return engine


def _make_aggregator(provider: MagicMock, diagnosis: MagicMock | None = None) -> ClusterHealthAggregator:
    return ClusterHealthAggregator(provider, diagnosis or _make_diagnosis(), clock=lambda: _NOW)


# ---------------------------------------------------------------------------
# pod_has_issues
# ---------------------------------------------------------------------------


class TestPodHasIssues:
    def test_healthy_running_pod(self) -> None:
        assert pod_has_issues(_make_pod("a")) is False

    @pytest.mark.parametrize("phase", ["Pending", "Failed", "Unknown"])
    def test_unsettled_phase(self, phase: str) -> None:
        assert pod_has_issues(_make_pod("a", phase=phase)) is True

    def test_three_restarts_is_fine_four_is_not(self) -> None:
        assert pod_has_issues(_make_pod("a", restarts=3)) is False
        assert pod_has_issues(_make_pod("a", restarts=4)) is True

    def test_not_ready_container(self) -> None:
        assert pod_has_issues(_make_pod("a", ready=False)) is True

    def test_succeeded_pod_with_unready_container_is_flagged(self) -> None:
        assert pod_has_issues(_make_pod("job", phase="Succeeded", ready=False)) is True


# ---------------------------------------------------------------------------
# build_recommendations
# ---------------------------------------------------------------------------


class TestBuildRecommendations:
    def test_unhealthy_nodes_named(self) -> None:
        recs = build_recommendations(3, ["node-3"], total_pods=10, problem_pods=0)
        assert recs == ["Cluster has 1 unhealthy nodes: node-3"]

    def test_exactly_eighty_percent_healthy_is_fine(self) -> None:
        assert build_recommendations(5, ["n5"], total_pods=0, problem_pods=0) == []

    def test_many_problem_pods(self) -> None:
        recs = build_recommendations(0, [], total_pods=100, problem_pods=11)
        assert recs == ["High number of problematic pods detected - investigate cluster resource constraints"]

    def test_problem_ratio_above_twenty_percent(self) -> None:
        recs = build_recommendations(0, [], total_pods=10, problem_pods=3)
        assert recs == ["More than 20% of pods have issues - consider cluster-wide investigation"]

    def test_exactly_twenty_percent_is_fine(self) -> None:
        assert build_recommendations(0, [], total_pods=10, problem_pods=2) == []

    def test_no_nodes_no_pods(self) -> None:
        assert build_recommendations(0, [], total_pods=0, problem_pods=0) == []


# ---------------------------------------------------------------------------
# ClusterHealthAggregator
# ---------------------------------------------------------------------------


class TestAnalyzeClusterHealth:
    @pytest.mark.asyncio
    async def test_one_unready_node_of_three(self) -> None:
        provider = _make_provider(
            nodes=[NodeSnapshot("node-1", True), NodeSnapshot("node-2", True), NodeSnapshot("node-3", False)],
            namespaces=["default", "kube-system"],
        )
        health = await _make_aggregator(provider).analyze_cluster_health()

        assert health.node_count == 3
        assert health.healthy_nodes == 2
        assert health.namespace_count == 2
        assert "Cluster has 1 unhealthy nodes: node-3" in health.recommendations
        assert health.timestamp == _NOW

    @pytest.mark.asyncio
    async def test_no_pods_gives_zero_percentage(self) -> None:
        health = await _make_aggregator(_make_provider()).analyze_cluster_health()
        assert health.resource_usage.total_pods == 0
        assert health.resource_usage.problem_percentage == 0.0
        assert health.pod_issues == ()

    @pytest.mark.asyncio
    async def test_scan_excludes_succeeded_and_system_pods(self) -> None:
        pods = [
            _make_pod("ok"),
            _make_pod("broken", ready=False),
            _make_pod("job", phase="Succeeded", ready=False),
            _make_pod("coredns", namespace="kube-system", ready=False),
        ]
        health = await _make_aggregator(_make_provider(pods=pods)).analyze_cluster_health()

        assert health.resource_usage.total_pods == 2
        assert health.resource_usage.problem_pods == 1
        assert health.resource_usage.problem_percentage == 50.0
        assert [d.name for d in health.pod_issues] == ["broken"]

    @pytest.mark.asyncio
    async def test_include_system_scans_system_pods(self) -> None:
        pods = [_make_pod("coredns", namespace="kube-system", ready=False)]
        health = await _make_aggregator(_make_provider(pods=pods)).analyze_cluster_health(include_system=True)
        assert health.resource_usage.total_pods == 1
        assert health.resource_usage.problem_pods == 1

    @pytest.mark.asyncio
    async def test_failed_diagnosis_is_skipped_not_counted(self) -> None:
        pods = [_make_pod("a", ready=False), _make_pod("gone", ready=False)]
        aggregator = _make_aggregator(_make_provider(pods=pods), _make_diagnosis({"gone"}))
        health = await aggregator.analyze_cluster_health()

        assert health.resource_usage.problem_pods == 1
        assert health.resource_usage.skipped_pods == 1
        assert [d.name for d in health.pod_issues] == ["a"]

    @pytest.mark.asyncio
    async def test_namespace_failure_counts_zero(self) -> None:
        provider = _make_provider(nodes=[NodeSnapshot("n1", True)])
        provider.list_namespaces = AsyncMock(side_effect=ProviderError("list_namespaces", "forbidden"))
        health = await _make_aggregator(provider).analyze_cluster_health()
        assert health.namespace_count == 0
        assert health.node_count == 1

    @pytest.mark.asyncio
    async def test_node_listing_failure_is_fatal(self) -> None:
        provider = _make_provider()
        provider.list_nodes = AsyncMock(side_effect=ProviderError("list_nodes", "unreachable"))
        with pytest.raises(ProviderError):
            await _make_aggregator(provider).analyze_cluster_health()

    @pytest.mark.asyncio
    async def test_pod_listing_failure_is_fatal(self) -> None:
        provider = _make_provider()
        provider.list_pods = AsyncMock(side_effect=ProviderError("list_pods", "unreachable"))
        with pytest.raises(ProviderError):
            await _make_aggregator(provider).analyze_cluster_health()

    @pytest.mark.asyncio
    async def test_to_dict_shape(self) -> None:
        health = await _make_aggregator(_make_provider()).analyze_cluster_health()
        data = health.to_dict()
        assert set(data) == {
            "node_count",
            "healthy_nodes",
            "namespace_count",
            "pod_issues",
            "resource_usage",
            "recommendations",
            "timestamp",
        }
        assert data["resource_usage"]["skipped_pods"] == 0
