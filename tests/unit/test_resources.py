"""Tests for kubediag.engine.resources and kubediag.engine.quantity."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from kubediag.engine.quantity import parse_cpu, parse_memory
from kubediag.engine.resources import ResourceUsageCollector, resource_info, sort_resource_info
from kubediag.errors import ValidationError
from kubediag.models.diagnostics import PodResourceInfo
from kubediag.models.snapshots import ContainerSpec, ContainerStatus, PodSnapshot, ResourceRequirements

# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _make_pod(
    name: str,
    namespace: str = "default",
    *,
    containers: tuple[ContainerSpec, ...] = (),
    restarts: int = 0,
    waiting_reason: str | None = None,
) -> PodSnapshot:
    return PodSnapshot(
        name=name,
        namespace=namespace,
        phase="Running",
        containers=containers,
        container_statuses=(
            ContainerStatus("main", ready=True, restart_count=restarts, waiting_reason=waiting_reason),
        ),
    )


def _container(name: str = "main", cpu: str | None = None, memory: str | None = None) -> ContainerSpec:
    requests = {k: v for k, v in (("cpu", cpu), ("memory", memory)) if v is not None}
    return ContainerSpec(name, resources=ResourceRequirements(requests=requests or None, limits=requests or None))


def _make_provider(pods: list[PodSnapshot]) -> MagicMock:
    provider = MagicMock()
    provider.list_pods = AsyncMock(return_value=pods)
    return provider


# ---------------------------------------------------------------------------
# Quantities
# ---------------------------------------------------------------------------


class TestParseCpu:
    @pytest.mark.parametrize(
        "value,expected",
        [("500m", 0.5), ("2", 2.0), ("0.25", 0.25), ("", 0.0), (None, 0.0), ("lots", 0.0)],
    )
    def test_values(self, value: str | None, expected: float) -> None:
        assert parse_cpu(value) == pytest.approx(expected)


class TestParseMemory:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("128Mi", 128 * 1024**2),
            ("1Gi", 1024**3),
            ("1G", 1e9),
            ("512k", 512e3),
            ("1048576", 1048576),
            ("", 0.0),
            ("huge", 0.0),
        ],
    )
    def test_values(self, value: str, expected: float) -> None:
        assert parse_memory(value) == pytest.approx(expected)


# ---------------------------------------------------------------------------
# resource_info
# ---------------------------------------------------------------------------


class TestResourceInfo:
    def test_values_joined_across_containers(self) -> None:
        pod = _make_pod("p", containers=(_container("a", "100m", "64Mi"), _container("b", "250m", "128Mi")))
        info = resource_info(pod)
        assert info.cpu_request == "100m 250m"
        assert info.memory_request == "64Mi 128Mi"
        assert info.cpu_limit == "100m 250m"
        assert info.has_resource_issues is False

    def test_container_without_resources_is_an_issue(self) -> None:
        info = resource_info(_make_pod("p", containers=(ContainerSpec("main"),)))
        assert info.cpu_request == ""
        assert info.has_resource_issues is True

    @pytest.mark.parametrize("reason", ["OOMKilled", "InsufficientMemory", "CPUThrottled"])
    def test_resource_related_waiting_reason_is_an_issue(self, reason: str) -> None:
        pod = _make_pod("p", containers=(_container(cpu="1"),), waiting_reason=reason)
        assert resource_info(pod).has_resource_issues is True

    def test_other_waiting_reason_is_not(self) -> None:
        pod = _make_pod("p", containers=(_container(cpu="1"),), waiting_reason="ContainerCreating")
        assert resource_info(pod).has_resource_issues is False


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


class TestSortResourceInfo:
    def _infos(self) -> list[PodResourceInfo]:
        return [
            resource_info(_make_pod("b", containers=(_container(cpu="100m", memory="1Gi"),), restarts=1)),
            resource_info(_make_pod("a", containers=(_container(cpu="2", memory="64Mi"),), restarts=7)),
            resource_info(_make_pod("c", "alpha", containers=(_container(cpu="500m", memory="512Mi"),))),
        ]

    def test_restarts_descending(self) -> None:
        assert [i.name for i in sort_resource_info(self._infos(), "restarts")] == ["a", "b", "c"]

    def test_cpu_descending(self) -> None:
        assert [i.name for i in sort_resource_info(self._infos(), "cpu")] == ["a", "c", "b"]

    def test_memory_descending(self) -> None:
        assert [i.name for i in sort_resource_info(self._infos(), "memory")] == ["b", "c", "a"]

    def test_name_ascending_by_namespace_then_name(self) -> None:
        assert [i.name for i in sort_resource_info(self._infos(), "name")] == ["c", "a", "b"]

    def test_invalid_key_raises(self) -> None:
        with pytest.raises(ValidationError, match="Invalid sort_by"):
            sort_resource_info(self._infos(), "size")


class TestResourceUsageCollector:
    @pytest.mark.asyncio
    async def test_invalid_sort_by_rejected_before_listing(self) -> None:
        provider = _make_provider([])
        with pytest.raises(ValidationError):
            await ResourceUsageCollector(provider).get_resource_usage("", "bogus")
        provider.list_pods.assert_not_called()

    @pytest.mark.asyncio
    async def test_default_scope_excludes_system_namespaces(self) -> None:
        pods = [_make_pod("app"), _make_pod("coredns", "kube-system", restarts=9)]
        infos = await ResourceUsageCollector(_make_provider(pods)).get_resource_usage()
        assert [i.name for i in infos] == ["app"]

    @pytest.mark.asyncio
    async def test_named_namespace_passed_to_provider(self) -> None:
        provider = _make_provider([])
        await ResourceUsageCollector(provider).get_resource_usage("prod", "name")
        provider.list_pods.assert_awaited_once_with("prod")
