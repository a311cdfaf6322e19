"""Per-pod resource configuration overview."""

from __future__ import annotations

from collections.abc import Callable

from kubediag.engine.quantity import parse_cpu, parse_memory
from kubediag.errors import ValidationError
from kubediag.models.diagnostics import PodResourceInfo
from kubediag.models.snapshots import PodSnapshot
from kubediag.observability.logging import get_logger
from kubediag.provider.base import ClusterStateProvider, list_scoped_pods

_log = get_logger("engine.resources")

_RESOURCE_WAIT_MARKERS = ("Memory", "CPU")


def _join(values: list[str]) -> str:
    return " ".join(values)


def _has_resource_issues(pod: PodSnapshot) -> bool:
    if any(c.resources.is_unset for c in pod.containers):
        return True
    for cs in pod.container_statuses:
        reason = cs.waiting_reason or ""
        if reason == "OOMKilled" or any(marker in reason for marker in _RESOURCE_WAIT_MARKERS):
            return True
    return False


def resource_info(pod: PodSnapshot) -> PodResourceInfo:
    cpu_req: list[str] = []
    mem_req: list[str] = []
    cpu_lim: list[str] = []
    mem_lim: list[str] = []

    for container in pod.containers:
        requests = container.resources.requests or {}
        limits = container.resources.limits or {}
        if "cpu" in requests:
            cpu_req.append(requests["cpu"])
        if "memory" in requests:
            mem_req.append(requests["memory"])
        if "cpu" in limits:
            cpu_lim.append(limits["cpu"])
        if "memory" in limits:
            mem_lim.append(limits["memory"])

    return PodResourceInfo(
        name=pod.name,
        namespace=pod.namespace,
        cpu_request=_join(cpu_req),
        memory_request=_join(mem_req),
        cpu_limit=_join(cpu_lim),
        memory_limit=_join(mem_lim),
        restart_count=pod.total_restarts,
        status=pod.phase,
        has_resource_issues=_has_resource_issues(pod),
    )


def _total(joined: str, parse: Callable[[str], float]) -> float:
    return sum(parse(v) for v in joined.split())


# (key, reverse)
_SORTERS: dict[str, tuple[Callable[[PodResourceInfo], object], bool]] = {
    "restarts": (lambda i: i.restart_count, True),
    "cpu": (lambda i: _total(i.cpu_request, parse_cpu), True),
    "memory": (lambda i: _total(i.memory_request, parse_memory), True),
    "name": (lambda i: (i.namespace, i.name), False),
}

SORT_KEYS: tuple[str, ...] = tuple(_SORTERS)


def sort_resource_info(items: list[PodResourceInfo], sort_by: str) -> list[PodResourceInfo]:
    """Stable sort of ``items`` by ``sort_by``.

    Raises:
        ValidationError: ``sort_by`` is not one of ``SORT_KEYS``.
    """
    try:
        key, reverse = _SORTERS[sort_by]
    except KeyError:
        raise ValidationError(
            f"Invalid sort_by: {sort_by!r}. Must be one of: {', '.join(SORT_KEYS)}"
        ) from None
    return sorted(items, key=key, reverse=reverse)  # type: ignore[arg-type]


class ResourceUsageCollector:
    def __init__(self, provider: ClusterStateProvider) -> None:
        self._provider = provider

    async def get_resource_usage(self, namespace: str = "", sort_by: str = "restarts") -> list[PodResourceInfo]:
        """Resource requests/limits of every in-scope pod, ordered by ``sort_by``."""
        if sort_by not in _SORTERS:
            # Validate before touching the cluster.
            sort_resource_info([], sort_by)

        pods = await list_scoped_pods(self._provider, namespace)
        infos = [resource_info(p) for p in pods]
        _log.debug("resource_usage_collected", namespace=namespace, pods=len(infos), sort_by=sort_by)
        return sort_resource_info(infos, sort_by)
