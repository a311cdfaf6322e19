"""Pod listing with ready ratio, restart total and age."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from kubediag.models.diagnostics import PodSummary
from kubediag.models.snapshots import PodSnapshot
from kubediag.observability.logging import get_logger
from kubediag.provider.base import ALL_NAMESPACES, ClusterStateProvider, is_system_namespace

_log = get_logger("engine.inventory")


def format_age(delta: timedelta) -> str:
    """Two most significant units: ``3d4h``, ``2h30m``, ``5m12s``, ``42s``."""
    total = max(0, int(delta.total_seconds()))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)
    if days:
        return f"{days}d{hours}h"
    if hours:
        return f"{hours}h{minutes}m"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def summarize_pod(pod: PodSnapshot, now: datetime) -> PodSummary:
    ready = sum(1 for cs in pod.container_statuses if cs.ready)
    age = format_age(now - pod.created_at) if pod.created_at is not None else ""
    return PodSummary(
        name=pod.name,
        namespace=pod.namespace,
        status=pod.phase,
        ready=f"{ready}/{len(pod.container_statuses)}",
        restarts=pod.total_restarts,
        age=age,
    )


class PodInventory:
    def __init__(
        self,
        provider: ClusterStateProvider,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    async def list_pods(self, namespace: str = "default", show_system: bool = False) -> list[PodSummary]:
        """Summaries of the pods in ``namespace``.

        ``"all"`` lists every namespace, leaving out system namespaces.
        ``show_system`` widens any listing to the whole cluster, system
        namespaces included.  Otherwise a named namespace is listed as-is.
        """
        namespace = namespace or "default"
        if namespace == ALL_NAMESPACES or show_system:
            pods = await self._provider.list_pods(None)
            if not show_system:
                pods = [p for p in pods if not is_system_namespace(p.namespace)]
        else:
            pods = await self._provider.list_pods(namespace)

        now = self._clock()
        summaries = [summarize_pod(p, now) for p in pods]
        _log.debug("pods_listed", namespace=namespace, show_system=show_system, pods=len(summaries))
        return summaries
