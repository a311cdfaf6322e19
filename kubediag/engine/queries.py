"""Filtered and fuzzy pod queries.

Both queries list the in-scope pods, select a subset and diagnose each
selected pod through the skip-and-continue collector.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from kubediag.engine.collect import DEFAULT_MAX_CONCURRENCY, diagnose_all
from kubediag.engine.diagnosis import PodDiagnosisEngine
from kubediag.engine.health import SCAN_RESTART_THRESHOLD, pod_has_issues
from kubediag.models.diagnostics import DiagnosisBatch
from kubediag.models.snapshots import PodSnapshot
from kubediag.observability.logging import get_logger
from kubediag.provider.base import ClusterStateProvider, list_scoped_pods

_log = get_logger("engine.queries")

_IMAGE_PULL_REASONS = frozenset({"ImagePullBackOff", "ErrImagePull"})


class ProblemCriteria(StrEnum):
    """Closed taxonomy of problem filters.  ``ANY`` is the fallback."""

    FAILING = "failing"
    RESTARTING = "restarting"
    NOT_READY = "not-ready"
    RESOURCE_ISSUES = "resource-issues"
    IMAGE_ISSUES = "image-issues"
    ANY = "all"

    @classmethod
    def parse(cls, text: str) -> ProblemCriteria:
        """Map caller text to a criterion.  Matching is exact and case-sensitive."""
        return _CRITERIA_ALIASES.get(text, cls.ANY)

    def matches(self, pod: PodSnapshot) -> bool:
        return _PREDICATES[self](pod)


_CRITERIA_ALIASES: dict[str, ProblemCriteria] = {
    "failing": ProblemCriteria.FAILING,
    "failed": ProblemCriteria.FAILING,
    "error": ProblemCriteria.FAILING,
    "restarting": ProblemCriteria.RESTARTING,
    "restart": ProblemCriteria.RESTARTING,
    "not-ready": ProblemCriteria.NOT_READY,
    "unready": ProblemCriteria.NOT_READY,
    "resource-issues": ProblemCriteria.RESOURCE_ISSUES,
    "image-issues": ProblemCriteria.IMAGE_ISSUES,
}


def _is_failing(pod: PodSnapshot) -> bool:
    return pod.phase in ("Failed", "Pending")


def _is_restarting(pod: PodSnapshot) -> bool:
    return any(cs.restart_count > SCAN_RESTART_THRESHOLD for cs in pod.container_statuses)


def _is_not_ready(pod: PodSnapshot) -> bool:
    return any(not cs.ready for cs in pod.container_statuses)


def _has_resource_waiting(pod: PodSnapshot) -> bool:
    return any(
        cs.waiting_reason and ("Memory" in cs.waiting_reason or "CPU" in cs.waiting_reason)
        for cs in pod.container_statuses
    )


def _has_image_issue(pod: PodSnapshot) -> bool:
    return any(cs.waiting_reason in _IMAGE_PULL_REASONS for cs in pod.container_statuses)


_PREDICATES: dict[ProblemCriteria, Callable[[PodSnapshot], bool]] = {
    ProblemCriteria.FAILING: _is_failing,
    ProblemCriteria.RESTARTING: _is_restarting,
    ProblemCriteria.NOT_READY: _is_not_ready,
    ProblemCriteria.RESOURCE_ISSUES: _has_resource_waiting,
    ProblemCriteria.IMAGE_ISSUES: _has_image_issue,
    ProblemCriteria.ANY: pod_has_issues,
}


def matches_pattern(pod: PodSnapshot, pattern: str) -> bool:
    """Case-insensitive substring match on name, then namespace, then labels."""
    needle = pattern.lower()
    if needle in pod.name.lower() or needle in pod.namespace.lower():
        return True
    return any(needle in key.lower() or needle in value.lower() for key, value in pod.labels.items())


class ProblemQueryEngine:
    def __init__(
        self,
        provider: ClusterStateProvider,
        diagnosis: PodDiagnosisEngine,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self._provider = provider
        self._diagnosis = diagnosis
        self._max_concurrency = max_concurrency

    async def find_problematic_pods(
        self,
        namespace: str = "",
        criteria: ProblemCriteria | str = ProblemCriteria.ANY,
    ) -> DiagnosisBatch:
        """Diagnose every in-scope pod matching ``criteria``.

        Raises:
            ProviderError: the pod listing failed.
        """
        if not isinstance(criteria, ProblemCriteria):
            criteria = ProblemCriteria.parse(criteria)

        pods = await list_scoped_pods(self._provider, namespace)
        selected = [p for p in pods if criteria.matches(p)]
        _log.debug(
            "problem_pods_selected",
            namespace=namespace,
            criteria=str(criteria),
            scanned=len(pods),
            selected=len(selected),
        )
        return await diagnose_all(
            self._diagnosis,
            selected,
            operation="find_problematic_pods",
            max_concurrency=self._max_concurrency,
        )

    async def search_pods(self, pattern: str, namespace: str = "") -> DiagnosisBatch:
        pods = await list_scoped_pods(self._provider, namespace)
        selected = [p for p in pods if matches_pattern(p, pattern)]
        _log.debug("search_pods_selected", pattern=pattern, scanned=len(pods), selected=len(selected))
        return await diagnose_all(
            self._diagnosis,
            selected,
            operation="search_pods",
            max_concurrency=self._max_concurrency,
        )
