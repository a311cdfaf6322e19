"""One-shot triage bundle: cluster health plus failing and restarting pods."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from kubediag.engine.health import ClusterHealthAggregator
from kubediag.engine.queries import ProblemCriteria, ProblemQueryEngine
from kubediag.models.diagnostics import TriageReport
from kubediag.observability.logging import get_logger

_log = get_logger("engine.triage")

IMMEDIATE_ACTIONS: tuple[str, ...] = (
    "Check critical/failing pods first",
    "Investigate high restart count pods",
    "Review cluster resource availability",
    "Check node health status",
)


class TriageOrchestrator:
    """Runs the three triage sub-queries in sequence.

    Any sub-query failure propagates; no partial report is produced.
    """

    def __init__(
        self,
        health: ClusterHealthAggregator,
        queries: ProblemQueryEngine,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._health = health
        self._queries = queries
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    async def quick_triage(self) -> TriageReport:
        timestamp = self._clock()
        cluster_health = await self._health.analyze_cluster_health()
        critical = await self._queries.find_problematic_pods("", ProblemCriteria.FAILING)
        restarting = await self._queries.find_problematic_pods("", ProblemCriteria.RESTARTING)

        _log.info(
            "quick_triage_completed",
            critical=len(critical),
            restarting=len(restarting),
            problem_pods=cluster_health.resource_usage.problem_pods,
        )
        return TriageReport(
            timestamp=timestamp,
            cluster_health=cluster_health,
            critical_pods=critical,
            restarting_pods=restarting,
            immediate_actions=IMMEDIATE_ACTIONS,
        )
