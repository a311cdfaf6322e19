"""DiagnosticsService: the single entry point used by every front end.

Owns the provider and one instance of each engine.  Each public method
validates and defaults its inputs, runs the engine under the request
deadline, records metrics and returns the JSON-ready payload that the
REST API and the MCP server both emit unchanged.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from kubediag.engine.collect import DEFAULT_MAX_CONCURRENCY
from kubediag.engine.diagnosis import PodDiagnosisEngine
from kubediag.engine.health import ClusterHealthAggregator
from kubediag.engine.inventory import PodInventory
from kubediag.engine.logs import DEFAULT_TAIL_LINES, LogClassifier
from kubediag.engine.queries import ProblemCriteria, ProblemQueryEngine
from kubediag.engine.resources import ResourceUsageCollector
from kubediag.engine.triage import TriageOrchestrator
from kubediag.engine.workloads import WorkloadAdvisor
from kubediag.errors import DeadlineExceededError, DiagnosticsError, ValidationError
from kubediag.observability.logging import get_logger
from kubediag.observability.metrics import operation_duration_seconds, requests_total
from kubediag.provider.base import ClusterStateProvider

_log = get_logger("service")

_T = TypeVar("_T")

DEFAULT_TIMEOUT_SECONDS = 30.0


def _require(value: str, field_name: str) -> str:
    if not value:
        raise ValidationError(f"{field_name} is required")
    return value


class DiagnosticsService:
    """Facade over the diagnostic engines.

    Args:
        provider:         Cluster state source shared by all engines.
        timeout_seconds:  Deadline applied to each operation.
        max_concurrency:  Upper bound on concurrent per-pod diagnoses.
        clock:            Evaluation-time source; injectable for tests.
    """

    def __init__(
        self,
        provider: ClusterStateProvider,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.provider = provider
        self._timeout_seconds = timeout_seconds

        self._diagnosis = PodDiagnosisEngine(provider, clock=clock)
        self._logs = LogClassifier(provider)
        self._health = ClusterHealthAggregator(provider, self._diagnosis, max_concurrency, clock=clock)
        self._queries = ProblemQueryEngine(provider, self._diagnosis, max_concurrency)
        self._resources = ResourceUsageCollector(provider)
        self._workloads = WorkloadAdvisor(provider)
        self._triage = TriageOrchestrator(self._health, self._queries, clock=clock)
        self._inventory = PodInventory(provider, clock=clock)

    # ------------------------------------------------------------------
    # Execution wrapper
    # ------------------------------------------------------------------

    async def _run(self, operation: str, call: Callable[[], Awaitable[_T]]) -> _T:
        """Run ``call`` under the deadline, recording outcome and duration."""
        start = time.monotonic()
        outcome = "success"
        try:
            async with asyncio.timeout(self._timeout_seconds):
                return await call()
        except TimeoutError:
            outcome = DeadlineExceededError.code.lower()
            _log.warning("operation_deadline_exceeded", operation=operation, timeout=self._timeout_seconds)
            raise DeadlineExceededError(operation, self._timeout_seconds) from None
        except DiagnosticsError as exc:
            outcome = exc.code.lower()
            _log.info("operation_failed", operation=operation, code=exc.code, error=str(exc))
            raise
        except Exception:
            outcome = "internal_error"
            _log.exception("operation_crashed", operation=operation)
            raise
        finally:
            operation_duration_seconds.labels(operation=operation).observe(time.monotonic() - start)
            requests_total.labels(operation=operation, outcome=outcome).inc()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def diagnose_pod(self, namespace: str = "default", pod_name: str = "") -> dict[str, Any]:
        pod_name = _require(pod_name, "pod_name")
        namespace = namespace or "default"
        result = await self._run("diagnose_pod", lambda: self._diagnosis.diagnose_pod(namespace, pod_name))
        return result.to_dict()

    async def analyze_cluster_health(self) -> dict[str, Any]:
        result = await self._run("analyze_cluster_health", self._health.analyze_cluster_health)
        return result.to_dict()

    async def analyze_pod_logs(
        self,
        namespace: str = "default",
        pod_name: str = "",
        container: str = "",
        lines: int = DEFAULT_TAIL_LINES,
    ) -> dict[str, Any]:
        pod_name = _require(pod_name, "pod_name")
        namespace = namespace or "default"
        result = await self._run(
            "analyze_pod_logs",
            lambda: self._logs.analyze_pod_logs(namespace, pod_name, container, lines),
        )
        return result.to_dict()

    async def list_pods(self, namespace: str = "default", show_system: bool = False) -> dict[str, Any]:
        namespace = namespace or "default"
        pods = await self._run("list_pods", lambda: self._inventory.list_pods(namespace, show_system))
        return {
            "namespace": namespace,
            "pod_count": len(pods),
            "pods": [p.to_dict() for p in pods],
        }

    async def find_problematic_pods(self, namespace: str = "", criteria: str = "all") -> dict[str, Any]:
        criteria = criteria or ProblemCriteria.ANY.value
        parsed = ProblemCriteria.parse(criteria)
        batch = await self._run(
            "find_problematic_pods",
            lambda: self._queries.find_problematic_pods(namespace, parsed),
        )
        return {
            "search_criteria": criteria,
            "namespace": namespace,
            "problem_count": len(batch),
            "skipped_count": batch.skipped,
            "problematic_pods": batch.to_list(),
        }

    async def search_pods(self, pattern: str = "", namespace: str = "") -> dict[str, Any]:
        pattern = _require(pattern, "pattern")
        batch = await self._run("search_pods", lambda: self._queries.search_pods(pattern, namespace))
        return {
            "search_pattern": pattern,
            "namespace": namespace,
            "matches_found": len(batch),
            "skipped_count": batch.skipped,
            "matching_pods": batch.to_list(),
        }

    async def get_resource_usage(self, namespace: str = "", sort_by: str = "restarts") -> dict[str, Any]:
        sort_by = sort_by or "restarts"
        infos = await self._run(
            "get_resource_usage",
            lambda: self._resources.get_resource_usage(namespace, sort_by),
        )
        return {
            "namespace": namespace,
            "sort_by": sort_by,
            "pod_count": len(infos),
            "resource_usage": [i.to_dict() for i in infos],
        }

    async def quick_triage(self) -> dict[str, Any]:
        result = await self._run("quick_triage", self._triage.quick_triage)
        return result.to_dict()

    async def get_workload_recommendations(self, namespace: str = "default") -> list[str]:
        namespace = namespace or "default"
        return await self._run(
            "get_workload_recommendations",
            lambda: self._workloads.get_workload_recommendations(namespace),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the provider's connections, if it holds any."""
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()
