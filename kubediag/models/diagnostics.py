"""Derived diagnostic values produced by the engines.

All types are immutable and created fresh per call.  ``to_dict()`` returns
the JSON shape shared by the REST API and the MCP server.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, overload


def _iso(value: datetime) -> str:
    return value.isoformat()


@dataclass(frozen=True)
class PodDiagnostic:
    """Issue/suggestion report for a single pod.

    Attributes:
        name:           Pod name.
        namespace:      Pod namespace.
        status:         Pod phase at evaluation time.
        restart_count:  Sum of restart counts over all container statuses.
        issues:         Distinct issue texts in discovery order.
        suggestions:    Distinct suggestion texts in discovery order.
        recent_events:  Events of the last 24 hours, formatted for display.
        resources:      ``"<container>_<attr>"`` to quantity string.
        created_at:     Evaluation time (not the pod's creation time).
    """

    name: str
    namespace: str
    status: str
    restart_count: int
    issues: tuple[str, ...]
    suggestions: tuple[str, ...]
    recent_events: tuple[str, ...]
    resources: dict[str, str]
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "status": self.status,
            "restart_count": self.restart_count,
            "issues": list(self.issues),
            "suggestions": list(self.suggestions),
            "recent_events": list(self.recent_events),
            "resources": dict(self.resources),
            "created_at": _iso(self.created_at),
        }


@dataclass(frozen=True)
class DiagnosisBatch(Sequence[PodDiagnostic]):
    """Ordered diagnostics from an aggregate scan.

    ``skipped`` counts pods that were selected but whose diagnosis failed;
    they are absent from ``diagnostics``.
    """

    diagnostics: tuple[PodDiagnostic, ...] = ()
    skipped: int = 0

    @overload
    def __getitem__(self, index: int) -> PodDiagnostic: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[PodDiagnostic]: ...

    def __getitem__(self, index: int | slice) -> PodDiagnostic | Sequence[PodDiagnostic]:
        return self.diagnostics[index]

    def __len__(self) -> int:
        return len(self.diagnostics)

    def __iter__(self) -> Iterator[PodDiagnostic]:
        return iter(self.diagnostics)

    def to_list(self) -> list[dict[str, Any]]:
        return [d.to_dict() for d in self.diagnostics]


@dataclass(frozen=True)
class UsageSummary:
    total_pods: int
    problem_pods: int
    problem_percentage: float
    skipped_pods: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_pods": self.total_pods,
            "problem_pods": self.problem_pods,
            "problem_percentage": self.problem_percentage,
            "skipped_pods": self.skipped_pods,
        }


@dataclass(frozen=True)
class ClusterHealth:
    node_count: int
    healthy_nodes: int
    namespace_count: int
    pod_issues: tuple[PodDiagnostic, ...]
    resource_usage: UsageSummary
    recommendations: tuple[str, ...]
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_count": self.node_count,
            "healthy_nodes": self.healthy_nodes,
            "namespace_count": self.namespace_count,
            "pod_issues": [d.to_dict() for d in self.pod_issues],
            "resource_usage": self.resource_usage.to_dict(),
            "recommendations": list(self.recommendations),
            "timestamp": _iso(self.timestamp),
        }


@dataclass(frozen=True)
class LogAnalysis:
    """Classification of a block of log text.

    ``error_count`` counts every qualifying line, duplicates included, while
    ``errors_found`` holds each distinct line once.
    """

    pod_name: str
    namespace: str
    log_lines: int
    errors_found: tuple[str, ...]
    error_count: int
    suggestions: tuple[str, ...]
    warning_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "pod_name": self.pod_name,
            "namespace": self.namespace,
            "log_lines": self.log_lines,
            "errors_found": list(self.errors_found),
            "error_count": self.error_count,
            "suggestions": list(self.suggestions),
            "warning_count": self.warning_count,
        }


@dataclass(frozen=True)
class PodResourceInfo:
    name: str
    namespace: str
    cpu_request: str
    memory_request: str
    cpu_limit: str
    memory_limit: str
    restart_count: int
    status: str
    has_resource_issues: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "cpu_request": self.cpu_request,
            "memory_request": self.memory_request,
            "cpu_limit": self.cpu_limit,
            "memory_limit": self.memory_limit,
            "restart_count": self.restart_count,
            "status": self.status,
            "has_resource_issues": self.has_resource_issues,
        }


@dataclass(frozen=True)
class PodSummary:
    """One row of a pod listing."""

    name: str
    namespace: str
    status: str
    ready: str
    restarts: int
    age: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "status": self.status,
            "ready": self.ready,
            "restarts": self.restarts,
            "age": self.age,
        }


@dataclass(frozen=True)
class TriageReport:
    timestamp: datetime
    cluster_health: ClusterHealth
    critical_pods: DiagnosisBatch
    restarting_pods: DiagnosisBatch
    immediate_actions: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "cluster_health": self.cluster_health.to_dict(),
            "critical_pods": self.critical_pods.to_list(),
            "restarting_pods": self.restarting_pods.to_list(),
            "immediate_actions": list(self.immediate_actions),
        }
