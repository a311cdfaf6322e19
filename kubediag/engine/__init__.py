"""Diagnostic engines.  Each engine takes its provider by constructor injection."""

from kubediag.engine.diagnosis import PodDiagnosisEngine
from kubediag.engine.health import ClusterHealthAggregator
from kubediag.engine.inventory import PodInventory
from kubediag.engine.logs import LogClassifier, analyze_logs
from kubediag.engine.queries import ProblemCriteria, ProblemQueryEngine
from kubediag.engine.resources import ResourceUsageCollector
from kubediag.engine.triage import TriageOrchestrator
from kubediag.engine.workloads import WorkloadAdvisor

__all__ = [
    "ClusterHealthAggregator",
    "LogClassifier",
    "PodDiagnosisEngine",
    "PodInventory",
    "ProblemCriteria",
    "ProblemQueryEngine",
    "ResourceUsageCollector",
    "TriageOrchestrator",
    "WorkloadAdvisor",
    "analyze_logs",
]
