"""Core data structures for kubediag."""

from kubediag.models.config import KubeDiagConfig
from kubediag.models.diagnostics import (
    ClusterHealth,
    DiagnosisBatch,
    LogAnalysis,
    PodDiagnostic,
    PodResourceInfo,
    PodSummary,
    TriageReport,
    UsageSummary,
)
from kubediag.models.snapshots import (
    ContainerSpec,
    ContainerStatus,
    DeploymentSnapshot,
    EventRecord,
    NodeSnapshot,
    PodSnapshot,
    ResourceRequirements,
)

__all__ = [
    "ClusterHealth",
    "ContainerSpec",
    "ContainerStatus",
    "DeploymentSnapshot",
    "DiagnosisBatch",
    "EventRecord",
    "KubeDiagConfig",
    "LogAnalysis",
    "NodeSnapshot",
    "PodDiagnostic",
    "PodResourceInfo",
    "PodSnapshot",
    "PodSummary",
    "ResourceRequirements",
    "TriageReport",
    "UsageSummary",
]
