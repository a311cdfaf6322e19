"""Pydantic request/response models for the kubediag REST API.

All models use Pydantic v2 syntax.  Every request field carries its
default so a caller only has to send what it wants to change.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class DiagnosePodRequest(BaseModel):
    """Request body for ``POST /diagnose_pod``."""

    namespace: str = Field(default="default", description="Namespace of the pod.")
    pod_name: str = Field(..., min_length=1, description="Name of the pod.", examples=["demo-app-pod"])


class AnalyzePodLogsRequest(BaseModel):
    """Request body for ``POST /analyze_pod_logs``."""

    namespace: str = Field(default="default", description="Namespace of the pod.")
    pod_name: str = Field(..., min_length=1, description="Name of the pod.")
    container: str = Field(default="", description="Container name.  Empty selects the default container.")
    lines: int = Field(default=100, description="Number of trailing log lines.  Values <= 0 mean 100.")


class ListPodsRequest(BaseModel):
    """Request body for ``POST /list_pods``."""

    namespace: str = Field(default="default", description="Namespace to list, or ``all``.")
    show_system: bool = Field(default=False, description="List the whole cluster, system namespaces included.")


class FindProblematicPodsRequest(BaseModel):
    """Request body for ``POST /find_problematic_pods``."""

    namespace: str = Field(
        default="",
        description="Empty for all non-system namespaces, ``all`` for every namespace.",
    )
    criteria: str = Field(
        default="all",
        description="failing, restarting, not-ready, resource-issues, image-issues or all.",
        examples=["failing", "restarting", "all"],
    )


class SearchPodsRequest(BaseModel):
    """Request body for ``POST /search_pods``."""

    pattern: str = Field(..., min_length=1, description="Case-insensitive substring to match.")
    namespace: str = Field(default="", description="Empty for all non-system namespaces.")


class ResourceUsageRequest(BaseModel):
    """Request body for ``POST /get_resource_usage``."""

    namespace: str = Field(default="", description="Empty for all non-system namespaces.")
    sort_by: str = Field(
        default="restarts",
        description="restarts, cpu, memory or name.",
        examples=["restarts", "cpu", "memory", "name"],
    )


class WorkloadRecommendationsRequest(BaseModel):
    """Request body for ``POST /get_workload_recommendations``."""

    namespace: str = Field(default="default", description="Namespace to audit, or ``all``.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthStatus(BaseModel):
    """Response body for ``GET /health``."""

    status: str = Field(..., description="Always ``healthy`` while the process is running.", examples=["healthy"])
    time: str = Field(..., description="Current server time, RFC 3339.")
    version: str = Field(..., description="kubediag version string.", examples=["0.1.0"])
    demo_mode: bool = Field(..., description="True when serving the canned demo cluster.")


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx and 5xx responses."""

    error: str = Field(
        ...,
        description="Machine-readable error code.",
        examples=[
            "INVALID_REQUEST",
            "NOT_FOUND",
            "PROVIDER_ERROR",
            "DEADLINE_EXCEEDED",
            "INTERNAL_ERROR",
        ],
    )
    detail: str = Field(..., description="Human-readable explanation.")
