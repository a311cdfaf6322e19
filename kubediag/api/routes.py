"""FastAPI route handlers for the kubediag REST API.

Every diagnostic route is a POST taking an optional JSON body; omitted
fields take the defaults declared in ``kubediag.api.schemas``.  Handlers
only marshal: ``DiagnosticsError`` propagates to the exception handlers
registered by ``kubediag.api.app``.

Error code conventions:
    400 INVALID_REQUEST    -- missing or invalid field
    404 NOT_FOUND          -- target pod absent
    405                    -- wrong HTTP verb (FastAPI default body)
    500 PROVIDER_ERROR     -- cluster API or transport failure
    500 DEADLINE_EXCEEDED  -- request deadline elapsed
    500 INTERNAL_ERROR     -- unexpected server-side failure
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kubediag.api.schemas import (
    AnalyzePodLogsRequest,
    DiagnosePodRequest,
    ErrorResponse,
    FindProblematicPodsRequest,
    HealthStatus,
    ListPodsRequest,
    ResourceUsageRequest,
    SearchPodsRequest,
    WorkloadRecommendationsRequest,
)
from kubediag.service import DiagnosticsService

router = APIRouter()

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _service(request: Request) -> DiagnosticsService:
    return request.app.state.service  # type: ignore[no-any-return]


# ---------------------------------------------------------------------------
# Diagnostic routes
# ---------------------------------------------------------------------------


@router.post("/diagnose_pod", summary="Diagnose a single pod", responses=_ERROR_RESPONSES)
async def diagnose_pod(request: Request, body: DiagnosePodRequest) -> dict[str, Any]:
    return await _service(request).diagnose_pod(body.namespace, body.pod_name)


@router.post(
    "/analyze_cluster_health",
    summary="Summarize cluster health",
    description="Node readiness, problem pods outside system namespaces, and recommendations.",
    responses=_ERROR_RESPONSES,
)
async def analyze_cluster_health(request: Request) -> dict[str, Any]:
    return await _service(request).analyze_cluster_health()


@router.post("/analyze_pod_logs", summary="Classify a pod's recent log lines", responses=_ERROR_RESPONSES)
async def analyze_pod_logs(request: Request, body: AnalyzePodLogsRequest) -> dict[str, Any]:
    return await _service(request).analyze_pod_logs(body.namespace, body.pod_name, body.container, body.lines)


@router.post("/list_pods", summary="List pods with ready ratio, restarts and age", responses=_ERROR_RESPONSES)
async def list_pods(request: Request, body: ListPodsRequest | None = None) -> dict[str, Any]:
    body = body or ListPodsRequest()
    return await _service(request).list_pods(body.namespace, body.show_system)


@router.post(
    "/find_problematic_pods",
    summary="Find and diagnose pods matching a problem criterion",
    responses=_ERROR_RESPONSES,
)
async def find_problematic_pods(
    request: Request,
    body: FindProblematicPodsRequest | None = None,
) -> dict[str, Any]:
    body = body or FindProblematicPodsRequest()
    return await _service(request).find_problematic_pods(body.namespace, body.criteria)


@router.post("/search_pods", summary="Search pods by name, namespace or label", responses=_ERROR_RESPONSES)
async def search_pods(request: Request, body: SearchPodsRequest) -> dict[str, Any]:
    return await _service(request).search_pods(body.pattern, body.namespace)


@router.post("/get_resource_usage", summary="Resource requests and limits per pod", responses=_ERROR_RESPONSES)
async def get_resource_usage(request: Request, body: ResourceUsageRequest | None = None) -> dict[str, Any]:
    body = body or ResourceUsageRequest()
    return await _service(request).get_resource_usage(body.namespace, body.sort_by)


@router.post("/quick_triage", summary="Cluster health plus failing and restarting pods", responses=_ERROR_RESPONSES)
async def quick_triage(request: Request) -> dict[str, Any]:
    return await _service(request).quick_triage()


@router.post(
    "/get_workload_recommendations",
    summary="Deployment best-practice audit",
    responses=_ERROR_RESPONSES,
)
async def get_workload_recommendations(
    request: Request,
    body: WorkloadRecommendationsRequest | None = None,
) -> list[str]:
    body = body or WorkloadRecommendationsRequest()
    return await _service(request).get_workload_recommendations(body.namespace)


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health check",
    description="Lightweight liveness probe.  Always returns 200 if the process is up.",
)
async def get_health(request: Request) -> HealthStatus:
    """``GET /health``"""
    from kubediag import __version__

    return HealthStatus(
        status="healthy",
        time=datetime.now(tz=UTC).isoformat(timespec="seconds"),
        version=__version__,
        demo_mode=bool(getattr(request.app.state, "demo_mode", False)),
    )


@router.get("/metrics", include_in_schema=False)
async def get_metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
